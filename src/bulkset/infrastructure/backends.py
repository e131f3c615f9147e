"""SQLAlchemy execution backends for composed bulk updates.

Each backend advertises a ``setter_type`` (the builder composed
expressions are applied to) and runs one ``UPDATE ... WHERE ...``
statement per call, returning the affected row count.

The caller may pass either an engine or an open connection. With an
engine the backend owns the transaction (``engine.begin()``); with a
connection the caller owns it and commit/rollback is theirs.

Backend errors (``sqlalchemy.exc.*``) are never caught here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import Connection, update
from sqlalchemy.ext.asyncio import AsyncConnection

from bulkset.infrastructure.setters import MutatingSetters

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Update
    from sqlalchemy.engine import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine
    from sqlalchemy.sql import ColumnElement

logger = logging.getLogger(__name__)


class UpdateBackend(Protocol):
    """Blocking execution backend."""

    setter_type: type

    def execute_update(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: Callable[[Any], Any],
    ) -> int: ...


class AsyncUpdateBackend(Protocol):
    """Awaitable execution backend."""

    setter_type: type

    async def execute_update_async(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: Callable[[Any], Any],
    ) -> int: ...


class _StatementBuilder:
    """Shared ``UPDATE`` construction for the sync and async backends."""

    def __init__(self, setter_type: type = MutatingSetters) -> None:
        self.setter_type = setter_type

    def build_statement(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: Callable[[Any], Any],
    ) -> Update:
        values = self.setter_type.collect(composed)  # type: ignore[attr-defined]
        stmt = update(entity)
        if selection is not None:
            stmt = stmt.where(selection)
        return stmt.values(values)


class SqlAlchemyBackend(_StatementBuilder):
    """Run bulk updates through a sync :class:`Engine` or :class:`Connection`."""

    def __init__(self, bind: Engine | Connection, *, setter_type: type = MutatingSetters) -> None:
        super().__init__(setter_type)
        self._bind = bind

    def execute_update(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: Callable[[Any], Any],
    ) -> int:
        stmt = self.build_statement(entity, selection, composed)
        if isinstance(self._bind, Connection):
            result = self._bind.execute(stmt)
        else:
            with self._bind.begin() as conn:
                result = conn.execute(stmt)
        logger.debug("Bulk update on %s affected %d row(s)", _table_name(entity), result.rowcount)
        return result.rowcount


class AsyncSqlAlchemyBackend(_StatementBuilder):
    """Run bulk updates through an :class:`AsyncEngine` or :class:`AsyncConnection`.

    Cancelling the awaiting task while the statement runs leaves
    ``engine.begin()`` by exception, so the transaction rolls back.
    """

    def __init__(
        self,
        bind: AsyncEngine | AsyncConnection,
        *,
        setter_type: type = MutatingSetters,
    ) -> None:
        super().__init__(setter_type)
        self._bind = bind

    async def execute_update_async(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: Callable[[Any], Any],
    ) -> int:
        stmt = self.build_statement(entity, selection, composed)
        if isinstance(self._bind, AsyncConnection):
            result = await self._bind.execute(stmt)
        else:
            async with self._bind.begin() as conn:
                result = await conn.execute(stmt)
        logger.debug("Bulk update on %s affected %d row(s)", _table_name(entity), result.rowcount)
        return result.rowcount


def _table_name(entity: Any) -> str:
    return getattr(entity, "__tablename__", None) or getattr(entity, "name", None) or repr(entity)
