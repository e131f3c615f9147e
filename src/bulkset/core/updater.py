"""Public entry point: ``update_fields`` on a SQLAlchemy ``Select``.

Usage::

    updater = BulkUpdater(SqlAlchemyBackend(engine))
    query = select(students).where(students.c.id == 1)

    updater.update_fields(query, "name", "New Name")
    updater.update_fields(query, {"name": "New Name", "email": "my@email.com"})

    async_updater = BulkUpdater(AsyncSqlAlchemyBackend(async_engine))
    await async_updater.update_fields_async(query, changes, cancellation=cancel_after(10))

The query only supplies the target entity and the WHERE clause; its
column list is ignored.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from bulkset.core.capability import CapabilityCache, default_cache
from bulkset.core.composer import ComposedExpression, ExpressionComposer
from bulkset.core.dispatcher import AsyncUpdateDispatcher, UpdateDispatcher
from bulkset.core.plan import SetterPlanBuilder
from bulkset.domain.types import FieldUpdateRequest, SetterPlan
from bulkset.infrastructure.schema import selection_target

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.sql import ColumnElement

    from bulkset.domain.coercion import ValueCoercer
    from bulkset.infrastructure.schema import SchemaResolver

FieldsArg = str | Mapping[str, Any] | Iterable[tuple[str, Any]]

UNSET: Any = object()


def make_request(fields: FieldsArg, value: Any = UNSET) -> FieldUpdateRequest:
    """Build a :class:`FieldUpdateRequest` from ``update_fields`` arguments.

    Accepts ``(name, value)``, a mapping, or an iterable of pairs. For
    repeated names in an iterable of pairs the last value wins.
    """
    if isinstance(fields, str):
        if value is UNSET:
            msg = f"A value is required when updating a single field ({fields!r})"
            raise TypeError(msg)
        return FieldUpdateRequest.single(fields, value)
    if value is not UNSET:
        msg = "value must not be given together with a field mapping"
        raise TypeError(msg)
    if isinstance(fields, Mapping):
        return FieldUpdateRequest.from_mapping(fields)
    return FieldUpdateRequest.from_pairs(fields)


class BulkUpdater:
    """Drive resolve → coerce → compose → dispatch for one backend.

    *backend* may be a blocking :class:`UpdateBackend`, an
    :class:`AsyncUpdateBackend`, or an object implementing both.
    """

    def __init__(
        self,
        backend: Any,
        *,
        resolver: SchemaResolver | None = None,
        coercer: ValueCoercer | None = None,
        capabilities: CapabilityCache | None = None,
    ) -> None:
        self._backend = backend
        self._planner = SetterPlanBuilder(resolver, coercer)
        self._capabilities = capabilities or default_cache()

    @property
    def backend(self) -> Any:
        return self._backend

    def plan(self, query: Select[Any], fields: FieldsArg, value: Any = UNSET) -> SetterPlan:
        """Resolve and coerce without composing or touching the backend."""
        entity, _ = selection_target(query)
        return self._planner.build(entity, make_request(fields, value))

    def prepare(
        self,
        query: Select[Any],
        fields: FieldsArg,
        value: Any = UNSET,
    ) -> tuple[Any, ColumnElement[bool] | None, ComposedExpression]:
        """Return ``(entity, selection, composed expression)`` for a request."""
        entity, selection = selection_target(query)
        plan = self._planner.build(entity, make_request(fields, value))
        composer = ExpressionComposer.for_setter_type(
            self._backend.setter_type, self._capabilities
        )
        return entity, selection, composer.compose(plan)

    def dispatch(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: ComposedExpression,
    ) -> int:
        if not hasattr(self._backend, "execute_update"):
            msg = f"{type(self._backend).__name__} is async-only; use update_fields_async()"
            raise TypeError(msg)
        return UpdateDispatcher(self._backend).apply(entity, selection, composed)

    async def dispatch_async(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: ComposedExpression,
        cancellation: asyncio.Event | None = None,
    ) -> int:
        if not hasattr(self._backend, "execute_update_async"):
            msg = f"{type(self._backend).__name__} is blocking-only; use update_fields()"
            raise TypeError(msg)
        dispatcher = AsyncUpdateDispatcher(self._backend)
        return await dispatcher.apply(entity, selection, composed, cancellation)

    def update_fields(self, query: Select[Any], fields: FieldsArg, value: Any = UNSET) -> int:
        """Set *fields* on every row *query* selects; return the affected count."""
        entity, selection, composed = self.prepare(query, fields, value)
        return self.dispatch(entity, selection, composed)

    async def update_fields_async(
        self,
        query: Select[Any],
        fields: FieldsArg,
        value: Any = UNSET,
        *,
        cancellation: asyncio.Event | None = None,
    ) -> int:
        """Awaitable :meth:`update_fields` honouring *cancellation*."""
        entity, selection, composed = self.prepare(query, fields, value)
        return await self.dispatch_async(entity, selection, composed, cancellation)
