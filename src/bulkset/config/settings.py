"""Unified settings — init kwargs and ``BULKSET_*`` env vars in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — passed by the embedding application
  2. Env vars     — ``BULKSET_*`` prefix
  3. Code defaults

Uses Pydantic Settings v2. The backend factories below are the only
place a database URL turns into an engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic_settings import BaseSettings
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine

from bulkset.core.updater import BulkUpdater
from bulkset.infrastructure.backends import AsyncSqlAlchemyBackend, SqlAlchemyBackend
from bulkset.infrastructure.setters import SETTER_TYPES
from bulkset.services.update import FieldUpdateService

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class BulkSetSettings(BaseSettings):
    """Frozen settings for wiring bulkset into an application.

    Attributes:
        database_url: SQLAlchemy URL. Async backends need an async driver
            (``sqlite+aiosqlite://``, ``postgresql+asyncpg://``, ...).
        echo_sql: Pass ``echo=True`` to the engine.
        setter_style: Which setter builder the SQLAlchemy backends expose.
            The composition shape is still detected from the builder, not
            read from here.
        verbose: DEBUG logging for the ``bulkset`` logger plus span telemetry.
            Applied by :func:`bulkset.config.logging.configure_from_settings`.
        log_json: JSON log lines instead of console output.
    """

    model_config = {"frozen": True, "env_prefix": "BULKSET_"}

    database_url: str = "sqlite:///bulkset.db"
    echo_sql: bool = False
    setter_style: Literal["mutating", "chained"] = "mutating"
    verbose: bool = False
    log_json: bool = False

    def make_engine(self) -> Engine:
        return create_engine(self.database_url, echo=self.echo_sql)


def build_backend(settings: BulkSetSettings) -> SqlAlchemyBackend:
    """Create a blocking backend over a new engine for *settings*."""
    return SqlAlchemyBackend(
        settings.make_engine(),
        setter_type=SETTER_TYPES[settings.setter_style],
    )


def build_async_backend(settings: BulkSetSettings) -> AsyncSqlAlchemyBackend:
    """Create an async backend; *settings.database_url* must name an async driver."""
    engine = create_async_engine(settings.database_url, echo=settings.echo_sql)
    return AsyncSqlAlchemyBackend(engine, setter_type=SETTER_TYPES[settings.setter_style])


def build_service(settings: BulkSetSettings) -> FieldUpdateService:
    """Blocking :class:`FieldUpdateService` over :func:`build_backend`."""
    return FieldUpdateService(BulkUpdater(build_backend(settings)))
