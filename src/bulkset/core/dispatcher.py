"""Hand a composed expression and a selection to the execution backend.

Pure pass-through: no retries, and backend exceptions propagate unchanged.
The async path takes an optional :class:`asyncio.Event` as a cooperative
cancellation signal. If it is set before the call, the backend is never
touched. If it fires while the backend runs, the backend task is
cancelled (its transaction rolls back) and :class:`UpdateCancelled` is
raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from bulkset.errors import UpdateCancelled

if TYPE_CHECKING:
    from sqlalchemy.sql import ColumnElement

    from bulkset.core.composer import ComposedExpression
    from bulkset.infrastructure.backends import AsyncUpdateBackend, UpdateBackend

logger = logging.getLogger(__name__)


class UpdateDispatcher:
    """Blocking dispatch to an :class:`UpdateBackend`."""

    def __init__(self, backend: UpdateBackend) -> None:
        self._backend = backend

    def apply(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: ComposedExpression,
    ) -> int:
        return self._backend.execute_update(entity, selection, composed)


class AsyncUpdateDispatcher:
    """Awaitable dispatch to an :class:`AsyncUpdateBackend`."""

    def __init__(self, backend: AsyncUpdateBackend) -> None:
        self._backend = backend

    async def apply(
        self,
        entity: Any,
        selection: ColumnElement[bool] | None,
        composed: ComposedExpression,
        cancellation: asyncio.Event | None = None,
    ) -> int:
        if cancellation is None:
            return await self._backend.execute_update_async(entity, selection, composed)
        if cancellation.is_set():
            raise UpdateCancelled()

        work = asyncio.ensure_future(
            self._backend.execute_update_async(entity, selection, composed)
        )
        signal = asyncio.ensure_future(cancellation.wait())
        try:
            await asyncio.wait({work, signal}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            signal.cancel()

        if work.done():
            return work.result()

        logger.debug("Cancellation signalled; cancelling backend update")
        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise UpdateCancelled()


def cancel_after(seconds: float) -> asyncio.Event:
    """Return an event that is set *seconds* from now on the running loop."""
    event = asyncio.Event()
    asyncio.get_running_loop().call_later(seconds, event.set)
    return event
