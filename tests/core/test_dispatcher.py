"""Tests for blocking and async dispatch, including cancellation."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from bulkset.core.composer import ComposedExpression, ExpressionComposer
from bulkset.core.dispatcher import AsyncUpdateDispatcher, UpdateDispatcher, cancel_after
from bulkset.domain.types import CapabilityMode, SetterPlan
from bulkset.errors import UpdateCancelled
from bulkset.infrastructure.setters import MutatingSetters


def _composed() -> ComposedExpression:
    return ExpressionComposer(CapabilityMode.MUTATING).compose(SetterPlan())


class _SyncBackend:
    setter_type = MutatingSetters

    def __init__(self, count: int = 1) -> None:
        self.count = count
        self.calls: list[tuple[Any, Any, Any]] = []

    def execute_update(self, entity: Any, selection: Any, composed: Any) -> int:
        self.calls.append((entity, selection, composed))
        return self.count


class _AsyncBackend:
    setter_type = MutatingSetters

    def __init__(self, count: int = 1, *, hang: bool = False, error: Exception | None = None):
        self.count = count
        self.hang = hang
        self.error = error
        self.calls = 0
        self.started = asyncio.Event()
        self.was_cancelled = False

    async def execute_update_async(self, entity: Any, selection: Any, composed: Any) -> int:
        self.calls += 1
        self.started.set()
        if self.error is not None:
            raise self.error
        if self.hang:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.was_cancelled = True
                raise
        return self.count


class TestUpdateDispatcher:
    def test_passes_through(self) -> None:
        backend = _SyncBackend(count=4)
        composed = _composed()
        assert UpdateDispatcher(backend).apply("entity", "where", composed) == 4
        assert backend.calls == [("entity", "where", composed)]

    def test_backend_error_is_not_wrapped(self) -> None:
        class Boom(RuntimeError):
            pass

        class Failing(_SyncBackend):
            def execute_update(self, entity: Any, selection: Any, composed: Any) -> int:
                raise Boom("connection lost")

        with pytest.raises(Boom, match="connection lost"):
            UpdateDispatcher(Failing()).apply(None, None, _composed())


class TestAsyncUpdateDispatcher:
    @pytest.mark.asyncio
    async def test_without_signal(self) -> None:
        backend = _AsyncBackend(count=2)
        assert await AsyncUpdateDispatcher(backend).apply(None, None, _composed()) == 2

    @pytest.mark.asyncio
    async def test_unfired_signal(self) -> None:
        backend = _AsyncBackend(count=3)
        signal = asyncio.Event()
        result = await AsyncUpdateDispatcher(backend).apply(None, None, _composed(), signal)
        assert result == 3

    @pytest.mark.asyncio
    async def test_signal_already_set_skips_backend(self) -> None:
        backend = _AsyncBackend()
        signal = asyncio.Event()
        signal.set()
        with pytest.raises(UpdateCancelled):
            await AsyncUpdateDispatcher(backend).apply(None, None, _composed(), signal)
        assert backend.calls == 0

    @pytest.mark.asyncio
    async def test_signal_during_backend_cancels_it(self) -> None:
        backend = _AsyncBackend(hang=True)
        signal = asyncio.Event()
        task = asyncio.create_task(
            AsyncUpdateDispatcher(backend).apply(None, None, _composed(), signal)
        )
        await backend.started.wait()
        signal.set()
        with pytest.raises(UpdateCancelled):
            await task
        assert backend.was_cancelled

    @pytest.mark.asyncio
    async def test_backend_error_with_signal(self) -> None:
        backend = _AsyncBackend(error=ValueError("constraint"))
        with pytest.raises(ValueError, match="constraint"):
            await AsyncUpdateDispatcher(backend).apply(None, None, _composed(), asyncio.Event())

    @pytest.mark.asyncio
    async def test_outer_cancellation_cancels_backend(self) -> None:
        backend = _AsyncBackend(hang=True)
        task = asyncio.create_task(
            AsyncUpdateDispatcher(backend).apply(None, None, _composed(), asyncio.Event())
        )
        await backend.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)
        assert backend.was_cancelled

    @pytest.mark.asyncio
    async def test_cancel_after_deadline(self) -> None:
        backend = _AsyncBackend(hang=True)
        with pytest.raises(UpdateCancelled):
            await AsyncUpdateDispatcher(backend).apply(None, None, _composed(), cancel_after(0.01))
        assert backend.was_cancelled
