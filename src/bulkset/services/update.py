"""FieldUpdateService — bulk field updates as ServiceResult.

Pipeline: PLAN → COMPOSE → DISPATCH → RESPOND

Errors bulkset detects itself (unknown field, bad value, undetectable
setter shape, cancellation, malformed query) come back as ``ok=False``
results with a stable error code. Backend errors are not translated and
propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from bulkset.core.updater import UNSET, BulkUpdater, FieldsArg
from bulkset.errors import (
    BulkSetError,
    CapabilityError,
    ConversionFailed,
    EmptyUpdate,
    FieldNotFound,
    InvalidQuery,
    NullNotAllowed,
    UnsupportedFieldType,
    UpdateCancelled,
)
from bulkset.services.result import ServiceError, ServiceResult
from bulkset.services.telemetry import get_current_span, trace_span, traced

if TYPE_CHECKING:
    from sqlalchemy import Select

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases.
_ERROR_CODES: tuple[tuple[type[BulkSetError], str], ...] = (
    (FieldNotFound, "FIELD_NOT_FOUND"),
    (UnsupportedFieldType, "UNSUPPORTED_FIELD_TYPE"),
    (NullNotAllowed, "NULL_NOT_ALLOWED"),
    (ConversionFailed, "CONVERSION_FAILED"),
    (CapabilityError, "CAPABILITY_ERROR"),
    (UpdateCancelled, "CANCELLED"),
    (InvalidQuery, "INVALID_QUERY"),
    (EmptyUpdate, "EMPTY_UPDATE"),
)


class FieldUpdateService:
    """Service facade over :class:`BulkUpdater`."""

    def __init__(self, updater: BulkUpdater) -> None:
        self._updater = updater

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def update(self, query: Select[Any], fields: FieldsArg, value: Any = UNSET) -> ServiceResult:
        """Run a blocking bulk update and report the affected row count."""
        op = "update_fields"
        try:
            with trace_span("prepare"):
                entity, selection, composed = self._updater.prepare(query, fields, value)
            with trace_span("dispatch"):
                count = self._updater.dispatch(entity, selection, composed)
        except BulkSetError as exc:
            return _error_result(op, exc)

        return _success(op, composed, count)

    @traced
    async def update_async(
        self,
        query: Select[Any],
        fields: FieldsArg,
        value: Any = UNSET,
        *,
        cancellation: asyncio.Event | None = None,
    ) -> ServiceResult:
        """Awaitable :meth:`update` honouring *cancellation*."""
        op = "update_fields"
        try:
            with trace_span("prepare"):
                entity, selection, composed = self._updater.prepare(query, fields, value)
            with trace_span("dispatch"):
                count = await self._updater.dispatch_async(
                    entity, selection, composed, cancellation
                )
        except BulkSetError as exc:
            return _error_result(op, exc)

        return _success(op, composed, count)

    @traced
    def preview(self, query: Select[Any], fields: FieldsArg, value: Any = UNSET) -> ServiceResult:
        """Dry run: resolve and coerce, report the values that would be set."""
        op = "preview_fields"
        try:
            plan = self._updater.plan(query, fields, value)
        except BulkSetError as exc:
            return _error_result(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "fields": plan.as_dict(),
                "types": {a.name: a.static_type.__name__ for a in plan},
            },
        )


def _success(op: str, composed: Any, count: int) -> ServiceResult:
    warnings: list[str] = []
    if count == 0:
        warnings.append("Selection matched no rows")
    span = get_current_span()
    if span is not None:
        span.annotate("rows", count)
    return ServiceResult(
        ok=True,
        op=op,
        data={
            "affected": count,
            "fields": list(composed.plan.as_dict()),
            "mode": str(composed.mode),
        },
        warnings=warnings,
    )


def _error_result(op: str, exc: BulkSetError) -> ServiceResult:
    code = next((c for cls, c in _ERROR_CODES if isinstance(exc, cls)), "UPDATE_FAILED")
    detail: dict[str, Any] = {}
    field_name = getattr(exc, "field_name", None)
    if field_name is not None:
        detail["field"] = field_name
    logger.debug("%s failed: %s (%s)", op, code, exc)
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=str(exc), detail=detail),
    )
