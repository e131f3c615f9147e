"""Setter Plan construction: resolve → coerce → append, per requested field.

Fail-fast: the first unknown field or unconvertible value propagates and
no partial plan is returned. All names are resolved before any value is
coerced, so an unknown field is reported ahead of any bad value.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bulkset.domain.coercion import ValueCoercer
from bulkset.domain.types import Assignment, FieldUpdateRequest, SetterPlan
from bulkset.errors import EmptyUpdate
from bulkset.infrastructure.schema import SqlAlchemySchema

if TYPE_CHECKING:
    from bulkset.infrastructure.schema import SchemaResolver

logger = logging.getLogger(__name__)


class SetterPlanBuilder:
    """Turn a :class:`FieldUpdateRequest` into a typed :class:`SetterPlan`."""

    def __init__(
        self,
        resolver: SchemaResolver | None = None,
        coercer: ValueCoercer | None = None,
    ) -> None:
        self._resolver = resolver or SqlAlchemySchema()
        self._coercer = coercer or ValueCoercer()

    def build(self, entity: Any, request: FieldUpdateRequest) -> SetterPlan:
        """Build the plan for *request* against *entity*.

        Raises:
            EmptyUpdate: *request* names no fields.
            FieldNotFound, UnsupportedFieldType: from the resolver.
            NullNotAllowed, ConversionFailed: from the coercer.
        """
        if not len(request):
            raise EmptyUpdate()

        specs = [self._resolver.resolve(entity, name) for name in request.field_names]
        assignments = [
            Assignment(field=spec, value=self._coercer.coerce(spec, raw))
            for spec, (_, raw) in zip(specs, request, strict=True)
        ]

        logger.debug("Built setter plan: %s", [a.name for a in assignments])
        return SetterPlan(assignments=tuple(assignments))


def build_plan(entity: Any, request: FieldUpdateRequest) -> SetterPlan:
    """Build a plan with the default SQLAlchemy resolver and coercion table."""
    return SetterPlanBuilder().build(entity, request)
