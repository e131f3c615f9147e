"""Compose a SetterPlan into the update expression a backend expects.

Composition goes through a small closed interface,
``compose_assignment(accumulator, assignment) -> accumulator``, with one
strategy per :class:`CapabilityMode`:

- chained: ``acc.set_property(accessor, literal(value))``; the returned
  builder becomes the new accumulator, folding left to right;
- mutating: ``acc.set_property(accessor, value)``; the return value is
  discarded and the same accumulator carries on.

Both keep plan order, so a later assignment to a field would override an
earlier one. The plan never holds duplicates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import literal

from bulkset.core.capability import CapabilityCache, default_cache
from bulkset.domain.types import Assignment, CapabilityMode, SetterPlan


class SetterStrategy(Protocol):
    mode: CapabilityMode

    def compose_assignment(self, accumulator: Any, assignment: Assignment) -> Any: ...


class ChainedStrategy:
    mode = CapabilityMode.CHAINED

    def compose_assignment(self, accumulator: Any, assignment: Assignment) -> Any:
        value_expr = literal(assignment.value, type_=assignment.field.sql_type)
        return accumulator.set_property(assignment.accessor, value_expr)


class MutatingStrategy:
    mode = CapabilityMode.MUTATING

    def compose_assignment(self, accumulator: Any, assignment: Assignment) -> Any:
        accumulator.set_property(assignment.accessor, assignment.value)
        return accumulator


STRATEGIES: dict[CapabilityMode, SetterStrategy] = {
    CapabilityMode.CHAINED: ChainedStrategy(),
    CapabilityMode.MUTATING: MutatingStrategy(),
}


@dataclass(frozen=True)
class ComposedExpression:
    """Opaque "apply every assignment" expression, built per request.

    Call it with an empty setter builder of the detected shape. Chained
    builders get the final builder back; mutating builders are filled in
    place (the return value is the same builder and may be ignored).
    """

    mode: CapabilityMode
    plan: SetterPlan
    _strategy: SetterStrategy = field(repr=False, compare=False)

    def __call__(self, setters: Any) -> Any:
        acc = setters
        for assignment in self.plan:
            acc = self._strategy.compose_assignment(acc, assignment)
        return acc


class ExpressionComposer:
    """Compose plans for one fixed :class:`CapabilityMode`."""

    def __init__(self, mode: CapabilityMode) -> None:
        self.mode = mode
        self._strategy = STRATEGIES[mode]

    @classmethod
    def for_setter_type(
        cls,
        setter_type: type,
        cache: CapabilityCache | None = None,
    ) -> ExpressionComposer:
        """Detect (or reuse the cached) mode for *setter_type*."""
        mode = (cache or default_cache()).mode_for(setter_type)
        return cls(mode)

    def compose(self, plan: SetterPlan) -> ComposedExpression:
        return ComposedExpression(mode=self.mode, plan=plan, _strategy=self._strategy)
