"""Value types shared across the resolve → coerce → compose pipeline.

All of these are immutable. A :class:`SetterPlan` is built fresh for each
request and never cached, since the values it carries differ per call.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class CapabilityMode(StrEnum):
    """The setter-composition shape a backend exposes."""

    CHAINED = "chained"  # set_property(accessor, expr) -> new builder
    MUTATING = "mutating"  # set_property(accessor, value) -> None


@dataclass(frozen=True)
class FieldSpec:
    """One resolved column of an entity.

    Attributes:
        name: Field name as the caller spelled it (exact match).
        python_type: The column's static Python type.
        nullable: Whether ``None`` is assignable.
        accessor: Column or instrumented attribute used as the SET target.
        sql_type: The SQLAlchemy ``TypeEngine`` of the column.
    """

    name: str
    python_type: type
    nullable: bool
    accessor: Any = field(repr=False, compare=False)
    sql_type: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class Assignment:
    """A typed ``field = value`` pair; ``value`` is already coerced."""

    field: FieldSpec
    value: Any

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def accessor(self) -> Any:
        return self.field.accessor

    @property
    def static_type(self) -> type:
        return self.field.python_type


@dataclass(frozen=True)
class SetterPlan:
    """Ordered, type-checked assignments for one update."""

    assignments: tuple[Assignment, ...] = ()

    def __iter__(self) -> Iterator[Assignment]:
        return iter(self.assignments)

    def __len__(self) -> int:
        return len(self.assignments)

    def as_dict(self) -> dict[str, Any]:
        """Field name → coerced value, in plan order."""
        return {a.name: a.value for a in self.assignments}


@dataclass(frozen=True)
class FieldUpdateRequest:
    """Ordered ``(field name, value)`` pairs with unique names.

    Duplicate names are collapsed when the request is built: the last
    value wins and keeps the slot of the first occurrence.
    """

    pairs: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Any]]) -> FieldUpdateRequest:
        merged: dict[str, Any] = {}
        for name, value in pairs:
            if not isinstance(name, str):
                msg = f"Field names must be str, got {type(name).__name__}"
                raise TypeError(msg)
            merged[name] = value
        return cls(pairs=tuple(merged.items()))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> FieldUpdateRequest:
        return cls.from_pairs(mapping.items())

    @classmethod
    def single(cls, field_name: str, value: Any) -> FieldUpdateRequest:
        return cls.from_pairs([(field_name, value)])

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    @property
    def field_names(self) -> list[str]:
        return [name for name, _ in self.pairs]
