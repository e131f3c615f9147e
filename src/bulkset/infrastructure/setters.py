"""Setter-composition builders exposed by the SQLAlchemy backends.

A backend hands an empty builder to a composed expression and turns the
filled builder into the ``SET`` clause of an ``UPDATE``. Two builders
exist, with incompatible calling conventions:

- :class:`ChainedSetters`: immutable. ``set_property(accessor, expr)``
  takes a SQL *expression* for the new value and returns a new builder.
- :class:`MutatingSetters`: ``set_property(accessor, value)`` takes the
  bare value, records it in place and returns ``None``.

The value-parameter annotations below are what capability detection
reads, so they must stay resolvable at runtime.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.sql import ColumnElement

_T = TypeVar("_T")


class ChainedSetters:
    """Fluent, immutable setter chain."""

    __slots__ = ("_pairs",)

    def __init__(self, pairs: tuple[tuple[Any, ColumnElement[Any]], ...] = ()) -> None:
        self._pairs = pairs

    def set_property(self, accessor: Any, value: ColumnElement[Any]) -> ChainedSetters:
        return ChainedSetters((*self._pairs, (accessor, value)))

    def as_values(self) -> dict[Any, Any]:
        return dict(self._pairs)

    @classmethod
    def collect(cls, body: Callable[[ChainedSetters], ChainedSetters]) -> dict[Any, Any]:
        """Run *body* on an empty chain and return the resulting ``SET`` mapping."""
        return body(cls()).as_values()

    def __len__(self) -> int:
        return len(self._pairs)


class MutatingSetters:
    """Setter accumulator mutated in place."""

    def __init__(self) -> None:
        self._values: dict[Any, Any] = {}

    def set_property(self, accessor: Any, value: _T) -> None:
        self._values[accessor] = value

    def as_values(self) -> dict[Any, Any]:
        return dict(self._values)

    @classmethod
    def collect(cls, body: Callable[[MutatingSetters], object]) -> dict[Any, Any]:
        """Run *body* against a fresh accumulator; its return value is ignored."""
        setters = cls()
        body(setters)
        return setters.as_values()

    def __len__(self) -> int:
        return len(self._values)


SETTER_TYPES: dict[str, type[ChainedSetters] | type[MutatingSetters]] = {
    "chained": ChainedSetters,
    "mutating": MutatingSetters,
}
