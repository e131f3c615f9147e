"""Exception hierarchy for bulkset.

Every failure the library raises itself derives from :class:`BulkSetError`.
Errors raised by the execution backend (``sqlalchemy.exc.*``, driver
errors) are never wrapped and reach the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class BulkSetError(Exception):
    """Base class for all bulkset errors."""


# --- Schema ---


class SchemaError(BulkSetError):
    """A field name could not be resolved to a usable column."""


class FieldNotFound(SchemaError):
    def __init__(self, field_name: str, entity: Any = None) -> None:
        self.field_name = field_name
        self.entity = entity
        where = f" on {_entity_name(entity)}" if entity is not None else ""
        super().__init__(f"Field {field_name!r} not found{where}")


class UnsupportedFieldType(SchemaError):
    """The column exists but is not a flat scalar."""

    def __init__(self, field_name: str, python_type: Any) -> None:
        self.field_name = field_name
        self.python_type = python_type
        super().__init__(
            f"Field {field_name!r} has unsupported type {_type_name(python_type)}; "
            "only flat scalar columns can be assigned"
        )


# --- Coercion ---


class CoercionError(BulkSetError):
    """A runtime value could not be converted to the field's static type."""

    def __init__(self, field_name: str, target_type: type, message: str) -> None:
        self.field_name = field_name
        self.target_type = target_type
        super().__init__(message)


class NullNotAllowed(CoercionError):
    def __init__(self, field_name: str, target_type: type) -> None:
        super().__init__(
            field_name,
            target_type,
            f"Cannot assign None to non-nullable field {field_name!r} "
            f"of type {_type_name(target_type)}",
        )


class ConversionFailed(CoercionError):
    def __init__(
        self,
        field_name: str,
        source_type: type,
        target_type: type,
        cause: BaseException | None = None,
    ) -> None:
        self.source_type = source_type
        self.cause = cause
        msg = (
            f"Cannot convert {_type_name(source_type)} to {_type_name(target_type)} "
            f"for field {field_name!r}"
        )
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(field_name, target_type, msg)


# --- Capability detection ---


class CapabilityError(BulkSetError):
    """The backend's setter type could not be classified.

    Raised at first detection and cached: every later update against the
    same setter type raises the same error.
    """


class AmbiguousCapability(CapabilityError):
    pass


class NoCompatibleShape(CapabilityError):
    pass


# --- Request / dispatch ---


class InvalidQuery(BulkSetError):
    """The selection query does not target exactly one table or entity."""


class EmptyUpdate(BulkSetError):
    """An update request with no fields."""

    def __init__(self) -> None:
        super().__init__("No fields to update")


class UpdateCancelled(BulkSetError):
    """The cancellation signal fired before the backend finished."""

    def __init__(self) -> None:
        super().__init__("Bulk update cancelled")


def _type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)


def _entity_name(entity: Any) -> str:
    # Core Table has .name; mapped classes have __name__
    return getattr(entity, "__name__", None) or getattr(entity, "name", None) or repr(entity)
