"""Runtime value coercion to a field's exact static type.

Rules, applied in order:

1. ``None`` is accepted for nullable fields and rejected otherwise.
2. A value whose type *is* the target type is returned unchanged. The
   check is exact: ``True`` is not an ``int`` and a ``datetime`` is not a
   ``date`` here.
3. Nullable fields coerce against the underlying type. ``Optional[T]`` has
   no runtime wrapper in Python, so the coerced ``T`` already is the
   nullable value.
4. Everything else goes through :data:`COERCIONS`, a table keyed by
   ``(source kind, target kind)`` over a fixed set of scalar kinds.

After step 4 the result's type is checked again; no converter may hand
back a near-miss type for the backend to narrow later.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Callable, Mapping
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from bulkset.errors import ConversionFailed, NullNotAllowed

if TYPE_CHECKING:
    from bulkset.domain.types import FieldSpec


class ScalarKind(enum.StrEnum):
    """Scalar families the coercion table knows about."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    STR = "str"
    BYTES = "bytes"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    TIMEDELTA = "timedelta"
    UUID = "uuid"
    ENUM = "enum"


_KIND_BY_TYPE: dict[type, ScalarKind] = {
    bool: ScalarKind.BOOL,
    int: ScalarKind.INT,
    float: ScalarKind.FLOAT,
    Decimal: ScalarKind.DECIMAL,
    str: ScalarKind.STR,
    bytes: ScalarKind.BYTES,
    date: ScalarKind.DATE,
    datetime: ScalarKind.DATETIME,
    time: ScalarKind.TIME,
    timedelta: ScalarKind.TIMEDELTA,
    uuid.UUID: ScalarKind.UUID,
}


def kind_of(tp: type) -> ScalarKind | None:
    """Classify *tp* into a :class:`ScalarKind`, or None if unsupported.

    Enum classes (including ``StrEnum``/``IntEnum``) are always ENUM.
    Other subclasses fall back to their nearest known base.
    """
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return ScalarKind.ENUM
    for base in getattr(tp, "__mro__", (tp,)):
        kind = _KIND_BY_TYPE.get(base)
        if kind is not None:
            return kind
    return None


Converter = Callable[[Any, type], Any]

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


# --- numeric ---


def _int_to_float(value: int, _: type) -> float:
    result = float(value)
    if int(result) != value:
        msg = f"{value} is not exactly representable as float"
        raise ValueError(msg)
    return result


def _float_to_int(value: float, _: type) -> int:
    if not value.is_integer():
        msg = f"{value!r} is not integral"
        raise ValueError(msg)
    return int(value)


def _decimal_to_int(value: Decimal, _: type) -> int:
    if not value.is_finite() or value != value.to_integral_value():
        msg = f"{value} is not integral"
        raise ValueError(msg)
    return int(value)


def _decimal_to_float(value: Decimal, _: type) -> float:
    result = float(value)
    if value.is_finite() and Decimal(repr(result)) != value:
        msg = f"{value} is not exactly representable as float"
        raise ValueError(msg)
    return result


def _int_to_bool(value: int, _: type) -> bool:
    if value not in (0, 1):
        msg = f"{value} is not 0 or 1"
        raise ValueError(msg)
    return bool(value)


# --- text ---


def _to_str(value: Any, _: type) -> str:
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def _str_to_bool(value: str, _: type) -> bool:
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    msg = f"{value!r} is not a boolean literal"
    raise ValueError(msg)


def _str_to_datetime(value: str, _: type) -> datetime:
    text = value.strip()
    # fromisoformat accepts a bare date too; keep that as midnight
    return datetime.fromisoformat(text)


def _str_to_date(value: str, _: type) -> date:
    text = value.strip()
    if "T" in text or " " in text:
        return _datetime_to_date(datetime.fromisoformat(text), date)
    return date.fromisoformat(text)


# --- temporal ---


def _date_to_datetime(value: date, _: type) -> datetime:
    return datetime.combine(value, time.min)


def _datetime_to_date(value: datetime, _: type) -> date:
    if (value.hour, value.minute, value.second, value.microsecond) != (0, 0, 0, 0):
        msg = f"{value.isoformat()} has a non-zero time part"
        raise ValueError(msg)
    return value.date()


def _to_timedelta(value: float, _: type) -> timedelta:
    return timedelta(seconds=value)


# --- enum ---


def _to_enum(value: Any, target: type) -> Any:
    """Look up an enum member by value, then by name."""
    raw = value.value if isinstance(value, enum.Enum) else value
    try:
        return target(raw)
    except ValueError:
        if isinstance(value, enum.Enum):
            return target[value.name]  # type: ignore[index]
        if isinstance(raw, str):
            return target[raw.strip()]  # type: ignore[index]
        raise


def _enum_to_int(value: enum.Enum, _: type) -> int:
    if type(value.value) is not int:
        msg = f"{value!r} does not carry an int value"
        raise TypeError(msg)
    return value.value


K = ScalarKind

COERCIONS: dict[tuple[ScalarKind, ScalarKind], Converter] = {
    # subclass of a builtin scalar -> the builtin itself
    (K.STR, K.STR): lambda v, t: t(v),
    (K.INT, K.INT): lambda v, t: t(v),
    (K.FLOAT, K.FLOAT): lambda v, t: t(v),
    # numeric widening
    (K.BOOL, K.INT): lambda v, _: int(v),
    (K.BOOL, K.FLOAT): lambda v, _: float(v),
    (K.BOOL, K.DECIMAL): lambda v, _: Decimal(int(v)),
    (K.INT, K.FLOAT): _int_to_float,
    (K.INT, K.DECIMAL): lambda v, _: Decimal(v),
    (K.FLOAT, K.DECIMAL): lambda v, _: Decimal(repr(v)),
    # exact narrowing
    (K.INT, K.BOOL): _int_to_bool,
    (K.FLOAT, K.INT): _float_to_int,
    (K.DECIMAL, K.INT): _decimal_to_int,
    (K.DECIMAL, K.FLOAT): _decimal_to_float,
    # parsing
    (K.STR, K.BOOL): _str_to_bool,
    (K.STR, K.INT): lambda v, _: int(v.strip()),
    (K.STR, K.FLOAT): lambda v, _: float(v.strip()),
    (K.STR, K.DECIMAL): lambda v, _: Decimal(v.strip()),
    (K.STR, K.DATE): _str_to_date,
    (K.STR, K.DATETIME): _str_to_datetime,
    (K.STR, K.TIME): lambda v, _: time.fromisoformat(v.strip()),
    (K.STR, K.UUID): lambda v, _: uuid.UUID(v.strip()),
    (K.STR, K.BYTES): lambda v, _: v.encode("utf-8"),
    (K.STR, K.ENUM): _to_enum,
    # temporal
    (K.DATE, K.DATETIME): _date_to_datetime,
    (K.DATETIME, K.DATE): _datetime_to_date,
    (K.INT, K.TIMEDELTA): _to_timedelta,
    (K.FLOAT, K.TIMEDELTA): _to_timedelta,
    # binary
    (K.BYTES, K.STR): lambda v, _: v.decode("utf-8"),
    (K.BYTES, K.UUID): lambda v, _: uuid.UUID(bytes=v),
    (K.UUID, K.BYTES): lambda v, _: v.bytes,
    # enum
    (K.INT, K.ENUM): _to_enum,
    (K.ENUM, K.ENUM): _to_enum,
    (K.ENUM, K.INT): _enum_to_int,
}

# Every scalar renders to text.
for _kind in ScalarKind:
    if _kind is not K.STR:
        COERCIONS.setdefault((_kind, K.STR), _to_str)
del _kind


def coerce_value(
    target_type: type,
    nullable: bool,
    value: Any,
    *,
    field_name: str = "<value>",
    table: Mapping[tuple[ScalarKind, ScalarKind], Converter] = COERCIONS,
) -> Any:
    """Return *value* converted to exactly *target_type*.

    Raises:
        NullNotAllowed: *value* is None and the field is not nullable.
        ConversionFailed: no table entry, or the converter rejected *value*.
    """
    if value is None:
        if nullable:
            return None
        raise NullNotAllowed(field_name, target_type)

    if type(value) is target_type:
        return value

    if nullable:
        return coerce_value(target_type, False, value, field_name=field_name, table=table)

    source_type = type(value)
    source_kind = kind_of(source_type)
    target_kind = kind_of(target_type)
    converter = None
    if source_kind is not None and target_kind is not None:
        converter = table.get((source_kind, target_kind))
    if converter is None:
        raise ConversionFailed(field_name, source_type, target_type)

    try:
        result = converter(value, target_type)
    except (ValueError, TypeError, ArithmeticError, LookupError) as exc:
        raise ConversionFailed(field_name, source_type, target_type, exc) from exc

    if type(result) is not target_type:
        raise ConversionFailed(
            field_name,
            source_type,
            target_type,
            TypeError(f"converter returned {type(result).__name__}"),
        )
    return result


class ValueCoercer:
    """Coerce values against resolved :class:`FieldSpec` entries."""

    def __init__(
        self,
        table: Mapping[tuple[ScalarKind, ScalarKind], Converter] | None = None,
    ) -> None:
        self._table = COERCIONS if table is None else table

    def coerce(self, field: FieldSpec, value: Any) -> Any:
        return coerce_value(
            field.python_type,
            field.nullable,
            value,
            field_name=field.name,
            table=self._table,
        )
