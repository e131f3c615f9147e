"""One-time detection of a backend's setter-composition shape.

The probe reads the ``set_property`` method of a backend's setter type
(its ``typing.overload`` variants when it declares any) and classifies
the *value* parameter:

- a SQL expression (``ColumnElement`` subclass) or a ``Callable``, with a
  non-``None`` return → :attr:`CapabilityMode.CHAINED`;
- anything else → :attr:`CapabilityMode.MUTATING`.

Candidates with the exact ``(self, accessor, value)`` arity win over
looser ones (defaults, ``*args``). If the exact candidates disagree, or
only loose candidates exist, detection fails with
:class:`AmbiguousCapability` rather than guessing.

Results are cached per setter type for the life of the process and are
never re-probed. Failures are cached too.
"""

from __future__ import annotations

import collections.abc
import inspect
import threading
import typing
from typing import Any

import structlog
from sqlalchemy.sql import ColumnElement

from bulkset.domain.types import CapabilityMode
from bulkset.errors import AmbiguousCapability, CapabilityError, NoCompatibleShape

log = structlog.get_logger(__name__)

SETTER_METHOD = "set_property"

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def probe_setter_type(setter_type: type) -> CapabilityMode:
    """Classify *setter_type* by the shape of its ``set_property`` method.

    Raises:
        NoCompatibleShape: No ``set_property``, or no classifiable variant.
        AmbiguousCapability: No single most-specific variant.
    """
    method = inspect.getattr_static(setter_type, SETTER_METHOD, None)
    if not inspect.isfunction(method):
        msg = f"{setter_type.__qualname__} has no {SETTER_METHOD}() method"
        raise NoCompatibleShape(msg)

    candidates = list(typing.get_overloads(method)) or [method]
    exact = [fn for fn in candidates if _has_exact_arity(fn)]
    pool = exact or candidates
    shapes = {shape for fn in pool if (shape := _classify(fn)) is not None}

    if exact and len(shapes) == 1:
        return shapes.pop()
    if len(shapes) > 1:
        found = ", ".join(sorted(shapes))
        msg = f"{setter_type.__qualname__}.{SETTER_METHOD} matches several shapes: {found}"
        raise AmbiguousCapability(msg)
    if shapes:
        msg = (
            f"{setter_type.__qualname__}.{SETTER_METHOD} has no variant with an exact "
            "(accessor, value) signature"
        )
        raise AmbiguousCapability(msg)
    msg = f"{setter_type.__qualname__}.{SETTER_METHOD} matches no known setter shape"
    raise NoCompatibleShape(msg)


def _has_exact_arity(fn: Any) -> bool:
    params = list(inspect.signature(fn).parameters.values())
    positional = [p for p in params if p.kind in _POSITIONAL]
    if len(positional) != 3 or len(params) != 3:
        return False
    return all(p.default is inspect.Parameter.empty for p in positional[1:])


def _classify(fn: Any) -> CapabilityMode | None:
    params = list(inspect.signature(fn).parameters.values())
    if len(params) < 3 or any(p.kind in _VARIADIC for p in params[:3]):
        return None
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        log.debug("capability.unresolved_hints", function=fn.__qualname__)
        return None

    value_hint = hints.get(params[2].name, Any)
    if _is_expression_hint(value_hint):
        returns = hints.get("return", type(None))
        if returns is type(None):
            return None
        return CapabilityMode.CHAINED
    return CapabilityMode.MUTATING


def _is_expression_hint(hint: Any) -> bool:
    origin = typing.get_origin(hint) or hint
    if origin is collections.abc.Callable:
        return True
    return isinstance(origin, type) and issubclass(origin, ColumnElement)


class CapabilityCache:
    """Write-once map of setter type → detected :class:`CapabilityMode`.

    Reads are lock-free once an entry exists. The first lookup for a
    type takes the lock, re-checks, and probes, so concurrent first calls
    agree on one result and the probe runs once.
    """

    def __init__(
        self,
        probe: collections.abc.Callable[[type], CapabilityMode] = probe_setter_type,
    ) -> None:
        self._probe = probe
        self._lock = threading.Lock()
        self._entries: dict[type, CapabilityMode | CapabilityError] = {}

    def mode_for(self, setter_type: type) -> CapabilityMode:
        entry = self._entries.get(setter_type)
        if entry is None:
            with self._lock:
                entry = self._entries.get(setter_type)
                if entry is None:
                    entry = self._detect(setter_type)
                    self._entries[setter_type] = entry
        if isinstance(entry, CapabilityError):
            raise entry
        return entry

    def _detect(self, setter_type: type) -> CapabilityMode | CapabilityError:
        try:
            mode = self._probe(setter_type)
        except CapabilityError as exc:
            log.error("capability.failed", setter_type=setter_type.__qualname__, error=str(exc))
            return exc
        log.info("capability.detected", setter_type=setter_type.__qualname__, mode=str(mode))
        return mode

    def __contains__(self, setter_type: object) -> bool:
        return setter_type in self._entries


_default_cache = CapabilityCache()


def detect_capability(setter_type: type) -> CapabilityMode:
    """Return the process-wide cached mode for *setter_type*."""
    return _default_cache.mode_for(setter_type)


def default_cache() -> CapabilityCache:
    return _default_cache
