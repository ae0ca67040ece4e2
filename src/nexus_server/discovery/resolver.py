"""Bind untyped request payload keys to declared parameter names.

Callers may spell a parameter ``user_id``, ``userId``, ``UserID`` or
``USER_ID``; each declared parameter is resolved against the whole payload
with three rules, first match wins:

1. exact key
2. case-insensitive key
3. case- and separator-insensitive key

Within a rule, payload keys are tried in insertion order.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from ..errors import ParameterNotFound
from ..naming import normalize

logger = structlog.get_logger(__name__)

_INT_TYPES = {"int", "integer"}
_FLOAT_TYPES = {"float", "number"}
_STR_TYPES = {"str", "string"}


def resolve(payload: Mapping[str, Any], declared_name: str) -> Any:
    """Return the payload value bound to *declared_name*.

    Raises :class:`ParameterNotFound` when no key matches under any rule.
    """
    key = match_key(payload, declared_name)
    if key is None:
        raise ParameterNotFound(declared_name)
    return payload[key]


def match_key(payload: Mapping[str, Any], declared_name: str) -> str | None:
    """Return the payload key that *declared_name* binds to, or None."""
    if declared_name in payload:
        return declared_name

    lowered = declared_name.lower()
    for key in payload:
        if key.lower() == lowered:
            return key

    normalized = normalize(declared_name)
    for key in payload:
        if normalize(key) == normalized:
            return key
    return None


def coerce(value: Any, declared_type: str) -> Any:
    """Best-effort conversion of a decoded JSON value to *declared_type*.

    Only numeric narrowing/widening is performed. Every other combination is
    passed through unchanged and may not match the declared type.
    """
    base = declared_type.replace(" ", "")
    if isinstance(value, bool):
        return value
    if base in _INT_TYPES and isinstance(value, float):
        # JSON numbers may arrive as floats; narrow by truncation.
        return int(value)
    if base in _FLOAT_TYPES and isinstance(value, int):
        return float(value)
    if base in _STR_TYPES and isinstance(value, str):
        return value
    if not _is_instance_of(value, base):
        logger.debug(
            "Coercion ambiguous, passing through",
            declared_type=declared_type,
            actual_type=type(value).__name__,
        )
    return value


def _is_instance_of(value: Any, base: str) -> bool:
    if base in _INT_TYPES:
        return isinstance(value, int)
    if base in _FLOAT_TYPES:
        return isinstance(value, float)
    if base in _STR_TYPES:
        return isinstance(value, str)
    return False
