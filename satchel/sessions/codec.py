"""
SatchelSessions - Value codec.

Converts session values into a tagged, JSON-safe form and back:

    {"t": "Number", "d": 22}
    {"t": "Object", "d": {"age": {"t": "Number", "d": 22}}}

The set of tags is closed (ValueKind). Encoding anything outside it raises
UnsupportedValueTypeFault; decoding an unknown or ill-shaped tag raises
MalformedEncodedValueFault.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping

from bson import ObjectId
from bson.errors import InvalidId

from .faults import MalformedEncodedValueFault, UnsupportedValueTypeFault


# ============================================================================
# ValueKind - closed set of type tags
# ============================================================================

class ValueKind(str, Enum):
    """Type tags written to the ``t`` field of an encoded value."""

    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATE = "Date"
    OBJECT = "Object"
    ARRAY = "Array"
    OBJECT_ID = "ObjectId"

    @classmethod
    def _missing_(cls, value):
        # Older records spell the identifier tag "ObjectID"
        if value == "ObjectID":
            return cls.OBJECT_ID
        return None


def kind_of(value: Any) -> ValueKind:
    """
    Classify a value into its ValueKind.

    Raises:
        UnsupportedValueTypeFault: If the value is outside the supported set
    """
    # bool is an int subclass, so it must be checked first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, datetime):
        return ValueKind.DATE
    if isinstance(value, ObjectId):
        return ValueKind.OBJECT_ID
    if isinstance(value, Mapping):
        return ValueKind.OBJECT
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    raise UnsupportedValueTypeFault(type(value).__name__)


def is_prunable(value: Any) -> bool:
    """Absent values and empty containers are never persisted."""
    if value is None:
        return True
    if isinstance(value, (Mapping, list, tuple)):
        return len(value) == 0
    return False


# ============================================================================
# Encoders
# ============================================================================

def _encode_object(value: Mapping) -> dict[str, Any]:
    encoded = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise UnsupportedValueTypeFault(f"{type(key).__name__} key")
        if item is None:
            continue
        encoded[key] = encode(item)
    return encoded


ENCODERS: dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.STRING: lambda value: value,
    ValueKind.NUMBER: lambda value: value,
    ValueKind.BOOLEAN: lambda value: value,
    ValueKind.DATE: lambda value: value.isoformat(),
    ValueKind.OBJECT_ID: lambda value: str(value),
    ValueKind.OBJECT: _encode_object,
    ValueKind.ARRAY: lambda value: [encode(item) for item in value],
}


def encode(value: Any) -> dict[str, Any]:
    """
    Encode a value into its tagged form.

    Args:
        value: Any supported session value

    Returns:
        ``{"t": <tag>, "d": <payload>}``

    Raises:
        UnsupportedValueTypeFault: If the value (or a nested value) is unsupported
    """
    kind = kind_of(value)
    return {"t": kind.value, "d": ENCODERS[kind](value)}


# ============================================================================
# Decoders
# ============================================================================

def _decode_string(payload: Any) -> str:
    if not isinstance(payload, str):
        raise MalformedEncodedValueFault(f"String payload is a {type(payload).__name__}")
    return payload


def _decode_number(payload: Any) -> int | float:
    if isinstance(payload, (int, float)) and not isinstance(payload, bool):
        return payload
    if isinstance(payload, str):
        try:
            return int(payload)
        except ValueError:
            pass
        try:
            return float(payload)
        except ValueError:
            pass
    raise MalformedEncodedValueFault(f"Number payload {payload!r} is not numeric")


def _decode_boolean(payload: Any) -> bool:
    if isinstance(payload, bool):
        return payload
    if isinstance(payload, str):
        return payload in ("true", "1")
    raise MalformedEncodedValueFault(f"Boolean payload is a {type(payload).__name__}")


def _decode_date(payload: Any) -> datetime:
    if not isinstance(payload, str):
        raise MalformedEncodedValueFault(f"Date payload is a {type(payload).__name__}")
    text = payload[:-1] + "+00:00" if payload.endswith("Z") else payload
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise MalformedEncodedValueFault(f"Date payload {payload!r}: {e}") from e


def _decode_object_id(payload: Any) -> ObjectId:
    try:
        return ObjectId(payload)
    except (InvalidId, TypeError) as e:
        raise MalformedEncodedValueFault(str(e)) from e


def _legacy_json(payload: str, expected: type) -> Any:
    # Older records stored containers as plain JSON text
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedEncodedValueFault(f"invalid JSON container: {e}") from e
    if not isinstance(value, expected):
        raise MalformedEncodedValueFault(f"expected {expected.__name__}, got {type(value).__name__}")
    return value


def _decode_object(payload: Any) -> dict[str, Any]:
    if isinstance(payload, str):
        return _legacy_json(payload, dict)
    if not isinstance(payload, dict):
        raise MalformedEncodedValueFault(f"Object payload is a {type(payload).__name__}")
    return {key: decode(item) for key, item in payload.items()}


def _decode_array(payload: Any) -> list[Any]:
    if isinstance(payload, str):
        return _legacy_json(payload, list)
    if not isinstance(payload, list):
        raise MalformedEncodedValueFault(f"Array payload is a {type(payload).__name__}")
    return [decode(item) for item in payload]


DECODERS: dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.STRING: _decode_string,
    ValueKind.NUMBER: _decode_number,
    ValueKind.BOOLEAN: _decode_boolean,
    ValueKind.DATE: _decode_date,
    ValueKind.OBJECT_ID: _decode_object_id,
    ValueKind.OBJECT: _decode_object,
    ValueKind.ARRAY: _decode_array,
}


def decode(tagged: Any) -> Any:
    """
    Decode a tagged value produced by :func:`encode`.

    Raises:
        MalformedEncodedValueFault: If the tag is unknown or the payload
            does not match it
    """
    if not isinstance(tagged, dict) or "t" not in tagged or "d" not in tagged:
        raise MalformedEncodedValueFault(f"expected a {{t, d}} object, got {tagged!r:.80}")

    try:
        kind = ValueKind(tagged["t"])
    except ValueError:
        raise MalformedEncodedValueFault(f"unknown type tag {tagged['t']!r}") from None

    return DECODERS[kind](tagged["d"])


# ============================================================================
# Mapping helpers
# ============================================================================

def encode_mapping(values: Mapping[str, Any]) -> dict[str, Any]:
    """Encode every top-level key, pruning absent values and empty containers."""
    return {
        key: encode(value)
        for key, value in values.items()
        if not is_prunable(value)
    }


def decode_mapping(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Decode every top-level key of an encoded store."""
    return {key: decode(value) for key, value in payload.items()}
