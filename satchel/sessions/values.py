"""
SatchelSessions - Values store.

In-memory map of session values addressed by dotted key paths
("user.profile.age"). Tracks whether it was modified so the session
can choose between writing and touching the backend at commit.

- ReadOnlyValuesStore: get/has/all and serialization
- ValuesStore: adds mutations and dirtiness tracking
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Mapping

from .codec import decode_mapping, encode_mapping, is_prunable
from .faults import MalformedEncodedValueFault, NotANumberFault

logger = logging.getLogger("satchel.sessions.values")

_MISSING = object()


def _parts(path: str) -> list[str]:
    return path.split(".")


def _is_index(part: str) -> bool:
    return part.isascii() and part.isdigit()


def _lookup(values: Any, path: str) -> Any:
    current = values
    for part in _parts(path):
        if isinstance(current, Mapping):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, list) and _is_index(part) and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _deep_merge(target: dict, source: Mapping) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        elif isinstance(value, Mapping):
            target[key] = copy.deepcopy(dict(value))
        else:
            target[key] = copy.deepcopy(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ============================================================================
# ReadOnlyValuesStore
# ============================================================================

class ReadOnlyValuesStore:
    """
    Read-only view over session values.

    Used for the flash messages carried over from the previous request.
    """

    def __init__(self, values: Mapping[str, Any] | None = None):
        self.values: dict[str, Any] = dict(values) if values else {}

    @property
    def is_empty(self) -> bool:
        """True when no value survives pruning."""
        return all(is_prunable(value) for value in self.values.values())

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get value for a dotted key path.

        Returns ``default`` when the value is missing or None.
        """
        value = _lookup(self.values, key)
        if value is _MISSING or value is None:
            return default
        return value

    def has(self, key: str, check_array_length: bool = True) -> bool:
        """
        Check whether a value exists for the given key.

        Args:
            key: Dotted key path
            check_array_length: Treat empty lists as absent
        """
        value = self.get(key)
        if value is None:
            return False
        if isinstance(value, list) and check_array_length:
            return len(value) > 0
        return True

    def all(self) -> dict[str, Any]:
        """Return a copy of all values."""
        return copy.deepcopy(self.values)

    def to_json(self) -> dict[str, Any]:
        """
        Codec-encoded representation, ready for a storage backend.

        Raises:
            UnsupportedValueTypeFault: If a value cannot be encoded
        """
        return encode_mapping(self.values)

    def to_string(self) -> str:
        return json.dumps(self.to_json())

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(keys={sorted(self.values)})"


# ============================================================================
# ValuesStore
# ============================================================================

class ValuesStore(ReadOnlyValuesStore):
    """
    Mutable session values with dirtiness tracking.

    Every mutating call flips ``has_been_modified``; reads never do.

    Example:
        >>> store = ValuesStore({"user": {"age": 22}})
        >>> store.set("user.username", "virk")
        >>> store.get("user")
        {'age': 22, 'username': 'virk'}
        >>> store.has_been_modified
        True
    """

    def __init__(self, values: Mapping[str, Any] | None = None):
        super().__init__(values)
        self._modified = False

    @classmethod
    def load(cls, payload: str | bytes | Mapping[str, Any] | None) -> ValuesStore:
        """
        Build a store from a persisted payload.

        Accepts the JSON string or the encoded dict produced by
        ``to_string()``/``to_json()``. Corrupt or foreign payloads yield
        an empty store instead of raising.
        """
        if payload is None:
            return cls()

        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Discarding unparseable session payload: {e}")
                return cls()

        if not isinstance(payload, Mapping):
            logger.warning(f"Discarding session payload of type {type(payload).__name__}")
            return cls()

        try:
            return cls(decode_mapping(payload))
        except MalformedEncodedValueFault as fault:
            logger.warning(f"Discarding malformed session payload: {fault}")
            return cls()

    @property
    def has_been_modified(self) -> bool:
        return self._modified

    def set(self, key: str, value: Any) -> None:
        """Set value for a dotted key path, creating parents as needed."""
        self._modified = True
        parts = _parts(key)
        current = self.values
        for part in parts[:-1]:
            child = current.get(part)
            if not isinstance(child, dict):
                child = {}
                current[part] = child
            current = child
        current[parts[-1]] = value

    def unset(self, key: str) -> None:
        """Remove value for a dotted key path."""
        self._modified = True
        parts = _parts(key)
        parent = _lookup(self.values, ".".join(parts[:-1])) if len(parts) > 1 else self.values
        if isinstance(parent, dict):
            parent.pop(parts[-1], None)

    def pull(self, key: str, default: Any = None) -> Any:
        """Get value and remove it from the store."""
        value = self.get(key, default)
        self.unset(key)
        return value

    def increment(self, key: str, steps: int | float = 1) -> None:
        """
        Increment a numeric value. Missing values start at zero.

        Raises:
            NotANumberFault: If the existing value is not numeric
        """
        value = self.get(key, 0)
        if not _is_number(value):
            raise NotANumberFault(key, type(value).__name__)
        self.set(key, value + steps)

    def decrement(self, key: str, steps: int | float = 1) -> None:
        """
        Decrement a numeric value. Missing values start at zero.

        Raises:
            NotANumberFault: If the existing value is not numeric
        """
        value = self.get(key, 0)
        if not _is_number(value):
            raise NotANumberFault(key, type(value).__name__)
        self.set(key, value - steps)

    def update(self, values: Mapping[str, Any]) -> None:
        """Overwrite top-level keys with the given values."""
        self._modified = True
        self.values.update(values)

    def merge(self, values: Mapping[str, Any]) -> None:
        """Deep-merge values into the store."""
        self._modified = True
        _deep_merge(self.values, values)

    def clear(self) -> None:
        """Remove every value."""
        self._modified = True
        self.values.clear()
