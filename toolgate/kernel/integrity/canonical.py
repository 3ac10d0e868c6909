"""Canonical JSON serialization used as the hashing substrate.

Two documents that differ only in key order, whitespace or the spelling of a
number canonicalize to the same bytes: keys sorted lexicographically, compact
separators, UTF-8 output.
"""

import json
import math
from typing import Any

# Integers beyond this magnitude are not exactly representable as doubles
MAX_EXACT_INT = 2**53


class CanonicalizationError(ValueError):
    """Raised when input cannot be parsed or re-encoded as JSON.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize canonicalization error.

        Args:
            message: Human-readable error description
        """
        super().__init__(message)
        self.message = message


def _reject_constant(name: str) -> Any:
    raise CanonicalizationError(f"non-standard JSON constant '{name}' is not allowed")


def _normalize_numbers(value: Any) -> Any:
    """Give every JSON number a single canonical Python form.

    Numbers are compared as doubles, so 10, 10.0 and 1e1 are the same value:
    whole numbers within the exact range become ``int``, everything else
    becomes ``float``.
    """
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, int):
        if abs(value) <= MAX_EXACT_INT:
            return value
        value = float(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError(f"non-finite number {value!r} is not allowed")
        if value.is_integer() and abs(value) <= MAX_EXACT_INT:
            return int(value)
        return value
    if isinstance(value, dict):
        return {key: _normalize_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_numbers(item) for item in value]
    return value


def canonical_dumps(value: Any) -> bytes:
    """Serialize an already-parsed JSON value to canonical bytes.

    Args:
        value: JSON-compatible value (dict, list, str, int, float, bool, None)

    Returns:
        Canonical UTF-8 encoded JSON

    Raises:
        CanonicalizationError: If the value is not JSON-serializable
    """
    try:
        encoded = json.dumps(
            _normalize_numbers(value),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError, OverflowError) as e:
        raise CanonicalizationError(f"value is not canonical JSON: {e}") from e
    return encoded.encode("utf-8")


def canonicalize(raw: bytes | str) -> bytes:
    """Parse raw JSON and re-serialize it canonically.

    Args:
        raw: JSON document as bytes or text

    Returns:
        Canonical UTF-8 encoded JSON

    Raises:
        CanonicalizationError: If the document is malformed
    """
    try:
        value = json.loads(raw, parse_constant=_reject_constant)
    except CanonicalizationError:
        raise
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise CanonicalizationError(f"malformed JSON: {e}") from e
    return canonical_dumps(value)
