"""Opaque pagination cursors for the listing endpoints."""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from brandoffers.errors import InvalidCursorError

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None


def encode_cursor(last_key: dict[str, Any] | None) -> str | None:
    if last_key is None:
        return None
    raw = json.dumps(last_key, separators=(",", ":"), sort_keys=True).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_cursor(cursor: str | None, expected_fields: tuple[str, ...]) -> dict[str, Any] | None:
    """Turn a cursor back into the key to resume after.

    Raises InvalidCursorError when the cursor is not one we issued for
    this listing.
    """
    if not cursor:
        return None
    try:
        key = json.loads(base64.urlsafe_b64decode(cursor.encode()))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidCursorError("Invalid cursor") from exc
    if not isinstance(key, dict) or set(key) != set(expected_fields):
        raise InvalidCursorError("Invalid cursor")
    if not all(isinstance(value, str) for value in key.values()):
        raise InvalidCursorError("Invalid cursor")
    return key
