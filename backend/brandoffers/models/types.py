"""Column types and value defaults shared by the models."""

import uuid
from collections.abc import Iterable, Iterator, Set
from datetime import datetime, timezone

from sqlalchemy import JSON
from sqlalchemy.types import TypeDecorator


class LinkedIds(Set):
    """Insertion-ordered, immutable set of linked record ids.

    Both sides of an offer/location link store their half as a ``LinkedIds``,
    whatever path the value came through (database row, API payload, test
    fixture). Changes produce a new instance so the ORM sees reassignment.
    """

    __slots__ = ("_ids",)

    def __init__(self, ids: Iterable[str] = ()):
        self._ids = dict.fromkeys(str(i) for i in ids)

    def __contains__(self, item: object) -> bool:
        return item in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"LinkedIds({list(self._ids)!r})"

    def __hash__(self) -> int:
        return self._hash()

    def with_id(self, item: str) -> "LinkedIds":
        if item in self._ids:
            return self
        return LinkedIds([*self._ids, item])

    def without_id(self, item: str) -> "LinkedIds":
        if item not in self._ids:
            return self
        return LinkedIds(i for i in self._ids if i != item)

    def to_list(self) -> list[str]:
        return list(self._ids)


class IdSetType(TypeDecorator):
    """Persist a ``LinkedIds`` as a JSON array; NULL loads as an empty set."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return list(LinkedIds(value))

    def process_result_value(self, value, dialect):
        return LinkedIds(value or ())


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string, e.g. ``2026-10-18T09:30:00.123Z``."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
