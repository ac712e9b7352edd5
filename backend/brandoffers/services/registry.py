"""Shared plumbing for the brand, location and offer registries."""

import logging
from collections.abc import Sequence
from typing import Any, ClassVar

from brandoffers.config import get_settings
from brandoffers.errors import ConditionFailedError, ConflictError, NotFoundError
from brandoffers.models.types import utc_timestamp
from brandoffers.record_store import Condition, Mutation, RecordStore, SetField, UpdateItem
from brandoffers.services.pagination import Page, decode_cursor, encode_cursor

logger = logging.getLogger(__name__)

LIST_ORDER = ("name_lower", "id")


class Registry:
    """CRUD over one record type.

    Subclasses set ``model`` and ``label`` and add their own create/update
    signatures. Single-record writes go through the store's conditional
    update so they only ever touch the fields they name.
    """

    model: ClassVar[type]
    label: ClassVar[str]

    def __init__(self, store: RecordStore):
        self._store = store

    async def find_by_id(self, record_id: str):
        return await self._store.get(self.model, record_id)

    async def get(self, record_id: str):
        record = await self.find_by_id(record_id)
        if record is None:
            raise NotFoundError(f"{self.label} with id {record_id} not found")
        return record

    def _clamp_limit(self, limit: int | None) -> int:
        settings = get_settings()
        if not limit:
            return settings.default_page_size
        return max(1, min(limit, settings.max_page_size))

    async def _list(self, where: dict[str, Any], limit: int | None, cursor: str | None) -> Page:
        records, last_key = await self._store.query(
            self.model,
            where=where,
            order_by=LIST_ORDER,
            limit=self._clamp_limit(limit),
            start_after=decode_cursor(cursor, LIST_ORDER),
        )
        return Page(items=records, next_cursor=encode_cursor(last_key))

    async def _insert(self, record, conflict_detail: str):
        try:
            stored = await self._store.put(record)
        except ConditionFailedError as exc:
            # The uniqueness probe passed but a concurrent create won the index.
            raise ConflictError(conflict_detail) from exc
        logger.info("Created %s %s", self.label.lower(), stored.id)
        return stored

    async def _write_fields(self, record, changes: dict[str, Any], conflict_detail: str):
        """Overwrite ``changes`` (plus ``updated_at``) on a stored record."""
        changes = {**changes, "updated_at": utc_timestamp()}
        mutations: Sequence[Mutation] = [SetField(name, value) for name, value in changes.items()]
        try:
            await self._store.update(UpdateItem(self.model, record.id, mutations))
        except ConditionFailedError as exc:
            if exc.failures[0].missing:
                raise NotFoundError(f"{self.label} with id {record.id} not found") from exc
            raise ConflictError(conflict_detail) from exc

        for name, value in changes.items():
            setattr(record, name, value)
        record.version += 1
        return record

    async def _delete(self, record_id: str, condition: Condition | None, conflict_detail: str) -> None:
        try:
            await self._store.delete(self.model, record_id, condition)
        except ConditionFailedError as exc:
            if exc.failures[0].missing:
                raise NotFoundError(f"{self.label} with id {record_id} not found") from exc
            raise ConflictError(conflict_detail) from exc
        logger.info("Deleted %s %s", self.label.lower(), record_id)
