"""Record store adapter over SQLAlchemy async sessions.

Records are addressed by ``(model, key)``. Besides plain get/put/delete and
keyset-paginated queries, the store offers ``transact``: an all-or-nothing
update of several records where each record carries a write-time condition.

``transact`` runs in a single database transaction. It reads every record,
evaluates every condition against the state it just read, and only then
writes each record with a version compare-and-swap::

    UPDATE <table> SET ..., version = :v + 1 WHERE id = :key AND version = :v

If any condition is false nothing is written and ``ConditionFailedError``
lists the rejected records. If a compare-and-swap matches no row, another
writer committed in between; the transaction is rolled back and run again
from the reads, so conditions are always judged against the state that is
actually overwritten.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, inspect, select, tuple_, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from brandoffers.config import get_settings
from brandoffers.database import async_session
from brandoffers.errors import ConditionFailedError, FailedCondition, StoreUnavailableError
from brandoffers.models.types import LinkedIds

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class Mutation:
    field: str

    def apply(self, state: dict[str, Any]) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class SetField(Mutation):
    field: str
    value: Any

    def apply(self, state: dict[str, Any]) -> None:
        state[self.field] = self.value


@dataclass(frozen=True, slots=True)
class AddToSet(Mutation):
    field: str
    value: str

    def apply(self, state: dict[str, Any]) -> None:
        state[self.field] = LinkedIds(state.get(self.field) or ()).with_id(self.value)


@dataclass(frozen=True, slots=True)
class RemoveFromSet(Mutation):
    field: str
    value: str

    def apply(self, state: dict[str, Any]) -> None:
        state[self.field] = LinkedIds(state.get(self.field) or ()).without_id(self.value)


@dataclass(frozen=True, slots=True)
class Increment(Mutation):
    field: str
    delta: int
    floor: int | None = None

    def apply(self, state: dict[str, Any]) -> None:
        value = (state.get(self.field) or 0) + self.delta
        if self.floor is not None:
            value = max(self.floor, value)
        state[self.field] = value


@dataclass(frozen=True, slots=True)
class SetNonEmpty(Mutation):
    """Set a boolean flag from whether ``source`` holds anything.

    Place it after the mutations that change ``source``.
    """

    field: str
    source: str

    def apply(self, state: dict[str, Any]) -> None:
        state[self.field] = bool(state.get(self.source))


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


class Condition:
    def holds(self, state: dict[str, Any]) -> bool:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class Contains(Condition):
    field: str
    value: str

    def holds(self, state: dict[str, Any]) -> bool:
        return self.value in (state.get(self.field) or ())


@dataclass(frozen=True, slots=True)
class NotContains(Condition):
    """True when the set is absent or does not hold ``value``."""

    field: str
    value: str

    def holds(self, state: dict[str, Any]) -> bool:
        return self.value not in (state.get(self.field) or ())


@dataclass(frozen=True, slots=True)
class GreaterThan(Condition):
    field: str
    bound: int

    def holds(self, state: dict[str, Any]) -> bool:
        value = state.get(self.field)
        return value is not None and value > self.bound


@dataclass(frozen=True, slots=True)
class Equals(Condition):
    field: str
    value: Any

    def holds(self, state: dict[str, Any]) -> bool:
        return state.get(self.field) == self.value


class AllOf(Condition):
    def __init__(self, *conditions: Condition):
        self.conditions = conditions

    def holds(self, state: dict[str, Any]) -> bool:
        return all(c.holds(state) for c in self.conditions)

    def __repr__(self) -> str:
        return f"AllOf{self.conditions!r}"


@dataclass(frozen=True, slots=True)
class UpdateItem:
    """One record's part of an atomic update."""

    model: type
    key: str
    mutations: Sequence[Mutation]
    condition: Condition | None = None

    @property
    def table(self) -> str:
        return self.model.__tablename__


class _VersionMoved(Exception):
    def __init__(self, table: str, key: str):
        super().__init__(f"{table}/{key}")
        self.table = table
        self.key = key


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def snapshot(record) -> dict[str, Any]:
    """Column values of a loaded record, keyed by attribute name."""
    return {attr.key: getattr(record, attr.key) for attr in inspect(type(record)).column_attrs}


class RecordStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], max_attempts: int = 5):
        self._session_factory = session_factory
        self._max_attempts = max_attempts

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
            logger.error("Record store unavailable: %s", exc)
            raise StoreUnavailableError("Record store unavailable, try again later") from exc

    async def _read(self, session: AsyncSession, model: type, key: str) -> dict[str, Any] | None:
        record = await session.get(model, key, populate_existing=True)
        return snapshot(record) if record is not None else None

    # -- single records -----------------------------------------------------

    async def get(self, model: type, key: str):
        async with self._transaction() as session:
            return await session.get(model, key)

    async def put(self, record):
        """Insert ``record`` or overwrite the stored record with the same id.

        A unique-constraint violation raises ``ConditionFailedError``.
        """
        model = type(record)
        try:
            async with self._transaction() as session:
                if record.id is not None:
                    current = await session.get(model, record.id)
                    if current is not None:
                        record.version = current.version + 1
                stored = await session.merge(record)
        except IntegrityError as exc:
            raise ConditionFailedError([FailedCondition(model.__tablename__, str(record.id))]) from exc
        return stored

    async def delete(self, model: type, key: str, condition: Condition | None = None) -> None:
        table = model.__tablename__
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with self._transaction() as session:
                    state = await self._read(session, model, key)
                    if state is None:
                        raise ConditionFailedError([FailedCondition(table, key, missing=True)])
                    if condition is not None and not condition.holds(state):
                        raise ConditionFailedError([FailedCondition(table, key)])
                    result = await session.execute(
                        delete(model)
                        .where(model.id == key, model.version == state["version"])
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise _VersionMoved(table, key)
                return
            except _VersionMoved:
                logger.debug("Version moved on %s/%s during delete (attempt %d)", table, key, attempt)
        raise StoreUnavailableError(f"Gave up deleting contended record {table}/{key}")

    async def update(self, item: UpdateItem) -> None:
        await self.transact([item])

    # -- atomic multi-record update -----------------------------------------

    async def transact(self, items: Sequence[UpdateItem]) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with self._transaction() as session:
                    await self._apply(session, items)
                return
            except IntegrityError as exc:
                # A unique index rejected the new values (e.g. a rename racing
                # another rename to the same name).
                raise ConditionFailedError(
                    [FailedCondition(item.table, item.key) for item in items]
                ) from exc
            except _VersionMoved as moved:
                logger.debug(
                    "Version moved on %s/%s (attempt %d/%d), re-running transaction",
                    moved.table,
                    moved.key,
                    attempt,
                    self._max_attempts,
                )
        raise StoreUnavailableError("Records are being modified concurrently, try again later")

    async def _apply(self, session: AsyncSession, items: Sequence[UpdateItem]) -> None:
        read: list[tuple[UpdateItem, dict[str, Any]]] = []
        failures: list[FailedCondition] = []

        # Evaluate every condition before the first write, so the caller
        # learns about all rejected records at once.
        for item in items:
            state = await self._read(session, item.model, item.key)
            if state is None:
                failures.append(FailedCondition(item.table, item.key, missing=True))
                continue
            if item.condition is not None and not item.condition.holds(state):
                failures.append(FailedCondition(item.table, item.key))
            read.append((item, state))

        if failures:
            raise ConditionFailedError(failures)

        for item, state in read:
            changed = dict(state)
            for mutation in item.mutations:
                mutation.apply(changed)
            values = {m.field: changed[m.field] for m in item.mutations}
            values["version"] = state["version"] + 1

            result = await session.execute(
                update(item.model)
                .where(item.model.id == item.key, item.model.version == state["version"])
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise _VersionMoved(item.table, item.key)

    # -- queries --------------------------------------------------------------

    async def query(
        self,
        model: type,
        *,
        where: dict[str, Any] | None = None,
        order_by: Sequence[str] = ("id",),
        limit: int,
        start_after: dict[str, Any] | None = None,
    ) -> tuple[list, dict[str, Any] | None]:
        """Keyset-paginated select.

        Returns the records and, when more remain, the ordering-column values
        of the last returned record to pass back as ``start_after``.
        """
        columns = [getattr(model, name) for name in order_by]
        stmt = select(model)
        for name, value in (where or {}).items():
            stmt = stmt.where(getattr(model, name) == value)
        if start_after is not None:
            stmt = stmt.where(tuple_(*columns) > tuple_(*(start_after[name] for name in order_by)))
        stmt = stmt.order_by(*columns).limit(limit + 1)

        async with self._transaction() as session:
            result = await session.execute(stmt)
            records = list(result.scalars().all())

        last_key = None
        if len(records) > limit:
            records = records[:limit]
            last_key = {name: getattr(records[-1], name) for name in order_by}
        return records, last_key

    async def find_one(self, model: type, **where: Any):
        records, _ = await self.query(model, where=where, limit=1)
        return records[0] if records else None

    async def scan(self, model: type, page_size: int = 100) -> AsyncIterator:
        start_after = None
        while True:
            records, start_after = await self.query(
                model, limit=page_size, start_after=start_after
            )
            for record in records:
                yield record
            if start_after is None:
                return


def get_store() -> RecordStore:
    """FastAPI dependency: a store bound to the application session factory."""
    return RecordStore(async_session, max_attempts=get_settings().store_max_attempts)
