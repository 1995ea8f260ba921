"""Storage tiers behind the planner's tiered store.

Every tier implements the same small capability interface (``probe``,
``read``, ``write``, ``delete``) and is free to raise; containment happens
once, in ``TieredStore``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from sqlalchemy import delete, text
from sqlalchemy.orm import Session

from vacation_planner.models import DayCategory, PlannedDay, WeekNote
from vacation_planner.services.account import AccountPayload, AccountStore
from vacation_planner.services.local_storage import LocalStorage
from vacation_planner.services.redis_client import bounded
from vacation_planner.services.validation import (
    normalize_days,
    normalize_week_notes,
    split_week_key,
)
from vacation_planner.state import ProcessState

logger = logging.getLogger(__name__)

PLANNED_DAYS = "planned_days"
DAY_CATEGORIES = "day_categories"
WEEK_NOTES = "week_notes"

_FLAT_PREFIX = {
    PLANNED_DAYS: "plannedVacationDays",
    DAY_CATEGORIES: "dayCategories",
    WEEK_NOTES: "weekNotes",
}


@dataclass(frozen=True)
class StoreKey:
    kind: str
    user_id: str

    def __post_init__(self) -> None:
        if self.kind not in _FLAT_PREFIX:
            raise ValueError(f"Unknown store key kind: {self.kind}")

    @property
    def flat(self) -> str:
        return f"{_FLAT_PREFIX[self.kind]}-{self.user_id}"

    @classmethod
    def planned_days(cls, user_id: str) -> "StoreKey":
        return cls(PLANNED_DAYS, user_id)

    @classmethod
    def day_categories(cls, user_id: str) -> "StoreKey":
        return cls(DAY_CATEGORIES, user_id)

    @classmethod
    def week_notes(cls, user_id: str) -> "StoreKey":
        return cls(WEEK_NOTES, user_id)


def empty_value(kind: str) -> Any:
    return [] if kind == PLANNED_DAYS else {}


def is_empty(value: Any) -> bool:
    return value is None or (hasattr(value, "__len__") and len(value) == 0)


def _copy(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


class StorageTier(Protocol):
    name: str
    # False for tiers that do not survive a restart
    durable: bool

    async def probe(self) -> bool: ...

    async def read(self, key: StoreKey) -> Any: ...

    async def write(self, key: StoreKey, value: Any) -> None: ...

    async def delete(self, key: StoreKey) -> bool: ...


class MemoryTier:
    """Process-lifetime cache held in ``ProcessState.vacation_cache``."""

    name = "memory"
    durable = False

    def __init__(self, state: ProcessState):
        self.state = state

    async def probe(self) -> bool:
        return True

    async def read(self, key: StoreKey) -> Any:
        return _copy(self.state.vacation_cache.get(key.flat))

    async def write(self, key: StoreKey, value: Any) -> None:
        self.state.vacation_cache[key.flat] = _copy(value)

    async def delete(self, key: StoreKey) -> bool:
        return self.state.vacation_cache.pop(key.flat, None) is not None


class DatabaseTier:
    """Per-record storage in the planner tables.

    A value always replaces the user's full set of rows for its kind, inside a
    single transaction.
    """

    name = "database"
    durable = True

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    async def probe(self) -> bool:
        def _ping() -> bool:
            with self._session_factory() as db:
                db.execute(text("SELECT 1"))
            return True

        return await asyncio.to_thread(_ping)

    async def read(self, key: StoreKey) -> Any:
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: StoreKey, value: Any) -> None:
        await asyncio.to_thread(self._write_sync, key, value)

    async def delete(self, key: StoreKey) -> bool:
        return await asyncio.to_thread(self._delete_sync, key)

    def _read_sync(self, key: StoreKey) -> Any:
        with self._session_factory() as db:
            if key.kind == PLANNED_DAYS:
                rows = (
                    db.query(PlannedDay)
                    .filter(PlannedDay.user_id == key.user_id)
                    .order_by(PlannedDay.id)
                    .all()
                )
                return [row.date for row in rows]
            if key.kind == DAY_CATEGORIES:
                rows = db.query(DayCategory).filter(DayCategory.user_id == key.user_id).all()
                return {row.day_date: row.category_id for row in rows}
            rows = db.query(WeekNote).filter(WeekNote.user_id == key.user_id).all()
            return {f"{row.year}-{row.week_number}": row.note for row in rows}

    def _write_sync(self, key: StoreKey, value: Any) -> None:
        with self._session_factory() as db:
            model = _MODELS[key.kind]
            db.execute(delete(model).where(model.user_id == key.user_id))
            if key.kind == PLANNED_DAYS:
                db.add_all(PlannedDay(user_id=key.user_id, date=day) for day in value)
            elif key.kind == DAY_CATEGORIES:
                db.add_all(
                    DayCategory(user_id=key.user_id, day_date=day, category_id=category_id)
                    for day, category_id in value.items()
                )
            else:
                for week_key, note in value.items():
                    year, week_number = split_week_key(week_key)
                    db.add(
                        WeekNote(
                            user_id=key.user_id,
                            week_number=week_number,
                            year=year,
                            note=note,
                        )
                    )
            db.commit()

    def _delete_sync(self, key: StoreKey) -> bool:
        with self._session_factory() as db:
            model = _MODELS[key.kind]
            result = db.execute(delete(model).where(model.user_id == key.user_id))
            db.commit()
            return bool(result.rowcount)


_MODELS = {
    PLANNED_DAYS: PlannedDay,
    DAY_CATEGORIES: DayCategory,
    WEEK_NOTES: WeekNote,
}


class LocalStorageTier:
    """Whole-file JSON storage; every call runs in a worker thread."""

    name = "local_storage"
    durable = True

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    async def probe(self) -> bool:
        return await asyncio.to_thread(self.storage.writable)

    async def read(self, key: StoreKey) -> Any:
        raw = await asyncio.to_thread(self.storage.get_item, key.flat)
        if raw is None:
            return None
        return json.loads(raw)

    async def write(self, key: StoreKey, value: Any) -> None:
        await asyncio.to_thread(self.storage.set_item, key.flat, json.dumps(value))

    async def delete(self, key: StoreKey) -> bool:
        return await asyncio.to_thread(self.storage.remove_item, key.flat)


class RemoteTier:
    """Remote account store. Holds planned days and week notes only.

    Every call is bounded by ``timeout``; running over it counts as the
    account being unreachable.
    """

    name = "remote"
    durable = True
    kinds = frozenset({PLANNED_DAYS, WEEK_NOTES})

    def __init__(self, account: AccountStore, *, timeout: float = 1.5):
        self.account = account
        self.timeout = timeout

    async def probe(self) -> bool:
        return await bounded(self.account.ping(), self.timeout)

    async def fetch(self, user_id: str) -> AccountPayload:
        """Fetch and check the account payload; raises ``PlannerInputError`` if malformed."""
        payload = await bounded(self.account.fetch(user_id), self.timeout)
        return AccountPayload(
            planned_days=normalize_days(payload.planned_days),
            week_notes=normalize_week_notes(payload.week_notes),
            updated_at=payload.updated_at,
        )

    async def read(self, key: StoreKey) -> Any:
        if key.kind not in self.kinds:
            return None
        payload = await self.fetch(key.user_id)
        if key.kind == PLANNED_DAYS:
            return payload.planned_days
        return payload.week_notes

    async def push(self, user_id: str, payload: AccountPayload) -> None:
        await bounded(self.account.save(user_id, payload), self.timeout)
