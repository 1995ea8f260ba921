"""Canonical per-session vacation state and its sync with the remote account.

Lifecycle of one session::

    uninitialized --start()--> loaded    (every local tier probed fine)
                          \\--> degraded  (a local tier is unusable; the
                                          remaining tiers carry on)

A loaded, remote-linked session pulls once right after start. Every
mutation updates the in-process state first and then writes through the
tiered store, which re-arms the debounced push for linked sessions. Sync
failures never undo local state; they are kept as a status and a notice.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Any

from vacation_planner.services.categories import Category, CategoryRegistry
from vacation_planner.services.planner import (
    WriteResult,
    read_day_categories,
    read_planned_days,
    read_week_notes,
    write_day_categories,
    write_planned_days,
    write_week_notes,
)
from vacation_planner.services.tiered_store import SyncResult, TieredStore
from vacation_planner.services.validation import (
    PlannerInputError,
    normalize_day_categories,
    normalize_days,
    normalize_week_notes,
)

logger = logging.getLogger(__name__)

MAX_NOTICES = 20


class PlannerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    DEGRADED = "degraded"


class VacationReconciler:
    def __init__(
        self,
        user_id: str,
        store: TieredStore,
        *,
        categories: CategoryRegistry | None = None,
    ):
        self.user_id = user_id
        self.store = store
        self.categories = categories or CategoryRegistry()
        self.state = PlannerState.UNINITIALIZED
        self.planned_days: list[str] = []
        self.day_categories: dict[str, str] = {}
        self.week_notes: dict[str, str] = {}
        self.syncing: str | None = None
        self.last_synced: datetime | None = None
        self.sync_error: str | None = None
        self.notices: deque[str] = deque(maxlen=MAX_NOTICES)
        self._start_lock = asyncio.Lock()
        store.add_sync_listener(self._on_sync)

    @property
    def remote_linked(self) -> bool:
        return self.store.remote_linked

    async def start(self) -> PlannerState:
        async with self._start_lock:
            if self.state is not PlannerState.UNINITIALIZED:
                return self.state

            healthy = await self.store.initialize()
            if healthy:
                self.state = PlannerState.LOADED
            else:
                self.state = PlannerState.DEGRADED
                self.notices.append("Local database unavailable, changes are kept in local storage")

            self.planned_days = await read_planned_days(
                self.store, self.user_id, include_remote=False
            )
            self.day_categories = await read_day_categories(
                self.store, self.user_id, include_remote=False
            )
            self.week_notes = await read_week_notes(
                self.store, self.user_id, include_remote=False
            )
            logger.info(
                "Planner for %s %s with %d planned days",
                self.user_id,
                self.state.value,
                len(self.planned_days),
            )

        if self.remote_linked and self.state is PlannerState.LOADED:
            await self.pull()
        return self.state

    async def pull(self) -> SyncResult:
        """Fetch the remote account; non-empty remote data replaces local state.

        A payload that fails validation counts as a failed pull and leaves
        local state alone.
        """
        self.syncing = "pull"
        try:
            payload, result = await self.store.pull(self.user_id)
        finally:
            self.syncing = None
        if payload is None:
            return result

        if payload.planned_days:
            self.planned_days = list(dict.fromkeys(payload.planned_days))
            await write_planned_days(self.store, self.user_id, self.planned_days, sync=False)
        if payload.week_notes:
            self.week_notes = dict(payload.week_notes)
            await write_week_notes(self.store, self.user_id, self.week_notes, sync=False)
        return result

    async def push_now(self) -> SyncResult:
        self.syncing = "push"
        try:
            return await self.store.push(self.user_id)
        finally:
            self.syncing = None

    async def toggle_day(self, day: str) -> WriteResult:
        await self._ensure_started()
        try:
            normalize_days([day])
        except PlannerInputError as exc:
            return WriteResult(False, str(exc))
        if day in self.planned_days:
            updated = [d for d in self.planned_days if d != day]
        else:
            updated = [*self.planned_days, day]
        self.planned_days = updated
        return await write_planned_days(self.store, self.user_id, updated)

    async def set_planned_days(self, days: Any) -> WriteResult:
        await self._ensure_started()
        try:
            normalized = normalize_days(days)
        except PlannerInputError as exc:
            return WriteResult(False, str(exc))
        self.planned_days = normalized
        return await write_planned_days(self.store, self.user_id, normalized)

    async def set_day_category(self, day: str, category_id: str) -> WriteResult:
        await self._ensure_started()
        try:
            updated = normalize_day_categories({**self.day_categories, day: category_id})
        except PlannerInputError as exc:
            return WriteResult(False, str(exc))
        self.day_categories = updated
        return await write_day_categories(self.store, self.user_id, updated)

    async def set_week_note(self, year: int, week: int | str, note: str) -> WriteResult:
        await self._ensure_started()
        try:
            updated = normalize_week_notes({**self.week_notes, f"{year}-{week}": note})
        except PlannerInputError as exc:
            return WriteResult(False, str(exc))
        self.week_notes = updated
        return await write_week_notes(self.store, self.user_id, updated)

    def add_category(self, name: str, color: str | None = None) -> Category:
        return self.categories.add(name, color)

    def status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "remoteLinked": self.remote_linked,
            "isSyncing": self.syncing is not None or self.store.debouncer.pending(self.user_id),
            "lastSynced": self.last_synced.isoformat() if self.last_synced else None,
            "syncError": self.sync_error,
            "notices": list(self.notices),
        }

    async def close(self) -> None:
        await self.store.aclose()

    async def _ensure_started(self) -> None:
        if self.state is PlannerState.UNINITIALIZED:
            await self.start()

    def _on_sync(self, result: SyncResult) -> None:
        if result.success:
            self.last_synced = result.at
            self.sync_error = None
            if result.direction == "pull":
                self.notices.append("Synced with remote account")
            else:
                self.notices.append("Saved to remote account")
            return
        self.sync_error = result.error
        if result.direction == "pull":
            self.notices.append("Sync failed, using local data instead")
        else:
            self.notices.append("Save failed, your data is still saved locally")
