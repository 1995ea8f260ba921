"""Ordered fallback over the planner's storage tiers.

Reads walk the tiers fastest-first and stop at the first non-empty value,
backfilling the faster tiers with it. Writes go to every available local
tier; one tier failing never stops the others and never undoes them. When
the session is linked to a remote account, writes additionally arm a
debounced push of the user's full state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from vacation_planner.metrics import remote_sync_total, tier_failures_total
from vacation_planner.services.account import AccountPayload
from vacation_planner.services.debounce import Debouncer
from vacation_planner.services.tiers import (
    RemoteTier,
    StorageTier,
    StoreKey,
    empty_value,
    is_empty,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class WriteOutcome:
    success: bool
    written: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    sync_scheduled: bool = False


@dataclass
class SyncResult:
    direction: str
    success: bool
    error: str | None = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


SyncListener = Callable[[SyncResult], None]


class TieredStore:
    def __init__(
        self,
        tiers: Sequence[StorageTier],
        *,
        remote: RemoteTier | None = None,
        debouncer: Debouncer | None = None,
        debounce_s: float = 2.0,
    ):
        self.tiers = list(tiers)
        self.remote = remote
        self.debouncer = debouncer or Debouncer()
        self.debounce_s = debounce_s
        self.capabilities: frozenset[str] | None = None
        self._listeners: list[SyncListener] = []

    @property
    def remote_linked(self) -> bool:
        return self.remote is not None

    def add_sync_listener(self, listener: SyncListener) -> None:
        self._listeners.append(listener)

    async def initialize(self) -> bool:
        """Probe every local tier once; ``False`` if any of them is unusable.

        Tiers that fail the probe are skipped for the rest of the session.
        """
        available = set()
        for tier in self.tiers:
            ok, usable = await self._attempt(tier.name, "probe", tier.probe)
            if ok and usable:
                available.add(tier.name)
            else:
                logger.warning("Storage tier %s disabled for this session", tier.name)
        self.capabilities = frozenset(available)
        return len(available) == len(self.tiers)

    def active_tiers(self) -> list[StorageTier]:
        if self.capabilities is None:
            return list(self.tiers)
        return [tier for tier in self.tiers if tier.name in self.capabilities]

    async def read(self, key: StoreKey, *, include_remote: bool = True) -> Any:
        active = self.active_tiers()
        for index, tier in enumerate(active):
            ok, value = await self._attempt(tier.name, "read", lambda: tier.read(key))
            if ok and not is_empty(value):
                logger.debug("Read %s from %s", key.flat, tier.name)
                await self._backfill(active[:index], key, value)
                return value

        if include_remote and self._remote_holds(key):
            ok, value = await self._attempt(self.remote.name, "read", lambda: self.remote.read(key))
            if ok and not is_empty(value):
                logger.info("Read %s from remote account", key.flat)
                await self._backfill(active, key, value)
                return value

        return empty_value(key.kind)

    async def write(self, key: StoreKey, value: Any, *, sync: bool = True) -> WriteOutcome:
        outcome = WriteOutcome(success=False)
        for tier in self.active_tiers():
            ok, _ = await self._attempt(tier.name, "write", lambda: tier.write(key, value))
            if ok:
                outcome.written.append(tier.name)
            else:
                outcome.failed.append(tier.name)

        if sync and self._remote_holds(key):
            self.schedule_push(key.user_id)
            outcome.sync_scheduled = True

        durable = [name for name in outcome.written if self._is_durable(name)]
        outcome.success = bool(durable) or outcome.sync_scheduled
        if not outcome.success:
            logger.error("No durable tier accepted %s (failed: %s)", key.flat, outcome.failed)
        return outcome

    async def delete(self, key: StoreKey, *, sync: bool = True) -> WriteOutcome:
        outcome = WriteOutcome(success=True)
        for tier in self.active_tiers():
            ok, _ = await self._attempt(tier.name, "delete", lambda: tier.delete(key))
            if ok:
                outcome.written.append(tier.name)
            else:
                outcome.failed.append(tier.name)
        if sync and self._remote_holds(key):
            self.schedule_push(key.user_id)
            outcome.sync_scheduled = True
        return outcome

    def schedule_push(self, user_id: str) -> None:
        self.debouncer.arm(user_id, self.debounce_s, lambda: self.push(user_id))

    async def flush_push(self, user_id: str) -> bool:
        return await self.debouncer.flush(user_id)

    async def push(self, user_id: str) -> SyncResult:
        """Send the user's full local state to the remote account."""
        if self.remote is None:
            return SyncResult("push", False, "Session is not linked to a remote account")
        self.debouncer.cancel(user_id)
        payload = AccountPayload(
            planned_days=await self.read(StoreKey.planned_days(user_id), include_remote=False),
            week_notes=await self.read(StoreKey.week_notes(user_id), include_remote=False),
        )
        try:
            await self.remote.push(user_id, payload)
        except Exception as exc:
            logger.warning(
                "Push to remote account failed for %s: %r",
                user_id,
                exc,
                extra={"user_id": user_id, "direction": "push"},
            )
            result = SyncResult("push", False, str(exc) or exc.__class__.__name__)
        else:
            logger.info("Pushed %d planned days for %s", len(payload.planned_days), user_id)
            result = SyncResult("push", True)
        self._notify(result)
        return result

    async def pull(self, user_id: str) -> tuple[AccountPayload | None, SyncResult]:
        """Fetch the remote account state without touching local tiers."""
        if self.remote is None:
            return None, SyncResult("pull", False, "Session is not linked to a remote account")
        try:
            payload = await self.remote.fetch(user_id)
        except Exception as exc:
            logger.warning(
                "Pull from remote account failed for %s: %r",
                user_id,
                exc,
                extra={"user_id": user_id, "direction": "pull"},
            )
            result = SyncResult("pull", False, str(exc) or exc.__class__.__name__)
            self._notify(result)
            return None, result
        result = SyncResult("pull", True)
        self._notify(result)
        return payload, result

    async def aclose(self) -> None:
        await self.debouncer.cancel_all()

    def _remote_holds(self, key: StoreKey) -> bool:
        return self.remote is not None and key.kind in self.remote.kinds

    def _is_durable(self, name: str) -> bool:
        return any(tier.name == name and tier.durable for tier in self.tiers)

    async def _backfill(self, tiers: Sequence[StorageTier], key: StoreKey, value: Any) -> None:
        for tier in tiers:
            await self._attempt(tier.name, "backfill", lambda: tier.write(key, value))

    def _notify(self, result: SyncResult) -> None:
        remote_sync_total.labels(
            direction=result.direction, status="ok" if result.success else "error"
        ).inc()
        for listener in self._listeners:
            listener(result)

    @staticmethod
    async def _attempt(
        tier_name: str, operation: str, call: Callable[[], Awaitable[T]]
    ) -> tuple[bool, T | None]:
        try:
            return True, await call()
        except Exception as exc:
            logger.warning(
                "Tier %s unavailable for %s: %r",
                tier_name,
                operation,
                exc,
                extra={"tier": tier_name, "operation": operation},
            )
            tier_failures_total.labels(tier=tier_name, operation=operation).inc()
            return False, None
