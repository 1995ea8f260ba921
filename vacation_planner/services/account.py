"""Remote account storage for synced vacation days.

Two implementations share the ``AccountStore`` shape:

* ``RedisAccountStore`` is the server side of ``/v1/vacation-days``. It keeps
  ``vacation-days:<user>`` in Redis and mirrors every save into process memory
  so that an unreachable Redis degrades to the memory copy instead of failing.
* ``HttpAccountClient`` talks to that API over HTTP and is used when the
  planner runs against a separate account server.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

import httpx
import redis.asyncio as redis

from vacation_planner.services.redis_client import REMOTE_ERRORS, bounded
from vacation_planner.state import ProcessState

logger = logging.getLogger(__name__)

KEY_PREFIX = "vacation-days"


class AccountSyncError(RuntimeError):
    """Raised when the remote account cannot be read or written."""


@dataclass
class AccountPayload:
    planned_days: list[str] = field(default_factory=list)
    week_notes: dict[str, str] = field(default_factory=dict)
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AccountPayload":
        data = data or {}
        days = data.get("plannedDays") or []
        notes = data.get("weekNotes") or {}
        return cls(
            planned_days=list(days) if isinstance(days, list) else [],
            week_notes=dict(notes) if isinstance(notes, dict) else {},
            updated_at=data.get("updatedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "plannedDays": list(self.planned_days),
            "weekNotes": dict(self.week_notes),
        }
        if self.updated_at:
            data["updatedAt"] = self.updated_at
        return data


class AccountStore(Protocol):
    async def fetch(self, user_id: str) -> AccountPayload: ...

    async def save(self, user_id: str, payload: AccountPayload) -> None: ...

    async def ping(self) -> bool: ...


def account_key(user_id: str) -> str:
    return f"{KEY_PREFIX}:{user_id}"


class RedisAccountStore:
    def __init__(
        self,
        state: ProcessState,
        client_getter: Callable[[], redis.Redis | None],
        *,
        timeout: float = 1.5,
    ):
        self.state = state
        self._client_getter = client_getter
        self.timeout = timeout

    def _memory_copy(self, user_id: str) -> AccountPayload:
        return AccountPayload.from_dict(self.state.account_fallback.get(account_key(user_id)))

    async def fetch(self, user_id: str) -> AccountPayload:
        client = self._client_getter()
        if client is None:
            return self._memory_copy(user_id)
        try:
            raw = await bounded(client.get(account_key(user_id)), self.timeout)
        except REMOTE_ERRORS as exc:
            logger.warning("Redis error during account fetch for %s: %r", user_id, exc)
            return self._memory_copy(user_id)
        if not raw:
            return AccountPayload()
        try:
            return AccountPayload.from_dict(json.loads(raw))
        except ValueError:
            logger.warning("Discarding malformed account payload for %s", user_id)
            return AccountPayload()

    async def save(self, user_id: str, payload: AccountPayload) -> None:
        payload.updated_at = datetime.now(timezone.utc).isoformat()
        data = payload.to_dict()
        # memory copy first: it is the backup when Redis is down
        self.state.account_fallback[account_key(user_id)] = data
        client = self._client_getter()
        if client is None:
            return
        try:
            await bounded(client.set(account_key(user_id), json.dumps(data)), self.timeout)
        except REMOTE_ERRORS as exc:
            logger.warning("Redis error during account save for %s: %r", user_id, exc)

    async def ping(self) -> bool:
        client = self._client_getter()
        if client is None:
            # memory-backed mode is always reachable
            return True
        try:
            await bounded(client.ping(), self.timeout)
        except REMOTE_ERRORS as exc:
            logger.warning("Redis ping failed: %r", exc)
            return False
        return True


class HttpAccountClient:
    """Client for a remote ``/v1/vacation-days`` endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float = 1.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _check(resp: httpx.Response) -> dict[str, Any]:
        if resp.status_code != 200:
            raise AccountSyncError(f"Server responded with {resp.status_code}: {resp.text}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise AccountSyncError("Server returned invalid JSON") from exc
        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("message") if isinstance(data, dict) else None
            raise AccountSyncError(message or "Unknown error occurred")
        return data

    async def fetch(self, user_id: str) -> AccountPayload:
        try:
            async with self._client() as client:
                resp = await client.get(
                    "/v1/vacation-days", headers={"Cache-Control": "no-cache"}
                )
        except httpx.HTTPError as exc:
            raise AccountSyncError(f"Account fetch failed: {exc!r}") from exc
        return AccountPayload.from_dict(self._check(resp))

    async def save(self, user_id: str, payload: AccountPayload) -> None:
        try:
            async with self._client() as client:
                resp = await client.post("/v1/vacation-days", json=payload.to_dict())
        except httpx.HTTPError as exc:
            raise AccountSyncError(f"Account save failed: {exc!r}") from exc
        self._check(resp)

    async def ping(self) -> bool:
        try:
            async with self._client() as client:
                resp = await client.get("/v1/vacation-days")
        except httpx.HTTPError as exc:
            logger.warning("Account API unreachable: %r", exc)
            return False
        return resp.status_code == 200
