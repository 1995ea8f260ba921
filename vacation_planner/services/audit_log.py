"""Login audit log spread over three backing stores.

Writes cascade database -> remote cache -> memory and stop at the first store
that accepts the entry, so one event is recorded exactly once. Reads query
all stores independently, because earlier events may have landed in any of
them, and merge the results newest-first.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, Sequence

import redis.asyncio as redis
from sqlalchemy.orm import Session

from vacation_planner.config import Settings
from vacation_planner.metrics import login_log_writes_total
from vacation_planner.models import LoginLog
from vacation_planner.services.redis_client import bounded
from vacation_planner.services.session import RequestMeta, SessionUser
from vacation_planner.state import ProcessState

logger = logging.getLogger(__name__)

SOURCE_DATABASE = "database"
SOURCE_REMOTE_CACHE = "remote-cache"
SOURCE_MEMORY = "memory"

REDIS_PATTERN = "login:*"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class LoginLogEntry:
    timestamp: str
    user_id: str
    username: str = "Unknown User"
    email: str = "unknown"
    success: bool = True
    ip: str = "unknown"
    user_agent: str = "unknown"
    planned_days_count: int = 0
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "timestamp": self.timestamp,
            "userId": self.user_id,
            "username": self.username,
            "email": self.email,
            "success": self.success,
            "ip": self.ip,
            "userAgent": self.user_agent,
            "plannedDaysCount": self.planned_days_count,
        }
        if self.source is not None:
            data["source"] = self.source
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LoginLogEntry":
        return cls(
            timestamp=data["timestamp"],
            user_id=str(data.get("userId", "")),
            username=data.get("username") or "Unknown User",
            email=data.get("email") or "unknown",
            success=bool(data.get("success", True)),
            ip=data.get("ip") or "unknown",
            user_agent=data.get("userAgent") or "unknown",
            planned_days_count=int(data.get("plannedDaysCount") or 0),
        )

    def tagged(self, source: str) -> "LoginLogEntry":
        return LoginLogEntry(**{**asdict(self), "source": source})


@dataclass
class DeleteOutcome:
    success: bool
    message: str
    # deleted | not_found | unknown_source | error
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}


class LogSink(Protocol):
    source: str
    label: str

    async def append(self, entry: LoginLogEntry) -> None: ...

    async def entries(self) -> list[LoginLogEntry]: ...

    async def delete(self, timestamp: str) -> bool: ...


class DatabaseLogSink:
    source = SOURCE_DATABASE
    label = "database"

    def __init__(self, session_factory: Callable[[], Session], *, limit: int = 100):
        self._session_factory = session_factory
        self.limit = limit

    async def append(self, entry: LoginLogEntry) -> None:
        def _insert() -> None:
            with self._session_factory() as db:
                db.add(
                    LoginLog(
                        timestamp=entry.timestamp,
                        user_id=entry.user_id,
                        username=entry.username,
                        email=entry.email,
                        success=entry.success,
                        ip=entry.ip,
                        user_agent=entry.user_agent,
                        planned_days_count=entry.planned_days_count,
                    )
                )
                db.commit()

        await asyncio.to_thread(_insert)

    async def entries(self) -> list[LoginLogEntry]:
        def _select() -> list[LoginLogEntry]:
            with self._session_factory() as db:
                rows = (
                    db.query(LoginLog)
                    .order_by(LoginLog.timestamp.desc())
                    .limit(self.limit)
                    .all()
                )
                return [
                    LoginLogEntry(
                        timestamp=row.timestamp,
                        user_id=row.user_id,
                        username=row.username,
                        email=row.email,
                        success=bool(row.success),
                        ip=row.ip,
                        user_agent=row.user_agent,
                        planned_days_count=row.planned_days_count or 0,
                    )
                    for row in rows
                ]

        return await asyncio.to_thread(_select)

    async def delete(self, timestamp: str) -> bool:
        def _delete() -> bool:
            with self._session_factory() as db:
                row = (
                    db.query(LoginLog)
                    .filter(LoginLog.timestamp == timestamp)
                    .order_by(LoginLog.id)
                    .first()
                )
                if row is None:
                    return False
                db.delete(row)
                db.commit()
                return True

        return await asyncio.to_thread(_delete)


class RedisLogSink:
    source = SOURCE_REMOTE_CACHE
    label = "remote cache"

    def __init__(self, client_getter: Callable[[], redis.Redis | None], *, timeout: float = 1.5):
        self._client_getter = client_getter
        self.timeout = timeout

    def _client(self) -> redis.Redis:
        client = self._client_getter()
        if client is None:
            raise ConnectionError("Remote cache is not configured")
        return client

    async def append(self, entry: LoginLogEntry) -> None:
        key = f"login:{entry.user_id}:{entry.timestamp}"
        await bounded(self._client().set(key, json.dumps(entry.to_dict())), self.timeout)

    async def entries(self) -> list[LoginLogEntry]:
        client = self._client()
        keys = await bounded(client.keys(REDIS_PATTERN), self.timeout)
        if not keys:
            return []
        values = await bounded(client.mget(keys), self.timeout)
        result = []
        for raw in values:
            if not raw:
                continue
            try:
                result.append(LoginLogEntry.from_dict(json.loads(raw)))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed login log in remote cache")
        return result

    async def delete(self, timestamp: str) -> bool:
        client = self._client()
        for key in await bounded(client.keys(REDIS_PATTERN), self.timeout):
            raw = await bounded(client.get(key), self.timeout)
            if not raw:
                continue
            try:
                stored = json.loads(raw)
            except ValueError:
                continue
            if isinstance(stored, dict) and stored.get("timestamp") == timestamp:
                await bounded(client.delete(key), self.timeout)
                return True
        return False


class MemoryLogSink:
    """Last-resort store; lives in ``ProcessState`` and dies with the process."""

    source = SOURCE_MEMORY
    label = "memory"

    def __init__(self, state: ProcessState, *, limit: int = 1000):
        self.state = state
        self.limit = limit

    async def append(self, entry: LoginLogEntry) -> None:
        logs = self.state.login_logs
        logs.append(entry)
        if self.limit and len(logs) > self.limit:
            del logs[: len(logs) - self.limit]

    async def entries(self) -> list[LoginLogEntry]:
        return list(self.state.login_logs)

    async def delete(self, timestamp: str) -> bool:
        logs = self.state.login_logs
        for index, entry in enumerate(logs):
            if entry.timestamp == timestamp:
                del logs[index]
                return True
        return False


class AuditLog:
    def __init__(self, sinks: Sequence[LogSink]):
        self.sinks = list(sinks)

    def sink(self, source: str) -> LogSink | None:
        for sink in self.sinks:
            if sink.source == source:
                return sink
        return None

    async def write(self, entry: LoginLogEntry) -> str | None:
        """Store ``entry`` in the first sink that accepts it; return its source."""
        for sink in self.sinks:
            try:
                await sink.append(entry)
            except Exception as exc:
                logger.warning(
                    "Error saving login log to %s for user %s: %r", sink.label, entry.email, exc
                )
                continue
            logger.info(
                "Login log saved to %s for user %s",
                sink.label,
                entry.email,
                extra={"source": sink.source, "user_id": entry.user_id},
            )
            login_log_writes_total.labels(source=sink.source).inc()
            return sink.source
        logger.error("Login log for %s was not stored anywhere", entry.email)
        return None

    async def list_all(self) -> list[LoginLogEntry]:
        merged: list[LoginLogEntry] = []
        for sink in self.sinks:
            try:
                found = await sink.entries()
            except Exception as exc:
                logger.warning("Error retrieving logs from %s: %r", sink.label, exc)
                continue
            logger.debug("Retrieved %d logs from %s", len(found), sink.label)
            merged.extend(entry.tagged(sink.source) for entry in found)
        merged.sort(key=lambda entry: _parse_timestamp(entry.timestamp), reverse=True)
        return merged

    async def delete(self, timestamp: str, source: str) -> DeleteOutcome:
        sink = self.sink(source)
        if sink is None:
            return DeleteOutcome(False, "Unknown log source", "unknown_source")
        try:
            deleted = await sink.delete(timestamp)
        except Exception as exc:
            logger.exception("Error deleting log from %s", sink.label)
            return DeleteOutcome(False, f"Error deleting log: {exc}", "error")
        if not deleted:
            return DeleteOutcome(False, f"Log not found in {sink.label}", "not_found")
        return DeleteOutcome(True, f"Log deleted from {sink.label}", "deleted")


def build_entry(
    user: SessionUser,
    meta: RequestMeta | None,
    cfg: Settings,
    *,
    planned_days_count: int = 0,
    success: bool = True,
) -> LoginLogEntry:
    meta = meta or RequestMeta()
    ip = meta.ip if cfg.collect_ip_addresses else None
    user_agent = meta.user_agent if cfg.collect_user_agents else None
    return LoginLogEntry(
        timestamp=utc_timestamp(),
        user_id=user.id,
        username=user.name or "Unknown User",
        email=user.email or "unknown",
        success=success,
        ip=ip or "unknown",
        user_agent=user_agent or "unknown",
        planned_days_count=planned_days_count or 0,
    )


async def record_login(
    audit: AuditLog,
    user: SessionUser,
    meta: RequestMeta | None,
    cfg: Settings,
    *,
    planned_days_count: int = 0,
) -> None:
    """Record a login event. Never raises."""
    if not cfg.log_logins:
        return
    try:
        entry = build_entry(user, meta, cfg, planned_days_count=planned_days_count)
        await audit.write(entry)
    except Exception:
        logger.exception("Failed to record login for user %s", user.id)


async def create_test_log(audit: AuditLog, label: str = "test") -> dict[str, Any]:
    """Push a synthetic entry through the normal cascade."""
    entry = LoginLogEntry(
        timestamp=utc_timestamp(),
        user_id=f"test-user-{label}",
        username=f"test-user-{label}",
        email=f"test-{label}@example.com",
        ip="test-ip",
        user_agent="test-agent",
        planned_days_count=random.randint(0, 29),
    )
    source = await audit.write(entry)
    if source is None:
        return {"success": False, "message": "Test log could not be saved", "source": label}
    sink = audit.sink(source)
    return {"success": True, "message": f"Test log saved to {sink.label}", "source": label}


async def create_direct_memory_log(audit: AuditLog) -> dict[str, Any]:
    """Write straight to the memory store, bypassing the cascade."""
    sink = audit.sink(SOURCE_MEMORY)
    if sink is None:
        return {"success": False, "message": "Memory log store is not configured"}
    await sink.append(
        LoginLogEntry(
            timestamp=utc_timestamp(),
            user_id="direct-memory-test",
            username="direct-memory-test",
            email="memory@example.com",
            ip="memory-ip",
            user_agent="memory-agent",
            planned_days_count=random.randint(0, 29),
        )
    )
    return {"success": True, "message": "Direct memory log created"}
