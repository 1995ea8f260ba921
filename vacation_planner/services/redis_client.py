from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from vacation_planner.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean "remote cache unavailable" for the caller
REMOTE_ERRORS: tuple[type[BaseException], ...] = (
    RedisError,
    OSError,
    asyncio.TimeoutError,
)

_settings: Settings | None = None
_client: redis.Redis | None = None


def init_redis(cfg: Settings) -> None:
    """Store settings; the client itself is created on first use."""
    global _settings, _client
    _settings = cfg
    _client = None


def get_redis() -> redis.Redis | None:
    """Return the cached client, or ``None`` when no Redis URL is configured."""
    global _client
    if _client is not None:
        return _client
    cfg = _settings or Settings()
    if not cfg.redis_url:
        return None
    _client = redis.from_url(
        cfg.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=cfg.remote_timeout_s,
        socket_timeout=cfg.remote_timeout_s,
    )
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        try:
            await _client.aclose()
        except REMOTE_ERRORS:  # pragma: no cover - best effort cleanup
            logger.exception("Failed to close Redis client")
    _client = None


async def bounded(awaitable: Awaitable[T], timeout: float) -> T:
    """Await a remote call, treating a timeout like a connection failure."""
    return await asyncio.wait_for(awaitable, timeout=timeout)


def check_redis_config(cfg: Settings) -> dict[str, Any]:
    configured = bool(cfg.redis_url)
    return {
        "success": configured,
        "message": "Redis URL is configured" if configured else "Redis URL is not configured",
        "url": "configured" if configured else "not configured",
    }


async def check_redis_connection(timeout: float) -> dict[str, Any]:
    client = get_redis()
    if client is None:
        return {"success": False, "message": "Redis connection failed: not configured"}
    try:
        await bounded(client.ping(), timeout)
    except REMOTE_ERRORS as exc:
        logger.warning("Redis ping failed: %r", exc)
        return {"success": False, "message": f"Redis connection failed: {exc!r}"}
    return {"success": True, "message": "Redis connection successful"}
