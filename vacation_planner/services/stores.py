from __future__ import annotations

from vacation_planner import db as db_module
from vacation_planner.config import Settings
from vacation_planner.services import redis_client
from vacation_planner.services.account import (
    AccountStore,
    HttpAccountClient,
    RedisAccountStore,
)
from vacation_planner.services.audit_log import (
    AuditLog,
    DatabaseLogSink,
    MemoryLogSink,
    RedisLogSink,
)
from vacation_planner.services.local_storage import LocalStorage
from vacation_planner.services.session import SessionUser
from vacation_planner.services.tiered_store import TieredStore
from vacation_planner.services.tiers import (
    DatabaseTier,
    LocalStorageTier,
    MemoryTier,
    RemoteTier,
)
from vacation_planner.state import ProcessState


def build_account_store(cfg: Settings, state: ProcessState) -> RedisAccountStore:
    return RedisAccountStore(state, redis_client.get_redis, timeout=cfg.remote_timeout_s)


def _remote_account(user: SessionUser, cfg: Settings, state: ProcessState) -> AccountStore:
    if cfg.account_api_url:
        headers = {"X-User-ID": user.id}
        if user.email:
            headers["X-User-Email"] = user.email
        return HttpAccountClient(
            cfg.account_api_url, headers=headers, timeout=cfg.remote_timeout_s
        )
    return build_account_store(cfg, state)


def build_remote_tier(user: SessionUser, cfg: Settings, state: ProcessState) -> RemoteTier:
    return RemoteTier(_remote_account(user, cfg, state), timeout=cfg.remote_timeout_s)


def build_tiered_store(user: SessionUser, cfg: Settings, state: ProcessState) -> TieredStore:
    """Tiers in read order: memory, database, local storage (+ remote when linked)."""
    tiers = [
        MemoryTier(state),
        DatabaseTier(db_module.SessionLocal),
        LocalStorageTier(LocalStorage(cfg.local_storage_path)),
    ]
    remote = None
    if user.remote_linked:
        remote = build_remote_tier(user, cfg, state)
    return TieredStore(tiers, remote=remote, debounce_s=cfg.sync_debounce_s)


def build_audit_log(cfg: Settings, state: ProcessState) -> AuditLog:
    return AuditLog(
        [
            DatabaseLogSink(db_module.SessionLocal, limit=cfg.login_log_read_limit),
            RedisLogSink(redis_client.get_redis, timeout=cfg.remote_timeout_s),
            MemoryLogSink(state, limit=cfg.max_memory_login_logs),
        ]
    )
