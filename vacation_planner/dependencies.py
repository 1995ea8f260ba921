from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel

from vacation_planner.config import Settings
from vacation_planner.models import ErrorCode
from vacation_planner.services.audit_log import AuditLog
from vacation_planner.services.reconciler import VacationReconciler
from vacation_planner.services.session import RequestMeta, SessionUser
from vacation_planner.services.stores import build_audit_log, build_tiered_store
from vacation_planner.state import get_process_state

settings = Settings()

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    code: str
    message: str


async def get_session_user(
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_user_name: str | None = Header(None, alias="X-User-Name"),
    x_user_email: str | None = Header(None, alias="X-User-Email"),
    x_account_linked: bool = Header(False, alias="X-Account-Linked"),
) -> SessionUser | None:
    """Session provider seam: the auth proxy in front of the API sets these headers."""
    if not x_user_id:
        return None
    return SessionUser(
        id=x_user_id,
        name=x_user_name,
        email=x_user_email,
        remote_linked=x_account_linked,
    )


async def require_user(user: SessionUser | None = Depends(get_session_user)) -> SessionUser:
    if user is None:
        err = ErrorResponse(code=ErrorCode.UNAUTHORIZED, message="Unauthorized")
        raise HTTPException(status_code=401, detail=err.model_dump())
    return user


async def require_admin(user: SessionUser = Depends(require_user)) -> SessionUser:
    if not user.email or user.email not in settings.admin_emails:
        err = ErrorResponse(code=ErrorCode.FORBIDDEN, message="Admin access required")
        raise HTTPException(status_code=403, detail=err.model_dump())
    return user


def client_ip(request: Request) -> str:
    """Peer address, or the first X-Forwarded-For hop when every proxy is trusted."""
    client_host = request.client.host if request.client else ""
    ip = client_host
    xff = request.headers.get("X-Forwarded-For")
    if xff and client_host in settings.trusted_proxies:
        forwarded = [h.strip() for h in xff.split(",") if h.strip()]
        proxies = forwarded[1:] + [client_host]
        if forwarded and all(p in settings.trusted_proxies for p in proxies):
            ip = forwarded[0]
    return ip


def request_meta(request: Request) -> RequestMeta:
    return RequestMeta(
        ip=client_ip(request) or None,
        user_agent=request.headers.get("User-Agent"),
    )


def get_audit_log() -> AuditLog:
    return build_audit_log(settings, get_process_state())


async def _evict_session(sessions: dict[str, VacationReconciler]) -> None:
    key = next(iter(sessions))
    evicted = sessions.pop(key)
    try:
        await evicted.store.flush_push(evicted.user_id)
        await evicted.close()
    except Exception:
        logger.exception("Failed to close evicted planner session %s", key)
    logger.info("Evicted planner session %s", key)


async def get_reconciler(user: SessionUser = Depends(require_user)) -> VacationReconciler:
    """Return the live planner session for ``user``, starting one if needed.

    A session is keyed by user id and link state, so linking an account
    mid-session starts a fresh, remote-linked planner. At most
    ``max_planner_sessions`` stay live; the least recently used one is
    flushed and closed to make room.
    """
    state = get_process_state()
    key = f"{user.id}:{'linked' if user.remote_linked else 'local'}"
    reconciler = state.sessions.pop(key, None)
    if reconciler is None:
        store = build_tiered_store(user, settings, state)
        reconciler = VacationReconciler(user.id, store)
        logger.info("Started planner session %s", key)
    # re-insert so dict order tracks recency
    state.sessions[key] = reconciler
    while len(state.sessions) > max(settings.max_planner_sessions, 1):
        await _evict_session(state.sessions)
    await reconciler.start()
    return reconciler
