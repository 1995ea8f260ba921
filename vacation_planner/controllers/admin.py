from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from vacation_planner.dependencies import ErrorResponse, get_audit_log, require_admin, settings
from vacation_planner.models import ErrorCode
from vacation_planner.services import redis_client
from vacation_planner.services.account import AccountSyncError
from vacation_planner.services.audit_log import (
    AuditLog,
    create_direct_memory_log,
    create_test_log,
)
from vacation_planner.services.session import SessionUser
from vacation_planner.services.stores import build_remote_tier
from vacation_planner.state import get_process_state

router = APIRouter(prefix="/admin", tags=["admin"])

logger = logging.getLogger(__name__)

ADMIN_ERRORS = {401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}}


class LoginLogOut(BaseModel):
    timestamp: str
    userId: str
    username: str
    email: str
    success: bool
    ip: str
    userAgent: str
    plannedDaysCount: int
    source: str


class ActionResponse(BaseModel):
    success: bool
    message: str
    source: str | None = None


class CheckResult(BaseModel):
    success: bool
    message: str


class RedisStatusResponse(BaseModel):
    config: CheckResult
    connection: CheckResult
    url: str


@router.get("/logs", response_model=list[LoginLogOut], responses=ADMIN_ERRORS)
async def list_logs(
    _admin: SessionUser = Depends(require_admin),
    audit: AuditLog = Depends(get_audit_log),
):
    entries = await audit.list_all()
    return [LoginLogOut(**entry.to_dict()) for entry in entries]


@router.delete(
    "/logs",
    response_model=ActionResponse,
    responses={**ADMIN_ERRORS, 400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_log(
    timestamp: str | None = Query(None),
    source: str | None = Query(None),
    admin: SessionUser = Depends(require_admin),
    audit: AuditLog = Depends(get_audit_log),
):
    if not timestamp or not source:
        err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message="Missing timestamp or source")
        raise HTTPException(status_code=400, detail=err.model_dump())

    outcome = await audit.delete(timestamp, source)
    logger.info(
        "Admin %s deleted log %s from %s: %s", admin.email, timestamp, source, outcome.status
    )
    if outcome.status == "unknown_source":
        err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message=outcome.message)
        raise HTTPException(status_code=400, detail=err.model_dump())
    if outcome.status == "not_found":
        err = ErrorResponse(code=ErrorCode.NOT_FOUND, message=outcome.message)
        raise HTTPException(status_code=404, detail=err.model_dump())
    if outcome.status == "error":
        err = ErrorResponse(code=ErrorCode.SERVICE_UNAVAILABLE, message=outcome.message)
        raise HTTPException(status_code=503, detail=err.model_dump())
    return ActionResponse(**outcome.to_dict(), source=source)


@router.post("/logs/test", response_model=ActionResponse, responses=ADMIN_ERRORS)
async def trigger_test_log(
    label: str = Query("test", max_length=50),
    _admin: SessionUser = Depends(require_admin),
    audit: AuditLog = Depends(get_audit_log),
):
    return ActionResponse(**await create_test_log(audit, label))


@router.post("/logs/memory", response_model=ActionResponse, responses=ADMIN_ERRORS)
async def create_memory_log(
    _admin: SessionUser = Depends(require_admin),
    audit: AuditLog = Depends(get_audit_log),
):
    return ActionResponse(**await create_direct_memory_log(audit), source="memory")


@router.get("/redis-status", response_model=RedisStatusResponse, responses=ADMIN_ERRORS)
async def redis_status(_admin: SessionUser = Depends(require_admin)):
    config = redis_client.check_redis_config(settings)
    connection = await redis_client.check_redis_connection(settings.remote_timeout_s)
    return RedisStatusResponse(
        config=CheckResult(success=config["success"], message=config["message"]),
        connection=CheckResult(**connection),
        url=config["url"],
    )


@router.get("/account-status", response_model=CheckResult, responses=ADMIN_ERRORS)
async def account_status(admin: SessionUser = Depends(require_admin)):
    """Probe the remote account tier the planner pushes to and pulls from."""
    remote = build_remote_tier(admin, settings, get_process_state())
    try:
        reachable = await remote.probe()
    except (asyncio.TimeoutError, AccountSyncError) as exc:
        logger.warning("Account probe failed: %r", exc)
        reachable = False
    target = "Account API" if settings.account_api_url else "Account store"
    if reachable:
        return CheckResult(success=True, message=f"{target} is reachable")
    return CheckResult(success=False, message=f"{target} is unreachable")
