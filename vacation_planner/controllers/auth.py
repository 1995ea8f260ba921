from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from vacation_planner.dependencies import (
    ErrorResponse,
    get_audit_log,
    get_reconciler,
    request_meta,
    require_user,
    settings,
)
from vacation_planner.services.audit_log import AuditLog, record_login
from vacation_planner.services.reconciler import VacationReconciler
from vacation_planner.services.session import RequestMeta, SessionUser

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginEventResponse(BaseModel):
    recorded: bool
    plannedDaysCount: int


@router.post(
    "/login-events",
    response_model=LoginEventResponse,
    status_code=202,
    responses={401: {"model": ErrorResponse}},
)
async def login_event(
    user: SessionUser = Depends(require_user),
    meta: RequestMeta = Depends(request_meta),
    reconciler: VacationReconciler = Depends(get_reconciler),
    audit: AuditLog = Depends(get_audit_log),
):
    count = len(reconciler.planned_days)
    await record_login(audit, user, meta, settings, planned_days_count=count)
    return LoginEventResponse(recorded=settings.log_logins, plannedDaysCount=count)
