from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from vacation_planner.dependencies import ErrorResponse, require_user, settings
from vacation_planner.models import ErrorCode
from vacation_planner.services.account import AccountPayload
from vacation_planner.services.session import SessionUser
from vacation_planner.services.stores import build_account_store
from vacation_planner.services.validation import (
    PlannerInputError,
    normalize_days,
    normalize_week_notes,
)
from vacation_planner.state import get_process_state

router = APIRouter(tags=["vacation-days"])


class VacationDaysResponse(BaseModel):
    plannedDays: list[str] = Field(default_factory=list)
    weekNotes: dict[str, str] = Field(default_factory=dict)
    success: bool = True


class SaveResponse(BaseModel):
    success: bool


def _bad_request(message: str) -> HTTPException:
    err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message=message)
    return HTTPException(status_code=400, detail=err.model_dump())


@router.get(
    "/vacation-days",
    response_model=VacationDaysResponse,
    responses={401: {"model": ErrorResponse}},
)
async def get_vacation_days(user: SessionUser = Depends(require_user)):
    store = build_account_store(settings, get_process_state())
    payload = await store.fetch(user.id)
    return VacationDaysResponse(
        plannedDays=payload.planned_days,
        weekNotes=payload.week_notes,
    )


@router.post(
    "/vacation-days",
    response_model=SaveResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def save_vacation_days(request: Request, user: SessionUser = Depends(require_user)):
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise _bad_request("Invalid JSON in request body") from exc
    if not isinstance(body, dict):
        raise _bad_request("Request body must be an object")

    try:
        planned_days = normalize_days(body.get("plannedDays"))
        week_notes = normalize_week_notes(body.get("weekNotes") or {})
    except PlannerInputError as exc:
        raise _bad_request(str(exc)) from exc

    store = build_account_store(settings, get_process_state())
    await store.save(user.id, AccountPayload(planned_days=planned_days, week_notes=week_notes))
    return SaveResponse(success=True)
