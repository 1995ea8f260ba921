from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from vacation_planner.dependencies import ErrorResponse, get_reconciler
from vacation_planner.models import ErrorCode
from vacation_planner.services.planner import WriteResult
from vacation_planner.services.reconciler import VacationReconciler
from vacation_planner.services.tiered_store import SyncResult

router = APIRouter(prefix="/planner", tags=["planner"])


class CategoryResponse(BaseModel):
    id: str
    name: str
    color: str


class PlannerStateResponse(BaseModel):
    plannedDays: list[str]
    dayCategories: dict[str, str]
    weekNotes: dict[str, str]
    categories: list[CategoryResponse]
    status: dict[str, Any]


class WriteResponse(BaseModel):
    success: bool
    message: str
    plannedDays: list[str] | None = None


class SyncResponse(BaseModel):
    success: bool
    direction: str
    error: str | None = None
    at: str


class CategoryAssignment(BaseModel):
    categoryId: str = Field(min_length=1)


class WeekNoteUpdate(BaseModel):
    note: str = Field(max_length=2000)


class NewCategory(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    color: str | None = None


def _state(reconciler: VacationReconciler) -> PlannerStateResponse:
    return PlannerStateResponse(
        plannedDays=sorted(reconciler.planned_days),
        dayCategories=reconciler.day_categories,
        weekNotes=reconciler.week_notes,
        categories=[
            CategoryResponse(id=c.id, name=c.name, color=c.color)
            for c in reconciler.categories.all()
        ],
        status=reconciler.status(),
    )


def _write_response(result: WriteResult, planned_days: list[str] | None = None) -> WriteResponse:
    if result.outcome is None:
        # rejected before any tier was touched
        err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message=result.message)
        raise HTTPException(status_code=400, detail=err.model_dump())
    return WriteResponse(
        success=result.success,
        message=result.message,
        plannedDays=sorted(planned_days) if planned_days is not None else None,
    )


def _sync_response(result: SyncResult) -> SyncResponse:
    return SyncResponse(
        success=result.success,
        direction=result.direction,
        error=result.error,
        at=result.at.isoformat(),
    )


@router.get("", response_model=PlannerStateResponse, responses={401: {"model": ErrorResponse}})
async def planner_state(reconciler: VacationReconciler = Depends(get_reconciler)):
    return _state(reconciler)


@router.put(
    "/days",
    response_model=WriteResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def replace_planned_days(
    request: Request, reconciler: VacationReconciler = Depends(get_reconciler)
):
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message="Invalid JSON payload")
        raise HTTPException(status_code=400, detail=err.model_dump()) from exc
    days = body.get("plannedDays") if isinstance(body, dict) else body
    result = await reconciler.set_planned_days(days)
    return _write_response(result, reconciler.planned_days)


@router.post(
    "/days/{day}/toggle",
    response_model=WriteResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def toggle_day(day: str, reconciler: VacationReconciler = Depends(get_reconciler)):
    result = await reconciler.toggle_day(day)
    return _write_response(result, reconciler.planned_days)


@router.put(
    "/days/{day}/category",
    response_model=WriteResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def categorize_day(
    day: str,
    body: CategoryAssignment,
    reconciler: VacationReconciler = Depends(get_reconciler),
):
    result = await reconciler.set_day_category(day, body.categoryId)
    return _write_response(result)


@router.put(
    "/week-notes/{year}/{week}",
    response_model=WriteResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def save_week_note(
    year: int,
    week: int,
    body: WeekNoteUpdate,
    reconciler: VacationReconciler = Depends(get_reconciler),
):
    if not 1 <= week <= 53:
        err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message="Week must be between 1 and 53")
        raise HTTPException(status_code=400, detail=err.model_dump())
    result = await reconciler.set_week_note(year, week, body.note)
    return _write_response(result)


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=201,
    responses={401: {"model": ErrorResponse}},
)
async def add_category(body: NewCategory, reconciler: VacationReconciler = Depends(get_reconciler)):
    try:
        category = reconciler.add_category(body.name, body.color)
    except ValueError as exc:
        err = ErrorResponse(code=ErrorCode.BAD_REQUEST, message=str(exc))
        raise HTTPException(status_code=400, detail=err.model_dump()) from exc
    return CategoryResponse(id=category.id, name=category.name, color=category.color)


@router.post("/sync/pull", response_model=SyncResponse, responses={401: {"model": ErrorResponse}})
async def sync_pull(reconciler: VacationReconciler = Depends(get_reconciler)):
    return _sync_response(await reconciler.pull())


@router.post("/sync/push", response_model=SyncResponse, responses={401: {"model": ErrorResponse}})
async def sync_push(reconciler: VacationReconciler = Depends(get_reconciler)):
    return _sync_response(await reconciler.push_now())
