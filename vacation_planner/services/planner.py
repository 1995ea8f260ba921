"""Read/write helpers for a user's planned days, day categories and week notes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from vacation_planner.services.tiered_store import TieredStore, WriteOutcome
from vacation_planner.services.tiers import StoreKey
from vacation_planner.services.validation import (
    PlannerInputError,
    normalize_day_categories,
    normalize_days,
    normalize_week_notes,
)

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    success: bool
    message: str
    outcome: WriteOutcome | None = None


def week_key(day: date) -> str:
    """ISO week key in the ``"<year>-<week>"`` form used for week notes."""
    iso = day.isocalendar()
    return f"{iso.year}-{iso.week}"


async def read_planned_days(
    store: TieredStore, user_id: str, *, include_remote: bool = True
) -> list[str]:
    if not user_id:
        logger.warning("No user id given, returning no planned days")
        return []
    return list(
        await store.read(StoreKey.planned_days(user_id), include_remote=include_remote)
    )


async def write_planned_days(
    store: TieredStore, user_id: str, days: Any, *, sync: bool = True
) -> WriteResult:
    if not user_id:
        return WriteResult(False, "Missing user id")
    try:
        normalized = normalize_days(days)
    except PlannerInputError as exc:
        return WriteResult(False, str(exc))
    outcome = await store.write(StoreKey.planned_days(user_id), normalized, sync=sync)
    if not outcome.success:
        return WriteResult(False, "Planned days could not be saved", outcome)
    return WriteResult(True, f"Saved {len(normalized)} planned days", outcome)


async def read_day_categories(
    store: TieredStore, user_id: str, *, include_remote: bool = True
) -> dict[str, str]:
    if not user_id:
        return {}
    return dict(
        await store.read(StoreKey.day_categories(user_id), include_remote=include_remote)
    )


async def write_day_categories(
    store: TieredStore, user_id: str, categories: Any
) -> WriteResult:
    if not user_id:
        return WriteResult(False, "Missing user id")
    try:
        normalized = normalize_day_categories(categories)
    except PlannerInputError as exc:
        return WriteResult(False, str(exc))
    outcome = await store.write(StoreKey.day_categories(user_id), normalized)
    if not outcome.success:
        return WriteResult(False, "Day categories could not be saved", outcome)
    return WriteResult(True, "Day categories saved", outcome)


async def read_week_notes(
    store: TieredStore, user_id: str, *, include_remote: bool = True
) -> dict[str, str]:
    if not user_id:
        return {}
    return dict(
        await store.read(StoreKey.week_notes(user_id), include_remote=include_remote)
    )


async def write_week_notes(
    store: TieredStore, user_id: str, notes: Any, *, sync: bool = True
) -> WriteResult:
    if not user_id:
        return WriteResult(False, "Missing user id")
    try:
        normalized = normalize_week_notes(notes)
    except PlannerInputError as exc:
        return WriteResult(False, str(exc))
    outcome = await store.write(StoreKey.week_notes(user_id), normalized, sync=sync)
    if not outcome.success:
        return WriteResult(False, "Week notes could not be saved", outcome)
    return WriteResult(True, "Week notes saved", outcome)
