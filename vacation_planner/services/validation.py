"""Shape checks for planner payloads, whether they come from a request or a remote account."""

from __future__ import annotations

from datetime import date
from typing import Any


class PlannerInputError(ValueError):
    """Raised when a payload cannot be stored as planner state."""


def split_week_key(week_key: str) -> tuple[int, str]:
    """``"2025-27"`` -> ``(2025, "27")``."""
    year, _, week = week_key.partition("-")
    if not week:
        raise ValueError(f"Invalid week key: {week_key!r}")
    return int(year), week


def normalize_days(days: Any) -> list[str]:
    """Validate ISO dates and drop duplicates, keeping first-seen order."""
    if not isinstance(days, list):
        raise PlannerInputError("plannedDays must be an array")
    seen: dict[str, None] = {}
    for day in days:
        if not isinstance(day, str):
            raise PlannerInputError("plannedDays must contain date strings")
        try:
            date.fromisoformat(day)
        except ValueError as exc:
            raise PlannerInputError(f"Invalid date: {day!r}") from exc
        seen.setdefault(day, None)
    return list(seen)


def normalize_day_categories(categories: Any) -> dict[str, str]:
    if not isinstance(categories, dict):
        raise PlannerInputError("dayCategories must be an object")
    for day, category_id in categories.items():
        try:
            date.fromisoformat(day)
        except (TypeError, ValueError) as exc:
            raise PlannerInputError(f"Invalid date: {day!r}") from exc
        if not isinstance(category_id, str) or not category_id:
            raise PlannerInputError(f"Invalid category for {day}")
    return dict(categories)


def normalize_week_notes(notes: Any) -> dict[str, str]:
    if not isinstance(notes, dict):
        raise PlannerInputError("weekNotes must be an object")
    for key, note in notes.items():
        try:
            split_week_key(key)
        except (AttributeError, ValueError) as exc:
            raise PlannerInputError(f"Invalid week key: {key!r}") from exc
        if not isinstance(note, str):
            raise PlannerInputError(f"Invalid note for week {key}")
    return dict(notes)
