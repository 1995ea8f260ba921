from datetime import date

import pytest

from vacation_planner.services.local_storage import LocalStorage
from vacation_planner.services.planner import week_key
from vacation_planner.services.tiers import StoreKey
from vacation_planner.services.validation import (
    PlannerInputError,
    normalize_days,
    normalize_week_notes,
    split_week_key,
)


def test_week_key_uses_iso_weeks():
    assert week_key(date(2025, 7, 1)) == "2025-27"
    # 2024-12-30 belongs to ISO week 1 of 2025
    assert week_key(date(2024, 12, 30)) == "2025-1"


def test_normalize_days_drops_duplicates_in_order():
    assert normalize_days(["2025-07-02", "2025-07-01", "2025-07-02"]) == [
        "2025-07-02",
        "2025-07-01",
    ]


@pytest.mark.parametrize("value", [None, "2025-07-01", {"2025-07-01": True}, [20250701]])
def test_normalize_days_rejects_bad_shapes(value):
    with pytest.raises(PlannerInputError):
        normalize_days(value)


def test_normalize_week_notes_rejects_bad_keys():
    with pytest.raises(PlannerInputError):
        normalize_week_notes({"week 27": "note"})


def test_split_week_key():
    assert split_week_key("2025-27") == (2025, "27")


def test_store_key_flat_names():
    assert StoreKey.planned_days("u1").flat == "plannedVacationDays-u1"
    assert StoreKey.day_categories("u1").flat == "dayCategories-u1"
    assert StoreKey.week_notes("u1").flat == "weekNotes-u1"
    with pytest.raises(ValueError):
        StoreKey("notes", "u1")


def test_local_storage_items(tmp_path):
    storage = LocalStorage(tmp_path / "nested" / "local.json")

    assert storage.get_item("a") is None
    storage.set_item("a", "1")
    storage.set_item("b", "2")
    assert storage.remove_item("a") is True
    assert storage.remove_item("a") is False
    assert storage.keys() == ["b"]
    assert LocalStorage(storage.path).get_item("b") == "2"
    storage.clear()
    assert storage.keys() == []
