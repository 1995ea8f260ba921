from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category("beach", "Beach", "bg-blue-100 text-blue-800"),
    Category("mountains", "Mountains", "bg-emerald-100 text-emerald-800"),
    Category("city", "City Trip", "bg-purple-100 text-purple-800"),
    Category("family", "Family Visit", "bg-amber-100 text-amber-800"),
    Category("staycation", "Staycation", "bg-gray-100 text-gray-800"),
)

DEFAULT_COLOR = "bg-gray-100 text-gray-800"


class CategoryRegistry:
    """Categories available to one planner session.

    Added categories live only as long as the session object; they are not
    written to any storage tier.
    """

    def __init__(self) -> None:
        self._categories: dict[str, Category] = {c.id: c for c in DEFAULT_CATEGORIES}

    def all(self) -> list[Category]:
        return list(self._categories.values())

    def get(self, category_id: str) -> Category | None:
        return self._categories.get(category_id)

    def add(self, name: str, color: str | None = None) -> Category:
        name = name.strip()
        if not name:
            raise ValueError("Category name must not be empty")
        category_id = f"category-{int(time.time() * 1000)}"
        while category_id in self._categories:
            category_id += "-1"
        category = Category(category_id, name, color or DEFAULT_COLOR)
        self._categories[category_id] = category
        return category
