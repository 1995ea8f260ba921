from sqlalchemy import Column, Integer, String, Text

from .base import Base


class PlannedDay(Base):
    __tablename__ = "planned_days"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(String(10), nullable=False)


class Category(Base):
    """User category row. Not written by the planner yet, see DESIGN.md."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False)


class DayCategory(Base):
    __tablename__ = "day_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    day_date = Column(String(10), nullable=False)
    category_id = Column(String, nullable=False)


class WeekNote(Base):
    __tablename__ = "week_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    week_number = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    note = Column(Text, nullable=False, default="")


__all__ = ["PlannedDay", "Category", "DayCategory", "WeekNote"]
