from .base import Base
from .error_code import ErrorCode
from .login_log import LoginLog
from .vacation import Category, DayCategory, PlannedDay, WeekNote

__all__ = [
    "Base",
    "ErrorCode",
    "LoginLog",
    "PlannedDay",
    "Category",
    "DayCategory",
    "WeekNote",
]
