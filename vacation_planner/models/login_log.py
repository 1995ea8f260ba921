from sqlalchemy import Boolean, Column, Integer, String

from .base import Base


class LoginLog(Base):
    """Durable audit record of a login event."""

    __tablename__ = "login_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    username = Column(String, nullable=False, default="Unknown User")
    email = Column(String, nullable=False, default="unknown")
    success = Column(Boolean, nullable=False, default=True)
    ip = Column(String, nullable=False, default="unknown")
    user_agent = Column(String, nullable=False, default="unknown")
    planned_days_count = Column(Integer, nullable=False, default=0)


__all__ = ["LoginLog"]
