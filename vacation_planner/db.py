from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from vacation_planner.config import Settings
from vacation_planner.models import Base

logger = logging.getLogger(__name__)


engine: Engine | None = None
_session_factory: sessionmaker | None = None


class _SessionWrapper:
    """Callable proxy so tiers and log sinks can hold ``SessionLocal`` before init."""

    def __call__(self, *args: Any, **kwargs: Any) -> Session:
        if _session_factory is None:
            raise RuntimeError("Database not initialized")
        return _session_factory(*args, **kwargs)


SessionLocal = _SessionWrapper()


def _engine_options(database_url: str) -> dict[str, Any]:
    if make_url(database_url).get_backend_name() == "sqlite":
        # planner tiers run queries from worker threads via asyncio.to_thread
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_size": 10, "max_overflow": 5, "pool_recycle": 30}


def init_db(cfg: Settings) -> None:
    """Create the engine and session factory shared by planner tables and login logs."""
    global engine, _session_factory

    engine = create_engine(
        cfg.database_url,
        future=True,
        pool_pre_ping=True,
        **_engine_options(cfg.database_url),
    )
    _session_factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
    )

    if cfg.db_create_all:
        Base.metadata.create_all(engine)
    logger.info("Database initialized (%s)", engine.dialect.name)


def dispose_db() -> None:
    """Close pooled connections; the engine reconnects on next use."""
    if engine is not None:
        engine.dispose()
