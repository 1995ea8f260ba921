from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from vacation_planner.config import Settings
from vacation_planner.controllers import v1
from vacation_planner.db import dispose_db, init_db
from vacation_planner.logger import setup_logging
from vacation_planner.services.redis_client import close_redis, init_redis
from vacation_planner.state import get_process_state

settings = Settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


async def _close_sessions() -> None:
    sessions = get_process_state().sessions
    for key, reconciler in list(sessions.items()):
        try:
            await reconciler.close()
        except Exception:
            logger.exception("Failed to close planner session %s", key)
    sessions.clear()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_redis(settings)
    await asyncio.to_thread(init_db, settings)
    yield
    await _close_sessions()
    await close_redis()
    await asyncio.to_thread(dispose_db)


app = FastAPI(
    title="Vacation Planner API",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(v1.router)

Instrumentator().instrument(app).expose(app)
