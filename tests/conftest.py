import fnmatch
import os
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import text

# Ensure tests run against throwaway files before settings are loaded
os.environ.setdefault("DATABASE_URL", "sqlite:////tmp/vacation_planner_test.db")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/vacation_planner_test_local.json")
os.environ.setdefault("SYNC_DEBOUNCE_S", "0.05")
os.environ.pop("REDIS_URL", None)
os.environ.pop("ACCOUNT_API_URL", None)

from fastapi.testclient import TestClient
from vacation_planner.main import app
from vacation_planner.config import Settings
from vacation_planner.db import SessionLocal, init_db
from vacation_planner.services import redis_client
from vacation_planner.state import get_process_state

TABLES = ("planned_days", "categories", "day_categories", "week_notes", "login_logs")


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply Alembic migrations before running tests."""
    cfg_path = Path(__file__).resolve().parent.parent / "alembic.ini"
    config = Config(str(cfg_path))
    config.set_main_option("script_location", str(cfg_path.parent / "migrations"))
    stdout_buf, stderr_buf = StringIO(), StringIO()
    try:
        with redirect_stdout(stdout_buf), redirect_stderr(stderr_buf):
            command.upgrade(config, "head")
    except Exception as exc:
        print("Alembic upgrade failed:", exc)
        print("stdout:\n", stdout_buf.getvalue())
        print("stderr:\n", stderr_buf.getvalue())
        raise
    init_db(Settings())


@pytest.fixture(scope="session", autouse=True)
def remove_test_files():
    """Remove temporary SQLite database and local storage after tests finish."""
    yield
    db_url = os.environ.get("DATABASE_URL")
    if db_url and db_url.startswith("sqlite:///"):
        db_path = Path(db_url.replace("sqlite:///", ""))
        if db_path.exists():
            db_path.unlink()
    Path(os.environ["LOCAL_STORAGE_PATH"]).unlink(missing_ok=True)


@pytest.fixture(scope="module")
def client(apply_migrations):
    """Yields a TestClient with lifespan events."""
    with TestClient(app) as client:
        yield client


class FakeRedis:
    """Async stand-in for the subset of redis.asyncio.Redis the app uses."""

    def __init__(self):
        self.store = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis down")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value):
        self._check()
        self.store[key] = value
        return True

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def keys(self, pattern="*"):
        self._check()
        return [key for key in self.store if fnmatch.fnmatchcase(key, pattern)]

    async def mget(self, keys):
        self._check()
        return [self.store.get(key) for key in keys]

    async def ping(self):
        self._check()
        return True

    async def aclose(self):
        return None


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_client, "_client", fake)
    yield fake


@pytest.fixture(autouse=True)
def reset_state(apply_migrations):
    """Every test starts with empty tables, process state and local storage."""
    with SessionLocal() as session:
        for table in TABLES:
            session.execute(text(f"DELETE FROM {table}"))
        session.commit()
    get_process_state().clear()
    Path(os.environ["LOCAL_STORAGE_PATH"]).unlink(missing_ok=True)
    yield
    get_process_state().clear()
