import os
import time
from datetime import datetime, timedelta


# ----------------------------------------------------------------------
# 1. Environment MUST be set before any imports happen
# ----------------------------------------------------------------------

os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")


import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine

from taskcal.config import AppConfig
from taskcal.database import TaskStore
from taskcal.main import create_app
from taskcal.repositories import TaskRepository


class FakeClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + timedelta(seconds=1)
        return now


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def store(db_url):
    store = TaskStore(create_async_engine(db_url))
    await store.ensure_schema()
    yield store
    await store.dispose()


@pytest_asyncio.fixture
async def repo(store, clock):
    return TaskRepository(store.session_factory, clock=clock)


@pytest.fixture
def app_config(db_url):
    return AppConfig(
        database_url=db_url,
        ready_max_attempts=3,
        ready_delay_s=0.01,
        cors_allow_origins=["http://localhost:8080"],
    )


@pytest.fixture
def app(app_config):
    return create_app(app_config)


@pytest.fixture
def client(app, clock):
    """TestClient with the store bootstrapped and a deterministic clock."""
    with TestClient(app) as c:
        deadline = time.monotonic() + 10
        while not app.state.store_ready:
            if app.state.bootstrap_error is not None:
                pytest.fail(f"store bootstrap failed: {app.state.bootstrap_error}")
            if time.monotonic() > deadline:
                pytest.fail("store bootstrap did not finish in time")
            time.sleep(0.01)
        app.state.repository = TaskRepository(app.state.store.session_factory, clock=clock)
        yield c
