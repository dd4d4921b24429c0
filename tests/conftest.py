import os

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_store
from app.main import app
from app.store import InMemoryDocumentStore


class TickingClock:
    """Returns a strictly increasing time on every call"""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.now = self.now + self.step
        return self.now


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(clock):
    return InMemoryDocumentStore(clock=clock)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
