"""
Global pytest fixtures for the Presence Platform test suite.

Responsibilities:
    - Provide a controllable clock so expiry can be tested without sleeping
    - Provide an isolated in-memory store and a register wired to it
    - Provide a FastAPI TestClient built by the app factory around those

Why an app factory?
    `create_app(store=..., clock=...)` gives each test fresh state and lets
    the test move time forward for the app it is talking to.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import create_app
from presence_platform.errors import StoreUnavailable
from presence_platform.register.presence_register import PresenceRegister
from presence_platform.storage.base import BasePresenceStore
from presence_platform.storage.storage import MemoryPresenceStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class UnavailableStore(BasePresenceStore):
    """Store whose every operation fails as if the database were down."""

    def _fail(self, *args, **kwargs):
        raise StoreUnavailable("Presence store connection failed")

    upsert = _fail
    delete_older_than = _fail
    count = _fail
    remove = _fail
    get = _fail


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryPresenceStore:
    """Fresh in-memory store per test."""
    return MemoryPresenceStore()


@pytest.fixture
def register(store, clock) -> PresenceRegister:
    return PresenceRegister(store=store, clock=clock)


@pytest.fixture
def client(store, clock) -> TestClient:
    """
    TestClient around a new app that shares the `store` and `clock` fixtures,
    so tests can advance time and inspect storage directly.
    """
    with TestClient(create_app(store=store, clock=clock)) as test_client:
        yield test_client


@pytest.fixture
def down_client() -> TestClient:
    """TestClient whose store is unreachable."""
    with TestClient(create_app(store=UnavailableStore())) as test_client:
        yield test_client
