import base64
from datetime import datetime, timedelta, timezone

import pytest

from rentease_session.config import SessionConfig
from rentease_session.storage import MemoryStorage
from rentease_session.store import SessionStore
from rentease_session.query import SessionQuery


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def secret_key():
    return bytes(range(32))


@pytest.fixture
def other_secret_key():
    return bytes(range(32, 64))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage, secret_key, clock):
    return SessionStore(storage, secret_key, clock=clock)


@pytest.fixture
def query(store):
    return SessionQuery(store)


@pytest.fixture
def config(secret_key):
    return SessionConfig(secret_key=secret_key)


@pytest.fixture
def secret_env(monkeypatch, secret_key):
    monkeypatch.setenv(
        "RENTEASE_SESSION_SECRET", base64.b64encode(secret_key).decode("ascii")
    )
    return secret_key
