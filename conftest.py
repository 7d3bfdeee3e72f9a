"""
Pytest configuration and shared fixtures.

Each test gets a fresh app backed by its own SQLite file and a fake
millisecond clock, so cooldown windows can be crossed without sleeping.
"""

import pytest
from fastapi.testclient import TestClient

from messagewall.config import Settings, get_settings
from messagewall.main import create_app

# Clear settings cache so nothing leaks in from a developer .env
get_settings.cache_clear()

TEST_ORIGIN = "http://localhost:5173"
START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = START_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        CORS_ORIGIN=TEST_ORIGIN,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def app(settings, clock):
    return create_app(settings=settings, clock=clock)


@pytest.fixture
def client(app):
    """Test client with the app lifespan (engine, schema) running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def use_identity(client):
    """Make the client present the given token as its uid cookie."""
    def _use(token: str) -> None:
        client.cookies.clear()
        client.cookies.set("uid", token)

    return _use


@pytest.fixture
def post_message(client, clock):
    """
    Post a message and move the clock past the cooldown window, so
    consecutive calls from the same identity are all accepted.
    """
    def _post(content, type=None, nickname=None, expect_status=200):
        body = {"content": content}
        if type is not None:
            body["type"] = type
        if nickname is not None:
            body["nickname"] = nickname
        response = client.post("/api/messages", json=body)
        assert response.status_code == expect_status, response.text
        clock.advance(5000)
        return response

    return _post
