"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fakes and fixtures shared by the store, engine, coordinator and API tests.
"""

import json
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from boxcount.app import create_app
from boxcount.config import Settings
from boxcount.coordinator import SessionCoordinator
from boxcount.patterns import generate_round_payload
from boxcount.store import RoomStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeConnection:
    """Stand-in for a starlette WebSocket that records every frame sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail = fail
        self.sent: List[str] = []
        self.close_code: Optional[int] = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket exploded")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.close_code = code
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    @property
    def closed(self) -> bool:
        return self.close_code is not None

    def messages(self) -> List[dict]:
        return [json.loads(frame) for frame in self.sent]

    def types(self) -> List[str]:
        return [m["type"] for m in self.messages()]

    def last(self) -> dict:
        return json.loads(self.sent[-1])


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> RoomStore:
    return RoomStore(clock=clock)


@pytest.fixture
def settings() -> Settings:
    """Timers and the background sweep are off; tests drive transitions directly."""
    return Settings(auto_advance=False, cleanup_interval_sec=0, total_rounds=3)


@pytest.fixture
def coordinator(store: RoomStore, settings: Settings) -> SessionCoordinator:
    return SessionCoordinator(store, settings, generate_round_payload)


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_connection():
    """Factory for fake sockets: ``make_connection(fail=True)`` raises on every send."""
    return FakeConnection
