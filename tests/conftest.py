"""
Pytest configuration and shared fixtures for the odd/even game server.
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import RoomRegistry
from gateway import GameGateway


class FakeWebSocket:
    """Stands in for a Starlette WebSocket: records what the server sends."""

    def __init__(self, fail_sends: bool = False):
        self.sent = []
        self.fail_sends = fail_sends
        # When set, sends hang until cancelled, like a peer that stopped reading
        self.stall_sends = False
        self.closed = False
        self.close_code = None

    async def send_text(self, text: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        if self.stall_sends:
            await asyncio.Event().wait()
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.close_code = code

    def of_type(self, msg_type: str) -> list:
        return [m for m in self.sent if m["type"] == msg_type]

    def states(self) -> list:
        return self.of_type("state")

    def notices(self) -> list:
        return [m["text"] for m in self.of_type("message")]

    def last_state(self) -> dict:
        return self.states()[-1]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def gateway(registry):
    return GameGateway(registry, send_timeout=1)


@pytest.fixture
def make_socket():
    def _make(fail_sends: bool = False) -> FakeWebSocket:
        return FakeWebSocket(fail_sends=fail_sends)

    return _make


@pytest.fixture
def server_app():
    return create_app(registry=RoomRegistry(), send_timeout=1)


@pytest.fixture
def client(server_app):
    # Context manager keeps one event loop for all websocket sessions
    with TestClient(server_app) as test_client:
        yield test_client
