"""Shared fixtures: settings and an in-memory chat server connection."""

import asyncio

import pytest

from psdevbot.config import Settings
from psdevbot.errors import TransportError
from psdevbot.transports.base import Connection


class FakeConnection(Connection):
    """Scripted connection: frames are fed by the test, sends are recorded."""

    def __init__(self) -> None:
        self.inbound: asyncio.Queue[str | None] = asyncio.Queue()
        self.sent: list[str] = []
        self.sent_at: list[float] = []
        self.closed = False
        self.fail_sends = False

    def feed(self, frame: str) -> None:
        self.inbound.put_nowait(frame)

    def disconnect(self) -> None:
        self.inbound.put_nowait(None)

    async def receive(self) -> str:
        frame = await self.inbound.get()
        if frame is None:
            self.closed = True
            raise TransportError("Connection closed")
        return frame

    async def send(self, frame: str) -> None:
        if self.closed or self.fail_sends:
            raise TransportError("Connection closed")
        self.sent.append(frame)
        self.sent_at.append(asyncio.get_running_loop().time())

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def settings():
    return Settings(
        server="wss://sim3.psim.us/showdown/websocket",
        user="psdevbot",
        password="hunter2",
        secret="",
        bind="127.0.0.1",
        port=0,
        room="development",
        project_configuration={
            "smogon/pokemon-showdown": {
                "rooms": ["development", "staff"],
                "secret": "ps-secret",
                "simple_rooms": ["lobby"],
            },
            "smogon/sprites": {"rooms": ["art"]},
        },
        relay={"send_interval": 0.01, "auth_timeout": 1.0, "dedup_window": 600.0},
    )


@pytest.fixture
def make_connection():
    """Factory for extra connections, e.g. one per reconnect attempt."""
    return FakeConnection
