"""Shared fixtures for the chatbridge test suite."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chatbridge.channels.filters import MessageFilter
from chatbridge.channels.router import ChannelMapper
from chatbridge.connections.base import EventQueue


class FakeConnection:
    """In-memory connection: scripted inbound events, recorded sends.

    ``events`` may contain plain events, exception instances (raised from
    ``receive_event()``) and is followed by permanent closure once drained.
    """

    def __init__(self, events: list[Any] | None = None, fail_sends_to: set[Any] | None = None) -> None:
        self.inbox = EventQueue()
        self.sent: list[tuple[Any, str]] = []
        self.fail_sends_to = fail_sends_to or set()
        self.fail_send_indices: set[int] = set()
        self.connected = False
        self.closed = False
        self._scripted = list(events or [])
        self._send_calls = 0

    async def connect(self) -> None:
        self.connected = True

    async def receive_event(self) -> Any:
        if self._scripted:
            item = self._scripted.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        if not self.inbox.closed:
            self.inbox.close("script exhausted")
        return await self.inbox.receive()

    async def _record(self, target: Any, text: str) -> None:
        index = self._send_calls
        self._send_calls += 1
        if target in self.fail_sends_to or index in self.fail_send_indices:
            raise ConnectionError(f"send to {target} failed")
        self.sent.append((target, text))
        await asyncio.sleep(0)

    async def send_message(self, channel_id: int, text: str) -> None:
        await self._record(channel_id, text)

    async def send_text(self, channel: str, text: str) -> None:
        await self._record(channel, text)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def mapper():
    return ChannelMapper(
        discord2irc={100: "#general", 101: "#random"},
        irc2discord={"#general": 200, "#offtopic": 201},
    )


@pytest.fixture
def message_filter():
    return MessageFilter("!.")


@pytest.fixture
def fake_discord():
    return FakeConnection()


@pytest.fixture
def fake_irc():
    return FakeConnection()


@pytest.fixture
def irc_gateway():
    """Real IrcGateway whose pydle transport only records raw lines."""
    from unittest.mock import AsyncMock

    from chatbridge.config import IrcConfig
    from chatbridge.connections.irc_gateway import IrcGateway

    gateway = IrcGateway(IrcConfig(server="irc.example.org", nickname="bridge", channels=["#general"]))
    gateway._client.rawmsg = AsyncMock()
    return gateway


@pytest.fixture
def discord_gateway():
    """Real DiscordGateway that never opens a socket."""
    from unittest.mock import AsyncMock, MagicMock

    from chatbridge.connections.discord_gateway import DiscordGateway

    gateway = DiscordGateway("test-token")
    gateway._client.start = AsyncMock()
    gateway._client.get_channel = MagicMock(return_value=None)
    gateway._client.fetch_channel = AsyncMock()
    return gateway
