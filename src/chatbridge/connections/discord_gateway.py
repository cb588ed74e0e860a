"""Discord side of the bridge, built on discord.py.

The gateway runs a :class:`discord.Client` in a background task and feeds
every newly created message into an :class:`EventQueue`, from which the
Discord -> IRC worker receives.  Sending looks the channel up in the client
cache (falling back to the API) and posts plain text with all mentions
disabled, so relayed IRC text can never ping anyone.

Lifecycle::

    gateway = DiscordGateway(token)
    await gateway.connect()          # logs in, waits for READY
    event = await gateway.receive_event()
    await gateway.send_message(1234, "**<alice>** hi")
    await gateway.close()
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any

import discord

from chatbridge.channels.formatter import MessageFormatter
from chatbridge.connections.base import EventQueue
from chatbridge.errors import StartupError
from chatbridge.models import DiscordMessage

log = logging.getLogger(__name__)


class _RelayClient(discord.Client):
    """discord.Client forwarding gateway events to an :class:`EventQueue`."""

    def __init__(self, inbox: EventQueue, ready: asyncio.Event) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        super().__init__(intents=intents)
        self._inbox = inbox
        self._ready_event = ready

    async def on_ready(self) -> None:
        log.info("Logged in to Discord as %s (ID: %s)", self.user, self.user.id if self.user else "?")
        self._ready_event.set()

    async def on_message(self, message: discord.Message) -> None:
        self._inbox.put(DiscordMessage.from_discord(message))

    async def on_error(self, event_method: str, /, *args: Any, **kwargs: Any) -> None:
        error = sys.exc_info()[1]
        log.warning("Discord %s handler failed: %s", event_method, error)
        self._inbox.put_failure(error or f"error in {event_method}")


class DiscordGateway:
    """:class:`~chatbridge.connections.base.DiscordConnection` over discord.py.

    Args:
        token: Bot token from the Discord Developer Portal.
    """

    def __init__(self, token: str) -> None:
        self._token = token
        self._inbox = EventQueue()
        self._ready = asyncio.Event()
        self._client = _RelayClient(self._inbox, self._ready)
        self._runner: asyncio.Task[None] | None = None

    async def connect(self) -> None:
        """Log in and wait until the gateway reports READY.

        Raises:
            StartupError: If login fails or the client stops before READY.
        """
        self._runner = asyncio.create_task(self._client.start(self._token), name="discord-client")
        self._runner.add_done_callback(self._on_runner_done)
        ready = asyncio.create_task(self._ready.wait())
        done, _ = await asyncio.wait({self._runner, ready}, return_when=asyncio.FIRST_COMPLETED)
        if ready not in done:
            ready.cancel()
            error = None if self._runner.cancelled() else self._runner.exception()
            raise StartupError(f"Discord connection failed: {error or 'client stopped'}") from error
        log.info("Discord connection established")

    def _on_runner_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            reason = "client task cancelled"
        elif task.exception() is not None:
            reason = f"client stopped: {task.exception()!r}"
        else:
            reason = "client closed"
        self._inbox.close(reason)

    async def receive_event(self) -> DiscordMessage:
        return await self._inbox.receive()

    async def send_message(self, channel_id: int, text: str) -> None:
        channel = self._client.get_channel(channel_id)
        if channel is None:
            channel = await self._client.fetch_channel(channel_id)
        await channel.send(
            MessageFormatter.truncate_for_discord(text),
            allowed_mentions=discord.AllowedMentions.none(),
        )

    async def close(self) -> None:
        if not self._client.is_closed():
            await self._client.close()
        if self._runner is not None:
            try:
                await self._runner
            except Exception:
                log.debug("Discord client task ended with an error", exc_info=True)
        self._inbox.close("connection closed by bridge")
