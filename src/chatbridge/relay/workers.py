"""Directional relay workers.

Each worker owns one direction of the bridge.  It waits for the next event
on its source connection, drops what must not be relayed, looks up the
target channel and sends the rendered text to the other network, one event
at a time and strictly in delivery order.

Lifecycle::

    worker = DiscordToIrcWorker(discord, irc, mapper, message_filter)
    await worker.run()   # returns once the Discord connection is closed

Failure policy:

- A failed send is logged and the next line / event is processed normally.
- A :class:`~chatbridge.errors.ReceiveError` is logged and the worker keeps
  listening after ``receive_error_delay`` seconds.
- :class:`~chatbridge.errors.ConnectionClosed` ends :meth:`RelayWorker.run`.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Any

from chatbridge.channels.filters import MessageFilter
from chatbridge.channels.formatter import FormattingStripper, MessageFormatter, split_lines
from chatbridge.channels.router import ChannelMapper, Direction
from chatbridge.connections.base import DiscordConnection, IrcConnection
from chatbridge.errors import ConnectionClosed, ReceiveError
from chatbridge.models import DiscordMessage, IrcMessage, OutboundLine

log = logging.getLogger(__name__)


class RelayWorker(abc.ABC):
    """Receive -> filter -> map -> render -> send loop for one direction.

    Args:
        mapper: Shared, read-only channel tables.
        message_filter: Drop rules for this direction.
        receive_error_delay: Seconds to wait after a receive error before
            listening again.  ``0`` retries immediately.
    """

    direction: Direction

    def __init__(
        self,
        mapper: ChannelMapper,
        message_filter: MessageFilter,
        *,
        receive_error_delay: float = 1.0,
    ) -> None:
        self.mapper = mapper
        self.message_filter = message_filter
        self.receive_error_delay = max(receive_error_delay, 0.0)
        self.relayed: int = 0
        self.send_failures: int = 0

    @property
    def name(self) -> str:
        return self.direction.value

    # ------------------------------------------------------------------
    # Direction-specific hooks
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def receive(self) -> Any:
        """Wait for the next event on the source connection."""

    @abc.abstractmethod
    async def send(self, line: OutboundLine) -> None:
        """Deliver one line to the target connection."""

    @abc.abstractmethod
    def build_lines(self, event: Any) -> list[OutboundLine]:
        """Return the sends for *event*; empty when it is not relayed."""

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Relay events until the source connection closes."""
        log.info("%s relay listening", self.name)
        while True:
            try:
                event = await self.receive()
            except ConnectionClosed as e:
                log.info("%s relay: source connection closed (%s)", self.name, e)
                return
            except ReceiveError as e:
                log.warning("%s relay: receive error: %s", self.name, e)
                if self.receive_error_delay:
                    await asyncio.sleep(self.receive_error_delay)
                continue

            await self.handle(event)

    async def handle(self, event: Any) -> int:
        """Relay a single event.  Returns the number of successful sends."""
        sent = 0
        for line in self.build_lines(event):
            try:
                await self.send(line)
            except Exception as e:
                self.send_failures += 1
                log.warning("%s relay: send to %s failed: %s", self.name, line.target, e)
                continue
            sent += 1
        self.relayed += sent
        return sent


class DiscordToIrcWorker(RelayWorker):
    """Relays new Discord messages to IRC, one IRC line per text line.

    The author is shown in a colour derived from their name, mentions are
    rewritten to ``@name`` and an attachment summary is appended to every
    line of the message.
    """

    direction = Direction.DISCORD_TO_IRC

    def __init__(
        self,
        source: DiscordConnection,
        target: IrcConnection,
        mapper: ChannelMapper,
        message_filter: MessageFilter,
        *,
        receive_error_delay: float = 1.0,
    ) -> None:
        super().__init__(mapper, message_filter, receive_error_delay=receive_error_delay)
        self.source = source
        self.target = target

    async def receive(self) -> Any:
        return await self.source.receive_event()

    async def send(self, line: OutboundLine) -> None:
        await self.target.send_text(str(line.target), line.text)

    def build_lines(self, event: Any) -> list[OutboundLine]:
        if not isinstance(event, DiscordMessage):
            return []
        if self.message_filter.should_drop(event):
            return []
        channel = self.mapper.discord_to_irc(event.channel_id)
        if channel is None:
            return []

        content = MessageFormatter.resolve_mentions(event.content, event.mentions)
        suffix = MessageFormatter.format_attachments(event.attachments)
        return [
            OutboundLine(
                target=channel,
                text=MessageFormatter.format_irc_line(event.author_name, line, suffix),
            )
            for line in split_lines(content)
        ]


class IrcToDiscordWorker(RelayWorker):
    """Relays IRC channel messages to Discord, one Discord message each."""

    direction = Direction.IRC_TO_DISCORD

    def __init__(
        self,
        source: IrcConnection,
        target: DiscordConnection,
        mapper: ChannelMapper,
        message_filter: MessageFilter,
        stripper: FormattingStripper,
        *,
        receive_error_delay: float = 1.0,
    ) -> None:
        super().__init__(mapper, message_filter, receive_error_delay=receive_error_delay)
        self.source = source
        self.target = target
        self.stripper = stripper

    async def receive(self) -> Any:
        return await self.source.receive_event()

    async def send(self, line: OutboundLine) -> None:
        await self.target.send_message(int(line.target), line.text)

    def build_lines(self, event: Any) -> list[OutboundLine]:
        if not isinstance(event, IrcMessage) or event.command != "PRIVMSG":
            return []
        if self.message_filter.should_drop(event):
            return []
        channel_id = self.mapper.irc_to_discord(event.target)
        if channel_id is None or event.source_nick is None:
            return []

        text = MessageFormatter.format_discord_line(
            event.source_nick, self.stripper.strip(event.content)
        )
        return [OutboundLine(target=channel_id, text=text)]
