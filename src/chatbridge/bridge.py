"""Bridge: wires the channel tables, filters and both relay workers together."""

from __future__ import annotations

import asyncio
import logging

from chatbridge.channels.filters import MessageFilter
from chatbridge.channels.formatter import FormattingStripper
from chatbridge.channels.router import ChannelMapper
from chatbridge.config import BridgeConfig
from chatbridge.connections.base import DiscordConnection, IrcConnection
from chatbridge.errors import StartupError
from chatbridge.relay.workers import DiscordToIrcWorker, IrcToDiscordWorker, RelayWorker

log = logging.getLogger(__name__)


class Bridge:
    """Relays messages between paired Discord and IRC channels.

    Owns the read-only shared state (channel tables, filter prefixes) and
    hands it to each worker through its constructor.  :meth:`run` connects
    both networks, runs the two workers concurrently and returns once both
    have stopped.  A crash in one worker is logged and does not stop the
    other.

    Args:
        config: Validated configuration document.
        discord: Connection to Discord.
        irc: Connection to the IRC server.
        receive_error_delay: Passed to both workers.
    """

    def __init__(
        self,
        config: BridgeConfig,
        discord: DiscordConnection,
        irc: IrcConnection,
        *,
        receive_error_delay: float = 1.0,
    ) -> None:
        self.config = config
        self.discord = discord
        self.irc = irc

        self.mapper = ChannelMapper(
            discord2irc=config.mapping.discord2irc,
            irc2discord=config.mapping.irc2discord,
        )
        self.message_filter = MessageFilter(config.filterchars)

        self.discord_to_irc = DiscordToIrcWorker(
            discord, irc, self.mapper, self.message_filter,
            receive_error_delay=receive_error_delay,
        )
        self.irc_to_discord = IrcToDiscordWorker(
            irc, discord, self.mapper, self.message_filter, FormattingStripper(),
            receive_error_delay=receive_error_delay,
        )

    @property
    def workers(self) -> tuple[RelayWorker, RelayWorker]:
        return self.discord_to_irc, self.irc_to_discord

    async def connect(self) -> None:
        """Establish both network connections.

        Raises:
            StartupError: If either connection cannot be established.
        """
        for label, connection in (("IRC", self.irc), ("Discord", self.discord)):
            try:
                await connection.connect()
            except StartupError:
                raise
            except Exception as e:
                raise StartupError(f"{label} connection failed: {e}") from e

    async def run(self) -> None:
        """Connect, relay until both workers stop, then close the connections."""
        log.info("Starting bridge (%d channel mapping(s))", len(self.mapper))
        try:
            await self.connect()
        except StartupError:
            await self.close()
            raise
        log.info("Bridge started.")

        tasks = [
            asyncio.create_task(worker.run(), name=f"relay {worker.name}")
            for worker in self.workers
        ]
        try:
            for worker, task in zip(self.workers, tasks):
                await self._join(worker, task)
        finally:
            for task in tasks:
                task.cancel()
            await self.close()

    async def _join(self, worker: RelayWorker, task: asyncio.Task[None]) -> None:
        """Wait for one worker and log how it ended."""
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            log.warning("%s relay was cancelled", worker.name)
        except Exception:
            log.exception("%s relay crashed", worker.name)
        else:
            log.info("%s relay stopped (%d relayed, %d send failure(s))",
                     worker.name, worker.relayed, worker.send_failures)

    async def close(self) -> None:
        for label, connection in (("Discord", self.discord), ("IRC", self.irc)):
            try:
                await connection.close()
            except Exception:
                log.warning("Error while closing %s connection", label, exc_info=True)
