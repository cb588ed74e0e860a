"""IRC side of the bridge, built on pydle.

The gateway joins the configured channels once registration completes and
queues every ``PRIVMSG`` and ``NOTICE`` as an :class:`IrcMessage`.  Automatic
reconnection is disabled: a disconnect is reported to the IRC -> Discord
worker as permanent closure.
"""

from __future__ import annotations

import asyncio
import logging

import pydle

from chatbridge.config import IrcConfig
from chatbridge.connections.base import EventQueue
from chatbridge.errors import StartupError
from chatbridge.models import IrcMessage

log = logging.getLogger(__name__)


class _RelayIrcClient(pydle.Client):
    """pydle client forwarding channel traffic to an :class:`EventQueue`."""

    RECONNECT_ON_ERROR = False

    def __init__(
        self,
        inbox: EventQueue,
        ready: asyncio.Event,
        channels: list[str],
        nickname: str,
        username: str | None = None,
        realname: str | None = None,
    ) -> None:
        super().__init__(nickname, username=username, realname=realname)
        self._inbox = inbox
        self._ready_event = ready
        self._autojoin = channels

    async def on_connect(self) -> None:
        await super().on_connect()
        for channel in self._autojoin:
            await self.join(channel)
            log.info("Joined IRC channel %s", channel)
        self._ready_event.set()

    def is_own_message(self, by: str | None) -> bool:
        """Return ``True`` for lines sent by the bridge itself.

        pydle replays our own sends through ``on_message``/``on_notice``
        (locally, or as a server echo when echo-message is enabled).
        """
        return by is not None and self.is_same_nick(by, self.nickname)

    async def on_message(self, target: str, by: str, message: str) -> None:
        await super().on_message(target, by, message)
        if self.is_own_message(by):
            return
        self._inbox.put(IrcMessage(command="PRIVMSG", target=target, source_nick=by, content=message))

    async def on_notice(self, target: str, by: str, message: str) -> None:
        await super().on_notice(target, by, message)
        if self.is_own_message(by):
            return
        self._inbox.put(IrcMessage(command="NOTICE", target=target, source_nick=by, content=message))

    async def on_disconnect(self, expected: bool) -> None:
        await super().on_disconnect(expected)
        self._inbox.close("disconnected" if expected else "connection lost")


class IrcGateway:
    """:class:`~chatbridge.connections.base.IrcConnection` over pydle.

    Args:
        config: Server, identity and channel list from the config document.
    """

    def __init__(self, config: IrcConfig) -> None:
        self._config = config
        self._inbox = EventQueue()
        self._ready = asyncio.Event()
        self._client = _RelayIrcClient(
            self._inbox,
            self._ready,
            channels=list(config.channels),
            nickname=config.nickname,
            username=config.username,
            realname=config.realname,
        )

    async def connect(self) -> None:
        """Connect, register and join every configured channel.

        Raises:
            StartupError: If the server cannot be reached or drops the
                connection before registration completes.
        """
        cfg = self._config
        log.info("Connecting to IRC %s:%d (tls=%s)", cfg.server, cfg.port, cfg.use_tls)
        try:
            await self._client.connect(
                hostname=cfg.server,
                port=cfg.port,
                tls=cfg.use_tls,
                tls_verify=cfg.tls_verify,
                password=cfg.password,
            )
        except Exception as e:
            raise StartupError(f"IRC connection to {cfg.server}:{cfg.port} failed: {e}") from e

        ready = asyncio.create_task(self._ready.wait())
        lost = asyncio.create_task(self._inbox.wait_closed())
        done, pending = await asyncio.wait({ready, lost}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        if ready not in done:
            raise StartupError(f"IRC server {cfg.server} closed the connection during registration")
        log.info("IRC connection established as %s", self._client.nickname)

    async def receive_event(self) -> IrcMessage:
        return await self._inbox.receive()

    async def send_text(self, channel: str, text: str) -> None:
        await self._client.message(channel, text)

    async def close(self) -> None:
        if self._client.connected:
            await self._client.quit("Bridge shutting down")
        self._inbox.close("connection closed by bridge")
