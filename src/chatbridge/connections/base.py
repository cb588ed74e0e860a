"""Connection ports used by the relay workers.

Each network is reached through an object offering a waiting "receive the
next event" call and a "send text to a channel" call.  The relay workers
only depend on these protocols; :mod:`chatbridge.connections.discord_gateway`
and :mod:`chatbridge.connections.irc_gateway` implement them on top of
discord.py and pydle, and tests substitute in-memory fakes.

``receive_event()`` raises :class:`~chatbridge.errors.ConnectionClosed` once
the connection is gone for good and :class:`~chatbridge.errors.ReceiveError`
for a failure the worker should log and move past.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable

from chatbridge.errors import ConnectionClosed, ReceiveError


@runtime_checkable
class DiscordConnection(Protocol):
    async def connect(self) -> None: ...

    async def receive_event(self) -> Any: ...

    async def send_message(self, channel_id: int, text: str) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class IrcConnection(Protocol):
    async def connect(self) -> None: ...

    async def receive_event(self) -> Any: ...

    async def send_text(self, channel: str, text: str) -> None: ...

    async def close(self) -> None: ...


class _Closed:
    """Queue sentinel marking permanent closure."""

    def __init__(self, reason: str) -> None:
        self.reason = reason


class _Failure:
    """Queue item carrying a recoverable receive failure."""

    def __init__(self, error: BaseException | str) -> None:
        self.error = error


class EventQueue:
    """Inbox turning library callbacks into a waiting ``receive()`` call.

    Library event handlers call :meth:`put`, :meth:`put_failure` or
    :meth:`close`; the relay worker awaits :meth:`receive`.  Once closed,
    every further ``receive()`` raises :class:`ConnectionClosed`.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed: _Closed | None = None
        self._closed_event = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed is not None

    async def wait_closed(self) -> None:
        """Wait until :meth:`close` has been called."""
        await self._closed_event.wait()

    def put(self, event: Any) -> None:
        if self._closed is None:
            self._queue.put_nowait(event)

    def put_failure(self, error: BaseException | str) -> None:
        if self._closed is None:
            self._queue.put_nowait(_Failure(error))

    def close(self, reason: str) -> None:
        if self._closed is None:
            self._closed = _Closed(reason)
            self._queue.put_nowait(self._closed)
            self._closed_event.set()

    async def receive(self) -> Any:
        if self._closed is not None and self._queue.empty():
            raise ConnectionClosed(self._closed.reason)
        item = await self._queue.get()
        if isinstance(item, _Closed):
            raise ConnectionClosed(item.reason)
        if isinstance(item, _Failure):
            raise ReceiveError(str(item.error))
        return item
