"""Network connections.

Public API:
    :class:`DiscordConnection`, :class:`IrcConnection` -- ports used by the
    relay workers.
    :class:`EventQueue` -- callback-to-receive adapter shared by the gateways.

The concrete gateways live in :mod:`chatbridge.connections.discord_gateway`
and :mod:`chatbridge.connections.irc_gateway` and are imported lazily so the
relay core does not require discord.py or pydle at import time.
"""

from chatbridge.connections.base import DiscordConnection, EventQueue, IrcConnection

__all__ = [
    "DiscordConnection",
    "EventQueue",
    "IrcConnection",
]
