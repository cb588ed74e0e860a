"""Directional relay workers.

Public API:
    :class:`DiscordToIrcWorker` -- Discord messages to IRC lines.
    :class:`IrcToDiscordWorker` -- IRC messages to Discord.
"""

from chatbridge.relay.workers import DiscordToIrcWorker, IrcToDiscordWorker, RelayWorker

__all__ = [
    "DiscordToIrcWorker",
    "IrcToDiscordWorker",
    "RelayWorker",
]
