"""Drop rules applied before a message is relayed."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from chatbridge.models import DiscordMessage, IrcMessage

log = logging.getLogger(__name__)


class MessageFilter:
    """Decide whether an inbound message must not be relayed.

    A message is dropped when its text starts with one of the configured
    prefix characters (bot commands such as ``!help``), or, for Discord
    messages, when its author is a bot account.  Nothing else about the
    content is inspected.

    Args:
        prefixes: Characters marking a command.  A string is treated as a
            set of single characters, matching the ``filterchars`` setting.
    """

    def __init__(self, prefixes: Iterable[str] = ()) -> None:
        self.prefixes: frozenset[str] = frozenset(prefixes)
        if any(len(p) != 1 for p in self.prefixes):
            raise ValueError("Filter prefixes must be single characters.")

    def has_prefix(self, text: str) -> bool:
        """Return ``True`` if *text* is non-empty and starts with a prefix."""
        return bool(text) and text[0] in self.prefixes

    def should_drop(self, message: DiscordMessage | IrcMessage) -> bool:
        if isinstance(message, DiscordMessage) and message.author_is_bot:
            log.debug("Dropping bot message from %s", message.author_name)
            return True
        return self.has_prefix(message.content)
