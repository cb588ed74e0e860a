"""Channel pairing between Discord and IRC.

The bridge relays a fixed set of channels configured in two independent
tables, one per direction.  A Discord channel may relay to IRC without the
IRC channel relaying back, or the two directions may point at different
channels altogether.

Usage::

    mapper = ChannelMapper(discord2irc={100: "#general"}, irc2discord={})
    mapper.lookup(Direction.DISCORD_TO_IRC, 100)   # -> "#general"
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from types import MappingProxyType


class Direction(enum.Enum):
    """Relay direction."""

    DISCORD_TO_IRC = "discord->irc"
    IRC_TO_DISCORD = "irc->discord"


class ChannelMapper:
    """Read-only lookup of the target channel for a source channel.

    Both tables are copied on construction and exposed as read-only views,
    so one instance can be shared by both relay workers without locking.

    Args:
        discord2irc: Discord channel id to IRC channel name.
        irc2discord: IRC channel name to Discord channel id.
    """

    def __init__(
        self,
        discord2irc: Mapping[int, str],
        irc2discord: Mapping[str, int],
    ) -> None:
        self._tables: dict[Direction, Mapping[int | str, int | str]] = {
            Direction.DISCORD_TO_IRC: MappingProxyType(dict(discord2irc)),
            Direction.IRC_TO_DISCORD: MappingProxyType(dict(irc2discord)),
        }

    def lookup(self, direction: Direction, source: int | str) -> int | str | None:
        """Return the mapped target for *source*, or ``None`` when unmapped.

        Matching is by exact key.  IRC channel names are not case-folded.
        """
        return self._tables[direction].get(source)

    def discord_to_irc(self, channel_id: int) -> str | None:
        target = self.lookup(Direction.DISCORD_TO_IRC, channel_id)
        return None if target is None else str(target)

    def irc_to_discord(self, channel: str) -> int | None:
        target = self.lookup(Direction.IRC_TO_DISCORD, channel)
        return None if target is None else int(target)

    def table(self, direction: Direction) -> Mapping[int | str, int | str]:
        """Read-only view of one direction's table."""
        return self._tables[direction]

    def __len__(self) -> int:
        return sum(len(t) for t in self._tables.values())

    def __repr__(self) -> str:
        return (
            f"ChannelMapper(discord2irc={dict(self._tables[Direction.DISCORD_TO_IRC])!r}, "
            f"irc2discord={dict(self._tables[Direction.IRC_TO_DISCORD])!r})"
        )
