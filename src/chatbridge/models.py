"""Data types passed between the connections and the relay workers.

Inbound events are normalised into these frozen dataclasses by the
connection adapters so the relay logic never touches library objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class MentionedUser:
    """A Discord user referenced by a ``<@id>`` token in message text."""

    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Attachment:
    filename: str
    url: str


@dataclass(frozen=True, slots=True)
class DiscordMessage:
    """A newly created message on a Discord channel.

    Attributes:
        channel_id: Snowflake of the channel the message was posted in.
        author_name: Display name used as the IRC-side prefix.
        author_is_bot: ``True`` for bot and webhook accounts.
        content: Raw message text, possibly spanning several lines.
        mentions: Users mentioned in *content*, in the order Discord lists them.
        attachments: Uploaded files, in upload order.
    """

    channel_id: int
    author_name: str
    content: str
    author_is_bot: bool = False
    mentions: tuple[MentionedUser, ...] = field(default_factory=tuple)
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)

    @classmethod
    def from_discord(cls, message: Any) -> DiscordMessage:
        """Build from a :class:`discord.Message`."""
        return cls(
            channel_id=message.channel.id,
            author_name=message.author.name,
            author_is_bot=bool(message.author.bot),
            content=message.content,
            mentions=tuple(MentionedUser(id=u.id, name=u.name) for u in message.mentions),
            attachments=tuple(
                Attachment(filename=a.filename, url=a.url) for a in message.attachments
            ),
        )


@dataclass(frozen=True, slots=True)
class IrcMessage:
    """A message-like IRC command.

    Attributes:
        command: IRC verb, e.g. ``"PRIVMSG"`` or ``"NOTICE"``.
        target: Channel name, or the bridge's own nick for private messages.
        source_nick: Nick of the sender; ``None`` for server-originated lines.
        content: Message text, still carrying IRC formatting bytes.
    """

    command: str
    target: str
    source_nick: str | None
    content: str


@dataclass(frozen=True, slots=True)
class OutboundLine:
    """One send destined for a channel on the other network."""

    target: int | str
    text: str
