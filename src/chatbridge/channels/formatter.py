"""Message formatting between Discord and IRC.

Discord -> IRC messages are prefixed with the author's name in a colour
derived from the name, have ``<@id>`` mention tokens rewritten to readable
``@name`` text and carry a summary of any attachments.  IRC -> Discord
messages lose their mIRC formatting bytes and get a bold nick prefix.

Usage::

    from chatbridge.channels.formatter import FormattingStripper, MessageFormatter

    line = MessageFormatter.format_irc_line("Bob", "hello", "")
    text = MessageFormatter.format_discord_line("alice", FormattingStripper().strip(raw))
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Sequence

from chatbridge.models import Attachment, MentionedUser

# mIRC control bytes
BOLD: str = "\x02"
COLOR: str = "\x03"
MONOSPACE: str = "\x11"
REVERSE: str = "\x16"
ITALIC: str = "\x1d"
STRIKETHROUGH: str = "\x1e"
UNDERLINE: str = "\x1f"
RESET: str = "\x0f"

# Single-byte toggles removed by FormattingStripper.
TOGGLES: str = BOLD + UNDERLINE + RESET + REVERSE + ITALIC + STRIKETHROUGH + MONOSPACE

# Number of colours in the mIRC base palette.
PALETTE_SIZE: int = 16

# Discord hard limit for a single message.
_MESSAGE_CHAR_LIMIT: int = 2000


def color_index(name: str) -> int:
    """Map *name* to a colour in ``[0, 16)``.

    Uses a SHA-256 digest rather than :func:`hash`, which is salted per
    process, so an author keeps the same colour across restarts.
    """
    digest = hashlib.sha256(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % PALETTE_SIZE


def split_lines(text: str) -> list[str]:
    """Split on ``\\n``, dropping a trailing ``\\r`` from each line.

    A newline at the very end does not start another line and empty text has
    no lines at all.  Unlike :meth:`str.splitlines`, form feeds and the like
    stay inside the line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class FormattingStripper:
    """Remove mIRC inline formatting from text.

    Single-byte toggles (bold, italics, underline, strikethrough, monospace,
    reverse, reset) are deleted outright.  A colour introducer is deleted
    together with its ``fg[,bg]`` numbers of one or two ASCII digits each.

    The pattern is compiled once per instance.
    """

    def __init__(self) -> None:
        self._pattern: re.Pattern[str] = re.compile(
            f"[{re.escape(TOGGLES)}]|{re.escape(COLOR)}(?:[0-9]{{1,2}}(?:,[0-9]{{1,2}})?)?"
        )

    def strip(self, text: str) -> str:
        return self._pattern.sub("", text)


class MessageFormatter:
    """Build the text sent to the other network.

    All methods are static so the formatter can be used without instantiation.
    """

    @staticmethod
    def color_marker(index: int | None = None) -> str:
        """Return the mIRC colour code for *index*, or a bare colour-off code.

        The index is always written with two digits so that a nick starting
        with a digit is not read as part of the colour number.
        """
        if index is None:
            return COLOR
        return f"{COLOR}{index:02d}"

    @staticmethod
    def resolve_mentions(text: str, mentions: Sequence[MentionedUser]) -> str:
        """Replace Discord mention tokens of *mentions* with ``@name``.

        Both ``<@id>`` and the legacy nickname form ``<@!id>`` are rewritten.
        Tokens of users not in *mentions* are left untouched.
        """
        for user in mentions:
            readable = f"@{user.name}"
            text = text.replace(f"<@{user.id}>", readable)
            text = text.replace(f"<@!{user.id}>", readable)
        return text

    @staticmethod
    def format_attachments(attachments: Sequence[Attachment]) -> str:
        """Summarise uploads as ``[Attachments: a.png (url), ...]``.

        Returns an empty string when there are no attachments.
        """
        if not attachments:
            return ""
        listed = ", ".join(f"{a.filename} ({a.url})" for a in attachments)
        return f"[Attachments: {listed}]"

    @staticmethod
    def format_irc_line(author: str, line: str, attachment_suffix: str) -> str:
        """Render one line of a Discord message for IRC.

        The suffix is appended after a single space even when it is empty.
        """
        prefix = (
            MessageFormatter.color_marker(color_index(author))
            + author
            + MessageFormatter.color_marker()
        )
        return f"<{prefix}> {line} {attachment_suffix}"

    @staticmethod
    def format_discord_line(nick: str, text: str) -> str:
        """Render an IRC message for Discord with a bold ``<nick>`` prefix."""
        return f"**<{nick}>** {text}"

    @staticmethod
    def truncate_for_discord(text: str, limit: int = _MESSAGE_CHAR_LIMIT) -> str:
        """Truncate *text* to fit within Discord's message character limit.

        Returns:
            The original text if it fits, otherwise the text trimmed with a
            ``...(truncated)`` suffix.
        """
        if len(text) <= limit:
            return text
        return text[: limit - 20] + "\n\n...(truncated)"
