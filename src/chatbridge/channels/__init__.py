"""Channel mapping, drop rules and message formatting.

Public API:
    :class:`ChannelMapper` -- per-direction channel lookup.
    :class:`MessageFilter` -- bot and command-prefix drop rules.
    :class:`MessageFormatter` -- mention, attachment and prefix rendering.
    :class:`FormattingStripper` -- removes mIRC formatting bytes.
"""

from chatbridge.channels.filters import MessageFilter
from chatbridge.channels.formatter import (
    FormattingStripper,
    MessageFormatter,
    color_index,
    split_lines,
)
from chatbridge.channels.router import ChannelMapper, Direction

__all__ = [
    "ChannelMapper",
    "Direction",
    "FormattingStripper",
    "MessageFilter",
    "MessageFormatter",
    "color_index",
    "split_lines",
]
