"""Tests for the Discord -> IRC and IRC -> Discord relay workers."""

import logging

import pytest

from chatbridge.channels.formatter import COLOR, FormattingStripper, color_index
from chatbridge.channels.router import ChannelMapper
from chatbridge.errors import ReceiveError
from chatbridge.models import Attachment, DiscordMessage, IrcMessage, MentionedUser
from chatbridge.relay.workers import DiscordToIrcWorker, IrcToDiscordWorker
from conftest import FakeConnection


def _bob_prefix():
    return f"<{COLOR}{color_index('Bob'):02d}Bob{COLOR}> "


def _discord_msg(content, channel_id=100, **kwargs):
    return DiscordMessage(channel_id=channel_id, author_name="Bob", content=content, **kwargs)


def _privmsg(content, target="#general", nick="alice", command="PRIVMSG"):
    return IrcMessage(command=command, target=target, source_nick=nick, content=content)


@pytest.fixture
def d2i_factory(mapper, message_filter):
    def make(events, irc=None):
        discord = FakeConnection(events)
        irc = irc or FakeConnection()
        worker = DiscordToIrcWorker(discord, irc, mapper, message_filter, receive_error_delay=0)
        return worker, irc

    return make


@pytest.fixture
def i2d_factory(mapper, message_filter):
    def make(events, discord=None):
        irc = FakeConnection(events)
        discord = discord or FakeConnection()
        worker = IrcToDiscordWorker(
            irc, discord, mapper, message_filter, FormattingStripper(), receive_error_delay=0,
        )
        return worker, discord

    return make


# ---------------------------------------------------------------------------
# Discord -> IRC
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_multiline_message_sent_line_by_line(d2i_factory):
    worker, irc = d2i_factory([_discord_msg("hello\nworld")])
    await worker.run()
    assert irc.sent == [
        ("#general", _bob_prefix() + "hello "),
        ("#general", _bob_prefix() + "world "),
    ]


@pytest.mark.asyncio
async def test_attachment_suffix_on_every_line(d2i_factory):
    msg = _discord_msg("one\ntwo", attachments=(Attachment("a.png", "http://x"),))
    worker, irc = d2i_factory([msg])
    await worker.run()
    assert len(irc.sent) == 2
    for _, text in irc.sent:
        assert text.endswith(" [Attachments: a.png (http://x)]")


@pytest.mark.asyncio
async def test_mentions_resolved_before_sending(d2i_factory):
    msg = _discord_msg("ping <@7> and <@8>", mentions=(MentionedUser(id=7, name="eve"),))
    worker, irc = d2i_factory([msg])
    await worker.run()
    assert irc.sent == [("#general", _bob_prefix() + "ping @eve and <@8> ")]


@pytest.mark.asyncio
async def test_bot_messages_not_relayed(d2i_factory):
    worker, irc = d2i_factory([_discord_msg("beep", author_is_bot=True)])
    await worker.run()
    assert irc.sent == []


@pytest.mark.asyncio
async def test_prefixed_discord_message_not_relayed(d2i_factory):
    worker, irc = d2i_factory([_discord_msg("!help"), _discord_msg("!help", channel_id=999)])
    await worker.run()
    assert irc.sent == []


@pytest.mark.asyncio
async def test_unmapped_discord_channel_not_relayed(d2i_factory):
    worker, irc = d2i_factory([_discord_msg("hi", channel_id=999)])
    await worker.run()
    assert irc.sent == []


@pytest.mark.asyncio
async def test_routes_to_mapped_channel_only(d2i_factory):
    worker, irc = d2i_factory([_discord_msg("a", channel_id=101), _discord_msg("b", channel_id=100)])
    await worker.run()
    assert [target for target, _ in irc.sent] == ["#random", "#general"]


@pytest.mark.asyncio
async def test_non_message_events_ignored(d2i_factory):
    worker, irc = d2i_factory([object(), _privmsg("wrong network"), _discord_msg("ok")])
    await worker.run()
    assert irc.sent == [("#general", _bob_prefix() + "ok ")]


@pytest.mark.asyncio
async def test_empty_message_sends_nothing(d2i_factory):
    worker, irc = d2i_factory([_discord_msg("", attachments=(Attachment("a.png", "http://x"),))])
    await worker.run()
    assert irc.sent == []


@pytest.mark.asyncio
async def test_send_failure_does_not_abort_remaining_lines(d2i_factory, caplog):
    irc = FakeConnection()
    irc.fail_send_indices = {0}
    worker, _ = d2i_factory([_discord_msg("first\nsecond"), _discord_msg("third")], irc=irc)
    with caplog.at_level(logging.WARNING):
        await worker.run()
    assert [text.split("> ", 1)[1] for _, text in irc.sent] == ["second ", "third "]
    assert worker.send_failures == 1
    assert worker.relayed == 2
    assert "send to #general failed" in caplog.text


@pytest.mark.asyncio
async def test_receive_error_logged_and_listening_continues(d2i_factory, caplog):
    worker, irc = d2i_factory([ReceiveError("gateway hiccup"), _discord_msg("still here")])
    with caplog.at_level(logging.WARNING):
        await worker.run()
    assert irc.sent == [("#general", _bob_prefix() + "still here ")]
    assert "gateway hiccup" in caplog.text


@pytest.mark.asyncio
async def test_run_returns_on_connection_closed(d2i_factory):
    worker, irc = d2i_factory([])
    await worker.run()
    assert irc.sent == []


# ---------------------------------------------------------------------------
# IRC -> Discord
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_irc_message_stripped_and_prefixed(i2d_factory):
    worker, discord = i2d_factory([_privmsg("\x02hi\x02")])
    await worker.run()
    assert discord.sent == [(200, "**<alice>** hi")]


@pytest.mark.asyncio
async def test_irc_message_sent_once_without_splitting(i2d_factory):
    worker, discord = i2d_factory([_privmsg("a\nb")])
    await worker.run()
    assert discord.sent == [(200, "**<alice>** a\nb")]


@pytest.mark.asyncio
async def test_irc_prefixed_message_not_relayed(i2d_factory):
    worker, discord = i2d_factory([_privmsg("!seen bob"), _privmsg(".x", target="#nowhere")])
    await worker.run()
    assert discord.sent == []


@pytest.mark.asyncio
async def test_irc_unmapped_channel_and_private_message_ignored(i2d_factory):
    worker, discord = i2d_factory([_privmsg("hi", target="#nowhere"), _privmsg("hi", target="bridgebot")])
    await worker.run()
    assert discord.sent == []


@pytest.mark.asyncio
async def test_irc_non_privmsg_ignored(i2d_factory):
    worker, discord = i2d_factory([
        _privmsg("server notice", command="NOTICE"),
        _privmsg("hi", nick=None),
        _privmsg("real"),
    ])
    await worker.run()
    assert discord.sent == [(200, "**<alice>** real")]


@pytest.mark.asyncio
async def test_irc_send_failure_logged_and_loop_continues(i2d_factory, caplog):
    discord = FakeConnection(fail_sends_to={200})
    worker, _ = i2d_factory([_privmsg("lost"), _privmsg("kept", target="#offtopic")], discord=discord)
    with caplog.at_level(logging.WARNING):
        await worker.run()
    assert discord.sent == [(201, "**<alice>** kept")]
    assert "send to 200 failed" in caplog.text


@pytest.mark.asyncio
async def test_irc_receive_error_does_not_stop_worker(i2d_factory):
    worker, discord = i2d_factory([ReceiveError("read timeout"), _privmsg("after")])
    await worker.run()
    assert discord.sent == [(200, "**<alice>** after")]


# ---------------------------------------------------------------------------
# Shared state
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_author_color_matches_color_index(message_filter):
    shared = ChannelMapper(discord2irc={1: "#a"}, irc2discord={"#a": 1})
    irc_out = FakeConnection()
    worker = DiscordToIrcWorker(
        FakeConnection([DiscordMessage(1, "carol", "x")]), irc_out, shared, message_filter,
        receive_error_delay=0,
    )
    await worker.run()
    assert irc_out.sent[0][1].startswith(f"<{COLOR}{color_index('carol'):02d}carol")
