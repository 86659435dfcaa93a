"""Tests for the relay controller."""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock

from gemrelay.attachments import Attachment
from gemrelay.channels.base import IncomingMessage
from gemrelay.llm.provider import LLMRateLimitError
from gemrelay.relay import EMPTY_REPLY_NOTICE, RelayController, TypingIndicator
from gemrelay.uploader import DownloadError


def _msg(content="", attachments=None, author="user-1", channel="chan-1"):
    return IncomingMessage(
        author_id=author,
        channel_id=channel,
        content=content,
        attachments=attachments or [],
    )


def _png(name="cat.png"):
    return Attachment(url=f"https://cdn.example/{name}", content_type="image/png", filename=name)


class TestRelayGuards:

    @pytest.mark.asyncio
    async def test_self_authored_message_ignored(self, relay, provider, channel):
        await relay.handle(_msg("hi", author=channel.bot_user_id))
        assert provider.generate_calls == []
        assert channel.sent == []
        assert channel.typing == []

    @pytest.mark.asyncio
    async def test_empty_message_ignored(self, relay, provider, channel):
        await relay.handle(_msg(""))
        assert provider.generate_calls == []
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_only_unsupported_attachments_ignored(self, relay, provider, channel):
        font = Attachment(url="https://cdn.example/a.ttf", content_type="font/ttf", filename="a.ttf")
        await relay.handle(_msg("", [font]))
        assert provider.generate_calls == []
        assert channel.sent == []


class TestRelayTurn:

    @pytest.mark.asyncio
    async def test_text_only(self, relay, provider, channel):
        await relay.handle(_msg("hi"))

        assert len(provider.generate_calls) == 1
        assert provider.last_parts == [{"text": "hi"}]
        assert channel.sent == [("chan-1", "pong")]

    @pytest.mark.asyncio
    async def test_attachments_precede_text(self, relay, provider, uploader):
        uploader.download = AsyncMock(return_value=b"img")
        await relay.handle(_msg("describe these", [_png("a.png"), _png("b.png")]))

        assert provider.last_parts == [
            {"fileData": {"fileUri": "https://files.example/files/a.png", "mimeType": "image/png"}},
            {"fileData": {"fileUri": "https://files.example/files/b.png", "mimeType": "image/png"}},
            {"text": "describe these"},
        ]

    @pytest.mark.asyncio
    async def test_attachment_without_text(self, relay, provider, uploader):
        uploader.download = AsyncMock(return_value=b"img")
        await relay.handle(_msg("", [_png()]))
        assert provider.last_parts == [
            {"fileData": {"fileUri": "https://files.example/files/cat.png", "mimeType": "image/png"}},
        ]

    @pytest.mark.asyncio
    async def test_failing_attachment_still_sends_text(self, relay, provider, uploader):
        uploader.download = AsyncMock(side_effect=DownloadError(_png(), "simulated network error"))
        await relay.handle(_msg("hello", [_png()]))

        assert len(provider.generate_calls) == 1
        assert provider.last_parts == [{"text": "hello"}]

    @pytest.mark.asyncio
    async def test_failing_attachment_alone_sends_nothing(self, relay, provider, uploader, channel):
        uploader.download = AsyncMock(side_effect=DownloadError(_png(), "simulated network error"))
        await relay.handle(_msg("", [_png()]))
        assert provider.generate_calls == []
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_typing_signalled(self, relay, channel):
        await relay.handle(_msg("hi"))
        assert channel.typing == ["chan-1"]

    @pytest.mark.asyncio
    async def test_history_accumulates_across_messages(self, relay, sessions):
        await relay.handle(_msg("one"))
        await relay.handle(_msg("two"))
        assert sessions.current().turn_count == 2


class TestRelayReply:

    @pytest.mark.asyncio
    async def test_long_reply_chunked_in_order(self, relay, provider, channel):
        provider.reply = "a" * 2000 + "b" * 2000 + "c" * 500
        await relay.handle(_msg("hi"))

        assert [len(t) for t in channel.texts] == [2000, 2000, 500]
        assert "".join(channel.texts) == provider.reply
        assert channel.texts[2] == "c" * 500

    @pytest.mark.asyncio
    async def test_empty_reply_fallback(self, relay, provider, channel):
        provider.reply = ""
        await relay.handle(_msg("hi"))
        assert channel.texts == [EMPTY_REPLY_NOTICE]
        assert EMPTY_REPLY_NOTICE == "I couldn't generate a response."

    @pytest.mark.asyncio
    async def test_provider_error_sends_single_notice(self, relay, provider, channel):
        provider.generate_error = LLMRateLimitError("quota exhausted")
        await relay.handle(_msg("hi"))
        assert channel.texts == ["Sorry, an error occurred: quota exhausted"]

    @pytest.mark.asyncio
    async def test_provider_http_error_sends_notice(self, relay, provider, channel):
        provider.generate_error = httpx.ReadTimeout("timed out")
        await relay.handle(_msg("hi"))
        assert len(channel.texts) == 1
        assert "timed out" in channel.texts[0]

    @pytest.mark.asyncio
    async def test_send_failure_is_swallowed(self, relay, channel, caplog):
        channel.send_error = RuntimeError("discord down")
        with caplog.at_level("ERROR", logger="gemrelay.relay"):
            await relay.handle(_msg("hi"))
        assert "discord down" in caplog.text

    @pytest.mark.asyncio
    async def test_custom_chunk_size(self, channel, sessions, uploader, provider):
        relay = RelayController(channel, sessions, uploader, chunk_size=3)
        provider.reply = "abcdefg"
        await relay.handle(_msg("hi"))
        assert channel.texts == ["abc", "def", "g"]


class TestTypingIndicator:

    @pytest.mark.asyncio
    async def test_failures_ignored(self, channel):
        channel.trigger_typing = AsyncMock(side_effect=RuntimeError("forbidden"))
        async with TypingIndicator(channel, "chan-1", interval=0.01):
            await asyncio.sleep(0.02)
        channel.trigger_typing.assert_awaited()

    @pytest.mark.asyncio
    async def test_repeats_until_exit(self, channel):
        async with TypingIndicator(channel, "chan-1", interval=0.01):
            await asyncio.sleep(0.05)
        count = len(channel.typing)
        assert count >= 2
        await asyncio.sleep(0.03)
        assert len(channel.typing) == count
