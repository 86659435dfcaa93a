"""Relay controller — one incoming message to one provider turn."""

import asyncio
import logging
import time
from typing import Optional

from .channels.base import IncomingMessage, MessageChannel
from .communication.outbound import DISCORD_MAX_LENGTH, split_message
from .llm.provider import FilePart, Part, TextPart
from .session import SessionStore
from .uploader import MediaUploader

logger = logging.getLogger("gemrelay.relay")

EMPTY_REPLY_NOTICE = "I couldn't generate a response."
ERROR_NOTICE = "Sorry, an error occurred: {error}"


class TypingIndicator:
    """Keeps sending 'typing' every few seconds until the block exits.

    Usage:
        async with TypingIndicator(channel, channel_id):
            await long_running_work()

    Auto-stops after max_duration seconds even if the wrapped coroutine
    hangs. Typing is best-effort: any failure just ends the loop.
    """

    def __init__(
        self,
        channel: MessageChannel,
        channel_id: str,
        interval: float = 8.0,
        max_duration: float = 300.0,
    ):
        self._channel = channel
        self._channel_id = channel_id
        self._interval = interval
        self._max_duration = max_duration
        self._task: Optional[asyncio.Task] = None

    async def _loop(self):
        start = time.monotonic()
        try:
            while time.monotonic() - start <= self._max_duration:
                await self._channel.trigger_typing(self._channel_id)
                await asyncio.sleep(self._interval)
            logger.warning(f"Typing indicator timeout ({self._max_duration}s) for channel {self._channel_id}")
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Typing indicator failed for channel {self._channel_id}: {e}")

    async def __aenter__(self):
        self._task = asyncio.create_task(self._loop())
        await asyncio.sleep(0)  # first signal goes out before the wrapped work starts
        return self

    async def __aexit__(self, *exc):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


class RelayController:
    """Forwards chat messages to the shared session and posts the reply."""

    def __init__(
        self,
        channel: MessageChannel,
        sessions: SessionStore,
        uploader: MediaUploader,
        chunk_size: int = DISCORD_MAX_LENGTH,
    ):
        self.channel = channel
        self.sessions = sessions
        self.uploader = uploader
        self.chunk_size = chunk_size

    async def build_parts(self, message: IncomingMessage) -> list[Part]:
        """File references in attachment order, then the text if any."""
        references = await self.uploader.upload_all(message.attachments)
        parts: list[Part] = [FilePart(uri=ref.uri, mime_type=ref.mime_type) for ref in references]
        if message.content:
            parts.append(TextPart(message.content))
        return parts

    async def handle(self, message: IncomingMessage) -> None:
        bot_id = self.channel.bot_user_id
        if bot_id is not None and message.author_id == bot_id:
            return

        parts = await self.build_parts(message)
        if not parts:
            return

        logger.info(
            f"Relaying message from {message.author_id} in {message.channel_id} "
            f"({len(parts)} part(s))"
        )

        async with TypingIndicator(self.channel, message.channel_id):
            try:
                response = await self.sessions.send(parts)
            except Exception as e:
                logger.error(f"Gemini error: {type(e).__name__}: {e}", exc_info=True)
                await self._deliver(message.channel_id, ERROR_NOTICE.format(error=e))
                return

        reply = response.text
        if not reply:
            await self._deliver(message.channel_id, EMPTY_REPLY_NOTICE)
            return

        for chunk in split_message(reply, self.chunk_size):
            await self._deliver(message.channel_id, chunk)

    async def _deliver(self, channel_id: str, text: str) -> None:
        try:
            await self.channel.send(channel_id, text)
        except Exception as e:
            logger.error(f"Failed to send message to {channel_id}: {e}")
