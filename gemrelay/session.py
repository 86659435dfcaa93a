"""Single shared conversation session."""

import asyncio
import logging
from typing import Optional, Sequence

from .llm.chat import ChatSession
from .llm.provider import ChatResponse, GenerativeProvider, Part, SafetySetting

logger = logging.getLogger("gemrelay.session")

MODEL_NAME = "gemini-1.5-pro-latest"

# Permissive thresholds so the provider filters as little as possible.
SAFETY_SETTINGS: list[SafetySetting] = [
    ("HARM_CATEGORY_HARASSMENT", "BLOCK_NONE"),
    ("HARM_CATEGORY_HATE_SPEECH", "BLOCK_NONE"),
    ("HARM_CATEGORY_SEXUALLY_EXPLICIT", "BLOCK_NONE"),
]


class SessionStore:
    """Owns the one conversation every channel shares.

    The lock guards only the read and replacement of the session handle.
    A reset takes effect at once: a turn already in flight finishes on the
    session it started with, which is then discarded, and every later turn
    sees the fresh session. Turns on the same session are serialized by
    the session itself.
    """

    def __init__(
        self,
        provider: GenerativeProvider,
        model: str = MODEL_NAME,
        safety_settings: Optional[list[SafetySetting]] = None,
    ):
        self.provider = provider
        self.model = model
        self.safety_settings = list(SAFETY_SETTINGS if safety_settings is None else safety_settings)
        self._session: Optional[ChatSession] = None
        self._lock = asyncio.Lock()

    def _create(self) -> ChatSession:
        logger.info(f"Starting new chat session on {self.model}")
        return self.provider.start_chat(self.model, self.safety_settings)

    def current(self) -> ChatSession:
        """Return the live session, creating it on first use."""
        if self._session is None:
            self._session = self._create()
        return self._session

    async def reset(self) -> ChatSession:
        """Discard the history and start a fresh session right away."""
        async with self._lock:
            old = self._session
            self._session = self._create()
        if old is not None:
            logger.info(f"Discarded session with {old.turn_count} turn(s)")
        return self._session

    async def send(self, parts: Sequence[Part]) -> ChatResponse:
        """Run one turn against the session that is current right now."""
        async with self._lock:
            session = self.current()
        return await session.send_message(parts)
