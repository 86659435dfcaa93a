"""Slash command dispatch."""

import logging
from typing import Awaitable, Callable

from .session import SessionStore

logger = logging.getLogger("gemrelay.commands")

Responder = Callable[[str], Awaitable[None]]

CLEAR_CONFIRMATION = "Chat history has been cleared!"


class CommandDispatcher:
    """Maps named zero-argument commands to handlers."""

    def __init__(self, sessions: SessionStore):
        self.sessions = sessions
        self._handlers: dict[str, tuple[str, Callable[[Responder], Awaitable[None]]]] = {
            "clear": ("Clear the chat history with Gemini AI", self._cmd_clear),
        }

    @property
    def commands(self) -> dict[str, str]:
        """Command name → description, for platform registration."""
        return {name: description for name, (description, _) in self._handlers.items()}

    async def dispatch(self, name: str, respond: Responder) -> None:
        entry = self._handlers.get(name)
        if entry is None:
            logger.warning(f"Unknown command: {name}")
            return
        _, handler = entry
        await handler(respond)

    async def _cmd_clear(self, respond: Responder) -> None:
        """Handle /clear — drop the history and start fresh."""
        await self.sessions.reset()
        try:
            await respond(CLEAR_CONFIRMATION)
        except Exception as e:
            logger.error(f"Error responding to clear command: {e}")
