"""Platform-agnostic channel interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..attachments import Attachment


@dataclass
class IncomingMessage:
    author_id: str
    channel_id: str
    content: str = ""
    attachments: list[Attachment] = field(default_factory=list)


class MessageChannel(ABC):
    """What the relay needs from a messaging platform."""

    @property
    @abstractmethod
    def bot_user_id(self) -> Optional[str]:
        """The bot's own author id, or None before login."""
        ...

    @abstractmethod
    async def send(self, channel_id: str, text: str) -> None:
        """Deliver one message to a channel."""
        ...

    @abstractmethod
    async def trigger_typing(self, channel_id: str) -> None:
        """Show the typing indicator in a channel."""
        ...
