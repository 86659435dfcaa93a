"""Generative AI provider layer."""

from .chat import ChatSession
from .provider import (
    ChatResponse,
    FileInfo,
    FilePart,
    FileState,
    GenerativeProvider,
    LLMError,
    TextPart,
)

__all__ = [
    "ChatSession",
    "ChatResponse",
    "FileInfo",
    "FilePart",
    "FileState",
    "GenerativeProvider",
    "LLMError",
    "TextPart",
]
