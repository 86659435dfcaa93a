"""Provider-agnostic generative AI interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .chat import ChatSession


# ════════════════════════════════════════════════════════
# LLM Exception Hierarchy — classify errors by type,
# not by string matching.  The relay catches these.
# ════════════════════════════════════════════════════════

class LLMError(Exception):
    """Base class for all provider errors."""
    pass

class LLMRateLimitError(LLMError):
    """429 — rate limited."""
    pass

class LLMAuthError(LLMError):
    """401/403 — authentication or authorization failure."""
    pass

class LLMBadRequestError(LLMError):
    """400 — bad request (malformed contents, unknown file URI, etc.)."""
    pass

class LLMServerError(LLMError):
    """5xx — provider outage or overload."""
    pass

class LLMHTTPError(LLMError):
    """Any other non-success status."""
    pass

class LLMBlockedError(LLMError):
    """The provider refused the prompt (promptFeedback.blockReason)."""
    pass

class LLMEmptyResponseError(LLMError):
    """Provider returned a body without the expected fields."""
    pass


# ════════════════════════════════════════════════════════
# Conversation parts
# ════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TextPart:
    text: str

    def to_dict(self) -> dict:
        return {"text": self.text}


@dataclass(frozen=True)
class FilePart:
    """Reference to a processed provider file."""
    uri: str
    mime_type: str = ""

    def to_dict(self) -> dict:
        data = {"fileUri": self.uri}
        if self.mime_type:
            data["mimeType"] = self.mime_type
        return {"fileData": data}


Part = Union[TextPart, FilePart]


class FileState(str, Enum):
    UNSPECIFIED = "STATE_UNSPECIFIED"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FileState":
        try:
            return cls(value)
        except ValueError:
            return cls.UNSPECIFIED


@dataclass
class FileInfo:
    """A file resource as reported by the provider."""
    name: str                       # e.g. "files/abc-123"
    state: FileState = FileState.UNSPECIFIED
    uri: str = ""
    mime_type: str = ""
    display_name: str = ""


@dataclass
class Candidate:
    parts: list[dict] = field(default_factory=list)
    finish_reason: Optional[str] = None
    role: str = "model"

    @property
    def text(self) -> str:
        return "".join(p["text"] for p in self.parts if isinstance(p.get("text"), str))

    def to_content(self) -> dict:
        return {"role": self.role, "parts": self.parts}


@dataclass
class ChatResponse:
    candidates: list[Candidate]
    model: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def text(self) -> str:
        """All text segments across every candidate, in provider order."""
        return "".join(c.text for c in self.candidates)


# Safety policy entries are (category, threshold) pairs.
SafetySetting = tuple[str, str]


class GenerativeProvider(ABC):
    """Abstract base class for generative AI providers."""

    @abstractmethod
    async def generate(
        self,
        model: str,
        contents: list[dict],
        safety_settings: Optional[list[SafetySetting]] = None,
    ) -> ChatResponse:
        """Run one completion over the full list of contents."""
        ...

    @abstractmethod
    async def upload_file(
        self,
        data: bytes,
        display_name: str,
        mime_type: Optional[str] = None,
    ) -> FileInfo:
        """Upload raw bytes to the provider's file store."""
        ...

    @abstractmethod
    async def get_file(self, name: str) -> FileInfo:
        """Fetch the current state of an uploaded file."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        ...

    def start_chat(
        self,
        model: str,
        safety_settings: Optional[list[SafetySetting]] = None,
    ) -> "ChatSession":
        """Open an empty conversation against ``model``."""
        from .chat import ChatSession
        return ChatSession(self, model, safety_settings)
