"""Pytest configuration and shared fixtures."""

import copy
from typing import Optional

import pytest

from gemrelay.channels.base import MessageChannel
from gemrelay.llm.provider import (
    Candidate,
    ChatResponse,
    FileInfo,
    FileState,
    GenerativeProvider,
)
from gemrelay.relay import RelayController
from gemrelay.session import SessionStore
from gemrelay.uploader import MediaUploader


class FakeProvider(GenerativeProvider):
    """In-memory provider recording every call."""

    def __init__(self, reply: str = "pong"):
        self.reply = reply
        self.generate_error: Optional[Exception] = None
        self.upload_error: Optional[Exception] = None
        self.status_error: Optional[Exception] = None
        self.generate_calls: list[dict] = []
        self.uploads: list[tuple[bytes, str, Optional[str]]] = []
        # file name → states returned by successive get_file calls
        self.file_states: dict[str, list[FileState]] = {}
        self.status_calls = 0

    @property
    def name(self) -> str:
        return "fake"

    async def generate(self, model, contents, safety_settings=None):
        self.generate_calls.append({
            "model": model,
            "contents": copy.deepcopy(contents),
            "safety_settings": safety_settings,
        })
        if self.generate_error:
            raise self.generate_error
        candidates = [Candidate(parts=[{"text": self.reply}])] if self.reply else []
        return ChatResponse(candidates=candidates, model=model)

    async def upload_file(self, data, display_name, mime_type=None):
        if self.upload_error:
            raise self.upload_error
        self.uploads.append((data, display_name, mime_type))
        return FileInfo(name=f"files/{display_name}", state=FileState.PROCESSING, display_name=display_name)

    async def get_file(self, name):
        self.status_calls += 1
        if self.status_error:
            raise self.status_error
        states = self.file_states.get(name)
        state = states.pop(0) if states else FileState.ACTIVE
        return FileInfo(
            name=name,
            state=state,
            uri=f"https://files.example/{name}" if state == FileState.ACTIVE else "",
            mime_type="image/png",
        )

    @property
    def last_parts(self) -> list[dict]:
        return self.generate_calls[-1]["contents"][-1]["parts"]


class FakeChannel(MessageChannel):
    """Records outbound traffic instead of talking to a platform."""

    def __init__(self, bot_id: str = "bot-1"):
        self._bot_id = bot_id
        self.sent: list[tuple[str, str]] = []
        self.typing: list[str] = []
        self.send_error: Optional[Exception] = None

    @property
    def bot_user_id(self):
        return self._bot_id

    async def send(self, channel_id, text):
        if self.send_error:
            raise self.send_error
        self.sent.append((channel_id, text))

    async def trigger_typing(self, channel_id):
        self.typing.append(channel_id)

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def sessions(provider):
    return SessionStore(provider)


@pytest.fixture
def uploader(provider):
    return MediaUploader(provider, poll_interval=0, max_poll_attempts=5)


@pytest.fixture
def relay(channel, sessions, uploader):
    return RelayController(channel, sessions, uploader)
