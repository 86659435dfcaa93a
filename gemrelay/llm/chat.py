"""In-memory conversation session."""

import asyncio
import logging
from typing import Optional, Sequence

from .provider import ChatResponse, GenerativeProvider, Part, SafetySetting

logger = logging.getLogger("gemrelay.llm.chat")


class ChatSession:
    """Ordered turn history against a single model.

    History lives only in this object. It grows by one user entry and one
    model entry per successful ``send_message``; a failed send leaves it
    untouched. Turns on one session run one at a time.
    """

    def __init__(
        self,
        provider: GenerativeProvider,
        model: str,
        safety_settings: Optional[list[SafetySetting]] = None,
    ):
        self.provider = provider
        self.model = model
        self.safety_settings = list(safety_settings or [])
        self.history: list[dict] = []
        self._turn_lock = asyncio.Lock()

    @property
    def turn_count(self) -> int:
        return sum(1 for c in self.history if c.get("role") == "user")

    async def send_message(self, parts: Sequence[Part]) -> ChatResponse:
        if not parts:
            raise ValueError("a turn needs at least one part")

        user_content = {"role": "user", "parts": [p.to_dict() for p in parts]}
        async with self._turn_lock:
            response = await self.provider.generate(
                self.model,
                self.history + [user_content],
                self.safety_settings,
            )

            self.history.append(user_content)
            if response.candidates and response.candidates[0].parts:
                self.history.append(response.candidates[0].to_content())
        logger.debug(
            f"Turn {self.turn_count} complete on {self.model} "
            f"({response.input_tokens} in / {response.output_tokens} out)"
        )
        return response
