"""Google Gemini provider via the Gemini API (API key).

Covers the three calls the relay needs:
  1. models/{model}:generateContent for chat turns
  2. the resumable upload protocol on upload/v1beta/files
  3. GET v1beta/files/{id} to poll processing state

Every call is a single attempt. HTTP failures are mapped onto the
LLMError hierarchy so callers never need to inspect status codes.
"""

import logging
import re
from typing import Optional

import httpx

from .provider import (
    Candidate,
    ChatResponse,
    FileInfo,
    FileState,
    GenerativeProvider,
    LLMAuthError,
    LLMBadRequestError,
    LLMBlockedError,
    LLMEmptyResponseError,
    LLMError,
    LLMHTTPError,
    LLMRateLimitError,
    LLMServerError,
    SafetySetting,
)

logger = logging.getLogger("gemrelay.llm.google")

# ═══════════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════════

_GEMINI_HOST = "https://generativelanguage.googleapis.com"
_GEMINI_API = f"{_GEMINI_HOST}/v1beta"
_GEMINI_UPLOAD_API = f"{_GEMINI_HOST}/upload/v1beta"

_GENERATE_TIMEOUT = 120
_UPLOAD_TIMEOUT = 120
_STATUS_TIMEOUT = 30

_DEFAULT_MIME_TYPE = "application/octet-stream"


# ═══════════════════════════════════════════════════════════════════════════════
# Unicode surrogate sanitization
# ═══════════════════════════════════════════════════════════════════════════════

# Unpaired surrogates can appear from malformed client data and make the
# JSON encoder emit bodies the API rejects.
_SURROGATE_RE = re.compile(
    r'[\ud800-\udbff](?![\udc00-\udfff])'  # high surrogate not followed by low
    r'|(?<![\ud800-\udbff])[\udc00-\udfff]',  # low surrogate not preceded by high
    re.UNICODE,
)


def _sanitize_surrogates(text: str) -> str:
    """Remove unpaired Unicode surrogate characters."""
    if not text:
        return text
    return _SURROGATE_RE.sub('', text)


def _sanitize_contents(contents: list[dict]) -> list[dict]:
    cleaned = []
    for content in contents:
        parts = []
        for part in content.get("parts", []):
            if isinstance(part.get("text"), str):
                part = {**part, "text": _sanitize_surrogates(part["text"])}
            parts.append(part)
        cleaned.append({**content, "parts": parts})
    return cleaned


# ═══════════════════════════════════════════════════════════════════════════════
# Error mapping
# ═══════════════════════════════════════════════════════════════════════════════

def _raise_for_status(resp: httpx.Response, what: str) -> None:
    """Raise a typed LLMError for any non-success status.

    Messages are built from the status code and a truncated body only.
    httpx's own HTTPStatusError message embeds the request URL and must
    never reach a user-facing notice.
    """
    status = resp.status_code
    if status < 400:
        return

    error_text = resp.text[:300]
    if status == 429:
        raise LLMRateLimitError(f"{what}: rate limited (429). {error_text}")
    if status in (401, 403):
        raise LLMAuthError(f"{what}: authentication failed ({status}). {error_text}")
    if status == 400:
        raise LLMBadRequestError(f"{what}: bad request (400). {error_text}")
    if status >= 500:
        raise LLMServerError(f"{what}: server error ({status}). {error_text}")
    raise LLMHTTPError(f"{what}: HTTP {status}. {error_text}")


def _parse_file(data: dict) -> FileInfo:
    try:
        name = data["name"]
    except KeyError:
        raise LLMEmptyResponseError(f"File resource without a name: {data!r}") from None
    return FileInfo(
        name=name,
        state=FileState.parse(data.get("state")),
        uri=data.get("uri", ""),
        mime_type=data.get("mimeType", ""),
        display_name=data.get("displayName", ""),
    )


class GoogleProvider(GenerativeProvider):
    """Google Gemini via the public Gemini API with an API key."""

    def __init__(self, api_key: str):
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key

    @property
    def name(self) -> str:
        return "google"

    @property
    def _headers(self) -> dict:
        # The key never goes in a query string.
        return {"x-goog-api-key": self.api_key}

    async def generate(
        self,
        model: str,
        contents: list[dict],
        safety_settings: Optional[list[SafetySetting]] = None,
    ) -> ChatResponse:
        body: dict = {"contents": _sanitize_contents(contents)}
        if safety_settings:
            body["safetySettings"] = [
                {"category": category, "threshold": threshold}
                for category, threshold in safety_settings
            ]

        url = f"{_GEMINI_API}/models/{model}:generateContent"

        async with httpx.AsyncClient(timeout=_GENERATE_TIMEOUT) as client:
            resp = await client.post(url, json=body, headers=self._headers)
            _raise_for_status(resp, "generateContent")
            data = resp.json()

        raw_candidates = data.get("candidates") or []
        if not raw_candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise LLMBlockedError(f"Prompt blocked by provider: {block_reason}")

        candidates = []
        for raw in raw_candidates:
            content = raw.get("content") or {}
            candidates.append(Candidate(
                parts=list(content.get("parts") or []),
                finish_reason=raw.get("finishReason"),
                role=content.get("role", "model"),
            ))

        usage = data.get("usageMetadata", {})
        logger.debug(
            f"generateContent {model}: {len(candidates)} candidate(s), "
            f"finish={[c.finish_reason for c in candidates]}"
        )

        return ChatResponse(
            candidates=candidates,
            model=model,
            input_tokens=usage.get("promptTokenCount", 0),
            output_tokens=usage.get("candidatesTokenCount", 0),
        )

    async def upload_file(
        self,
        data: bytes,
        display_name: str,
        mime_type: Optional[str] = None,
    ) -> FileInfo:
        """Upload bytes with the two-step resumable protocol (start, then upload+finalize)."""
        mime_type = mime_type or _DEFAULT_MIME_TYPE
        start_headers = {
            "X-Goog-Upload-Protocol": "resumable",
            "X-Goog-Upload-Command": "start",
            "X-Goog-Upload-Header-Content-Length": str(len(data)),
            "X-Goog-Upload-Header-Content-Type": mime_type,
            **self._headers,
        }

        async with httpx.AsyncClient(timeout=_UPLOAD_TIMEOUT) as client:
            resp = await client.post(
                f"{_GEMINI_UPLOAD_API}/files",
                json={"file": {"display_name": display_name}},
                headers=start_headers,
            )
            _raise_for_status(resp, "upload start")

            upload_url = resp.headers.get("x-goog-upload-url")
            if not upload_url:
                raise LLMError("upload start: response carried no upload URL")

            resp = await client.post(
                upload_url,
                content=data,
                headers={
                    "X-Goog-Upload-Offset": "0",
                    "X-Goog-Upload-Command": "upload, finalize",
                },
            )
            _raise_for_status(resp, "upload finalize")
            payload = resp.json()

        info = _parse_file(payload.get("file") or {})
        logger.info(f"Uploaded {display_name!r} ({len(data)} bytes) as {info.name} [{info.state.value}]")
        return info

    async def get_file(self, name: str) -> FileInfo:
        async with httpx.AsyncClient(timeout=_STATUS_TIMEOUT) as client:
            resp = await client.get(f"{_GEMINI_API}/{name}", headers=self._headers)
            _raise_for_status(resp, "get file")
            return _parse_file(resp.json())
