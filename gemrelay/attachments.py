"""Attachment records and upload eligibility."""

from dataclasses import dataclass
from typing import Optional

_SUPPORTED_PREFIXES = ("image/", "video/", "audio/")
_SUPPORTED_FRAGMENTS = ("pdf", "text/", "application/")


@dataclass(frozen=True)
class Attachment:
    url: str
    content_type: Optional[str]
    filename: str


def is_supported(content_type: Optional[str]) -> bool:
    """Whether a declared media type may be uploaded to the provider.

    Media types (image, video, audio) match on prefix; documents match on
    substring, so ``application/pdf`` and ``text/plain; charset=utf-8`` both
    pass. Anything else, including a missing type, is skipped.
    """
    if not content_type:
        return False
    return content_type.startswith(_SUPPORTED_PREFIXES) or any(
        fragment in content_type for fragment in _SUPPORTED_FRAGMENTS
    )
