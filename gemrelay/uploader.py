"""Attachment download, provider upload and processing poll."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx

from .attachments import Attachment, is_supported
from .llm.provider import FileState, GenerativeProvider

logger = logging.getLogger("gemrelay.uploader")

POLL_INTERVAL = 5.0
MAX_POLL_ATTEMPTS = 120  # 10 minutes at the default interval
_DOWNLOAD_TIMEOUT = 60


class AttachmentError(Exception):
    """An attachment could not be turned into a provider reference."""

    def __init__(self, attachment: Attachment, message: str):
        super().__init__(message)
        self.attachment = attachment


class DownloadError(AttachmentError):
    """Fetching the attachment bytes failed."""


class UploadError(AttachmentError):
    """The provider rejected the upload."""


class FileStatusError(AttachmentError):
    """Querying the processing state failed."""


class FileProcessingError(AttachmentError):
    """The provider finished processing with state FAILED."""


class UploadTimeoutError(AttachmentError):
    """The file was still processing when polling gave up."""


@dataclass(frozen=True)
class UploadedReference:
    uri: str
    mime_type: str
    name: str


class MediaUploader:
    """Turns platform attachments into references usable in a turn."""

    def __init__(
        self,
        provider: GenerativeProvider,
        poll_interval: float = POLL_INTERVAL,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
    ):
        self.provider = provider
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts

    async def download(self, attachment: Attachment) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=_DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
                resp = await client.get(attachment.url)
                resp.raise_for_status()
                return resp.content
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as e:
            raise DownloadError(attachment, f"download of {attachment.filename!r} failed: {e}") from e

    async def upload(self, attachment: Attachment) -> UploadedReference:
        """Download, upload and wait until the provider reports the file ACTIVE.

        Raises an ``AttachmentError`` subclass naming the failing step.
        """
        data = await self.download(attachment)
        logger.debug(f"Downloaded {attachment.filename!r}: {len(data)} bytes")

        try:
            info = await self.provider.upload_file(
                data,
                display_name=attachment.filename,
                mime_type=attachment.content_type,
            )
        except Exception as e:
            raise UploadError(attachment, f"upload of {attachment.filename!r} failed: {e}") from e

        for attempt in range(1, self.max_poll_attempts + 1):
            try:
                info = await self.provider.get_file(info.name)
            except Exception as e:
                raise FileStatusError(
                    attachment, f"status check for {info.name} failed: {e}"
                ) from e

            if info.state == FileState.ACTIVE:
                logger.info(f"{info.name} ready after {attempt} status check(s)")
                return UploadedReference(
                    uri=info.uri,
                    mime_type=info.mime_type or attachment.content_type or "",
                    name=info.name,
                )
            if info.state == FileState.FAILED:
                raise FileProcessingError(attachment, f"provider failed to process {info.name}")

            if attempt < self.max_poll_attempts:
                await asyncio.sleep(self.poll_interval)

        raise UploadTimeoutError(
            attachment,
            f"{info.name} still {info.state.value} after {self.max_poll_attempts} status checks",
        )

    async def _try_upload(self, attachment: Attachment) -> Optional[UploadedReference]:
        try:
            return await self.upload(attachment)
        except AttachmentError as e:
            logger.warning(f"Skipping attachment ({type(e).__name__}): {e}")
            return None

    async def upload_all(self, attachments: Iterable[Attachment]) -> list[UploadedReference]:
        """Upload every supported attachment concurrently.

        Failures are logged and dropped. The result keeps the attachments'
        original order regardless of which upload finished first.
        """
        eligible = []
        for attachment in attachments:
            if is_supported(attachment.content_type):
                eligible.append(attachment)
            else:
                logger.debug(f"Ignoring {attachment.filename!r} ({attachment.content_type})")

        if not eligible:
            return []

        results = await asyncio.gather(*(self._try_upload(a) for a in eligible))
        return [ref for ref in results if ref is not None]
