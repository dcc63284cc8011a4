"""Storage collaborator: uploads attachment bytes to object storage."""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, AsyncIterator, Callable
from urllib.parse import quote

import httpx
from loguru import logger

from talkline.config.schema import StorageConfig
from talkline.errors import SessionExpired, UploadError, ValidationError
from talkline.media.validator import AttachmentValidator, ValidationResult

if TYPE_CHECKING:
    from talkline.auth.session import SessionProvider
    from talkline.media.attachment import CandidateFile

ProgressCallback = Callable[[int], None]
# Receives an integer percentage 0-100

DEFAULT_QUALITY = 80


@dataclass
class UploadResult:
    """Persisted reference returned by a successful upload."""

    url: str
    key: str
    size: int
    mime_type: str
    original_name: str
    folder: str
    uploaded_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


def generate_unique_filename(original_name: str) -> str:
    """{epoch_ms}-{random}.{ext}, keeping the original extension."""
    extension = original_name.rsplit(".", 1)[-1] if "." in original_name else "bin"
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:13]}.{extension}"


class StorageBackend(ABC):
    """Abstract storage collaborator."""

    def __init__(self, validator: AttachmentValidator | None = None):
        self.validator = validator or AttachmentValidator()

    def validate(self, file: "CandidateFile") -> ValidationResult:
        return self.validator.validate(file)

    @abstractmethod
    async def upload(
        self,
        file: "CandidateFile",
        folder: str,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        """Upload file bytes into folder. Raises UploadError on failure."""

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Delete a stored object. Returns False if it could not be deleted."""

    def resize_url(
        self,
        url: str,
        width: int | None = None,
        height: int | None = None,
        quality: int = DEFAULT_QUALITY,
    ) -> str:
        """URL of a resized variant. Backends without a resizer return url."""
        return url


class HttpStorageBackend(StorageBackend):
    """Object storage reached over plain HTTP PUT/DELETE."""

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        config: StorageConfig,
        session: "SessionProvider | None" = None,
        transport: httpx.AsyncBaseTransport | None = None,
        validator: AttachmentValidator | None = None,
    ):
        super().__init__(validator)
        self.config = config
        self._session = session
        self._transport = transport

    async def upload(
        self,
        file: "CandidateFile",
        folder: str,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        result = self.validate(file)
        if not result.ok:
            raise ValidationError(result.reason or "", result.message, f"{file.name}: {result.message}")

        key = f"{folder}/{generate_unique_filename(file.name)}"
        url = f"{self.config.base_url}/{key}"
        headers = {
            "Content-Type": file.mime_type,
            "Content-Length": str(len(file.data)),
            "x-amz-meta-original-name": quote(file.name),
            **self._auth_headers(),
        }

        logger.info(f"Uploading {file.name} ({len(file.data)} bytes) to {key}")
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.upload_timeout
            ) as client:
                response = await client.put(
                    url, content=self._stream(file.data, on_progress), headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = f"Storage {status}: {e.response.text[:200]}"
            logger.error(detail)
            if status == 401:
                raise SessionExpired("session expired", detail) from e
            raise UploadError("upload failed", detail) from e
        except httpx.HTTPError as e:
            logger.error(f"Storage upload error: {e}")
            raise UploadError("upload failed", str(e) or type(e).__name__) from e

        if not file.data and on_progress:
            on_progress(100)

        return UploadResult(
            url=url,
            key=key,
            size=file.size,
            mime_type=file.mime_type,
            original_name=file.name,
            folder=folder,
        )

    async def delete(self, url: str) -> bool:
        key = self.extract_key(url)
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.upload_timeout
            ) as client:
                response = await client.delete(
                    f"{self.config.base_url}/{key}", headers=self._auth_headers()
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Storage delete error for {key}: {e}")
            return False
        logger.debug(f"Deleted stored object {key}")
        return True

    def resize_url(
        self,
        url: str,
        width: int | None = None,
        height: int | None = None,
        quality: int = DEFAULT_QUALITY,
    ) -> str:
        if not self.config.cdn_domain:
            return url

        base, _, query = url.partition("?")
        transform_parts = []
        if width:
            transform_parts.append(f"w_{width}")
        if height:
            transform_parts.append(f"h_{height}")
        if quality != DEFAULT_QUALITY:
            transform_parts.append(f"q_{quality}")
        transform = f"/{','.join(transform_parts)}" if transform_parts else ""

        resized = f"https://{self.config.cdn_domain}{transform}/{self.extract_key(base)}"
        return f"{resized}?{query}" if query else resized

    def extract_key(self, url: str) -> str:
        """Storage key of a stored object URL."""
        prefix = f"{self.config.base_url}/"
        if url.startswith(prefix):
            return url[len(prefix):]
        return httpx.URL(url).path.lstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        user = self._session.get_current_user() if self._session else None
        if user is None or not user.is_live:
            return {}
        return {"x-auth-token": user.token, "x-session-id": user.session_id}

    async def _stream(
        self, data: bytes, on_progress: ProgressCallback | None
    ) -> AsyncIterator[bytes]:
        total = len(data)
        sent = 0
        for start in range(0, total, self.CHUNK_SIZE):
            chunk = data[start:start + self.CHUNK_SIZE]
            yield chunk
            sent += len(chunk)
            if on_progress:
                on_progress(round(sent * 100 / total))
