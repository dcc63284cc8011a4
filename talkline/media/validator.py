"""Attachment validation: size limit and accepted MIME types."""

from dataclasses import dataclass
from typing import Protocol

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB, fixed

IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")
VIDEO_TYPES = ("video/mp4", "video/webm", "video/avi", "video/mov")
AUDIO_TYPES = ("audio/mp3", "audio/wav", "audio/aac", "audio/ogg")
DOCUMENT_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

ALLOWED_TYPES = frozenset(IMAGE_TYPES + VIDEO_TYPES + AUDIO_TYPES + DOCUMENT_TYPES)

TOO_LARGE = "too_large"
UNSUPPORTED_TYPE = "unsupported_type"


class FileLike(Protocol):
    """Anything with a declared size and MIME type."""

    size: int
    mime_type: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one candidate file."""

    ok: bool
    reason: str | None = None  # TOO_LARGE | UNSUPPORTED_TYPE
    message: str = ""


def format_file_size(size: int) -> str:
    """Human-readable byte size: 0 Bytes, 512 Bytes, 1.5 KB, 10 MB."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(size / 1024 ** i, 2)
    return f"{value:g} {units[i]}"


def get_file_category(mime_type: str) -> str:
    """Map a MIME type to image/video/audio/document, or unknown."""
    if mime_type in IMAGE_TYPES:
        return "image"
    if mime_type in VIDEO_TYPES:
        return "video"
    if mime_type in AUDIO_TYPES:
        return "audio"
    if mime_type in DOCUMENT_TYPES:
        return "document"
    return "unknown"


class AttachmentValidator:
    """Pure predicate over candidate files. Size is checked before type."""

    max_size = MAX_FILE_SIZE

    def validate(self, file: FileLike) -> ValidationResult:
        if file.size > self.max_size:
            return ValidationResult(
                ok=False,
                reason=TOO_LARGE,
                message=f"File size cannot exceed {format_file_size(self.max_size)}.",
            )
        if file.mime_type not in ALLOWED_TYPES:
            return ValidationResult(
                ok=False,
                reason=UNSUPPORTED_TYPE,
                message="Unsupported file type.",
            )
        return ValidationResult(ok=True)
