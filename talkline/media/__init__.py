"""Attachment validation, storage paths, previews and uploads."""

from talkline.media.validator import AttachmentValidator, ValidationResult
from talkline.media.paths import PathResolver, coerce_descriptor
from talkline.media.storage import HttpStorageBackend, StorageBackend, UploadResult
from talkline.media.attachment import AttachmentController, CandidateFile, PendingAttachment

__all__ = [
    "AttachmentController",
    "AttachmentValidator",
    "CandidateFile",
    "HttpStorageBackend",
    "PathResolver",
    "PendingAttachment",
    "StorageBackend",
    "UploadResult",
    "ValidationResult",
    "coerce_descriptor",
]
