"""Transport event names and outbound payloads."""

import secrets
import time
from dataclasses import dataclass, field
from typing import Any

from talkline.media.storage import UploadResult

# Outbound
CHAT_MESSAGE = "chatMessage"
FETCH_PREVIOUS_MESSAGES = "fetchPreviousMessages"

# Inbound
PREVIOUS_MESSAGES_LOADED = "previousMessagesLoaded"
ERROR = "error"


def generate_object_id() -> str:
    """24 hex chars: 8 of epoch seconds followed by 16 random."""
    return f"{int(time.time()):08x}{secrets.token_hex(8)}"


@dataclass
class FileData:
    """Reference to an already uploaded file, carried by a file message."""

    filename: str
    originalname: str
    mimetype: str
    size: int
    url: str
    key: str
    uploaded_at: str
    id: str = field(default_factory=generate_object_id)

    @classmethod
    def from_upload(cls, result: UploadResult) -> "FileData":
        return cls(
            filename=result.key.rsplit("/", 1)[-1],
            originalname=result.original_name,
            mimetype=result.mime_type or "application/octet-stream",
            size=result.size,
            url=result.url,
            key=result.key,
            uploaded_at=result.uploaded_at,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "filename": self.filename,
            "originalname": self.originalname,
            "mimetype": self.mimetype,
            "size": self.size,
            "url": self.url,
            "path": self.url,
            "key": self.key,
            "s3Key": self.key,
            "uploadedAt": self.uploaded_at,
            # The server must not re-process an object that is already stored
            "isS3File": True,
            "s3Uploaded": True,
            "skipFileValidation": True,
            "alreadyUploaded": True,
        }


@dataclass
class ChatMessage:
    """Message emitted on the chatMessage event."""

    room: str
    content: str
    file_data: FileData | None = None

    @property
    def type(self) -> str:
        return "file" if self.file_data else "text"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "room": self.room,
            "type": self.type,
            "content": self.content,
        }
        if self.file_data:
            payload["fileData"] = self.file_data.to_payload()
        return payload


@dataclass
class HistoryRequest:
    room_id: str
    before: str | None = None  # Timestamp of the oldest message already shown

    def to_payload(self) -> dict[str, Any]:
        return {"roomId": self.room_id, "before": self.before}
