"""Pending attachment lifecycle: validate, preview, upload, release."""

import mimetypes
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from loguru import logger

from talkline.errors import TalklineError, UploadError, ValidationError
from talkline.media.handles import HandleTable, ObjectHandle
from talkline.media.storage import ProgressCallback, StorageBackend, UploadResult
from talkline.media.validator import MAX_FILE_SIZE, AttachmentValidator

CHAT_FILES_FOLDER = "chat-files"

# Clipboard items that may become an attachment on paste
PASTE_PREFIXES = ("image/", "video/", "audio/")
PASTE_EXACT = ("application/pdf",)


class AttachmentState(str, Enum):
    selected = "selected"
    validated = "validated"
    preview_ready = "preview_ready"
    uploading = "uploading"
    complete = "complete"
    failed = "failed"
    released = "released"


@dataclass
class CandidateFile:
    """Raw file as selected, dropped or pasted by the user."""

    name: str
    mime_type: str
    data: bytes
    size: int | None = None  # Declared size; defaults to len(data)

    def __post_init__(self):
        if self.size is None:
            self.size = len(self.data)

    @classmethod
    def from_path(cls, path: str | Path, max_size: int = MAX_FILE_SIZE) -> "CandidateFile":
        """Size comes from the filesystem; files over max_size are not read."""
        p = Path(path)
        mime = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        size = p.stat().st_size
        data = p.read_bytes() if size <= max_size else b""
        return cls(name=p.name, mime_type=mime, data=data, size=size)


@dataclass
class ClipboardItem:
    """One entry of a paste event."""

    kind: str  # "file" | "string"
    mime_type: str
    file: CandidateFile | None = None


def _generate_id() -> str:
    return f"file-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass
class PendingAttachment:
    file: CandidateFile
    id: str = field(default_factory=_generate_id)
    state: AttachmentState = AttachmentState.selected
    validated: bool = False
    handle: ObjectHandle | None = None
    progress: int = 0
    error: TalklineError | None = None
    remote: UploadResult | None = None

    @property
    def preview_url(self) -> str | None:
        if self.handle is None or self.handle.released:
            return None
        return self.handle.url

    @property
    def is_sendable(self) -> bool:
        return self.validated and self.state != AttachmentState.released


StateCallback = Callable[[PendingAttachment, AttachmentState], None]


class AttachmentController:
    """Owns at most one pending attachment and its preview handle.

    Selecting a new file releases the previous one. Results of uploads that
    finish after their attachment was released are discarded.
    """

    def __init__(
        self,
        storage: StorageBackend,
        validator: AttachmentValidator | None = None,
        on_progress: ProgressCallback | None = None,
        on_state: StateCallback | None = None,
    ):
        self.storage = storage
        self.validator = validator or storage.validator
        self.handles = HandleTable()
        self._on_progress = on_progress
        self._on_state = on_state
        self._current: PendingAttachment | None = None

    @property
    def current(self) -> PendingAttachment | None:
        return self._current

    @property
    def progress(self) -> int:
        return self._current.progress if self._current else 0

    @property
    def error(self) -> TalklineError | None:
        return self._current.error if self._current else None

    @property
    def uploading(self) -> bool:
        return self._current is not None and self._current.state == AttachmentState.uploading

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, file: CandidateFile) -> PendingAttachment:
        """Adopt a new candidate, replacing (and releasing) any previous one."""
        self.remove()

        pending = PendingAttachment(file=file)
        self._current = pending
        self._notify_state(pending)

        result = self.validator.validate(file)
        if not result.ok:
            pending.error = ValidationError(
                result.reason or "", result.message, f"{file.name}: {result.message}"
            )
            self._release_handle(pending)
            self._transition(pending, AttachmentState.failed)
            logger.debug(f"Rejected {file.name}: {result.reason}")
            return pending

        pending.validated = True
        self._transition(pending, AttachmentState.validated)

        pending.handle = self.handles.allocate(file.data, file.mime_type)
        self._transition(pending, AttachmentState.preview_ready)
        return pending

    def select_dropped(self, files: list[CandidateFile]) -> PendingAttachment | None:
        """Drag and drop: only the first file is taken."""
        if not files:
            return None
        return self.select(files[0])

    def select_pasted(self, items: list[ClipboardItem]) -> PendingAttachment | None:
        """Paste: first file item with a media or PDF MIME type."""
        for item in items:
            if item.kind != "file" or item.file is None:
                continue
            if item.mime_type.startswith(PASTE_PREFIXES) or item.mime_type in PASTE_EXACT:
                return self.select(item.file)
        return None

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self, room_id: str, on_progress: ProgressCallback | None = None
    ) -> UploadResult | None:
        """Upload the current attachment into the room's folder.

        Returns None when the attachment was released before the upload
        finished. Raises the storage error (state becomes failed, preview
        handle kept for a retry).
        """
        pending = self._current
        if pending is None:
            raise UploadError("no attachment", "No attachment selected")
        if not pending.validated:
            raise pending.error or UploadError("not validated", f"{pending.file.name} was not validated")
        if pending.state == AttachmentState.complete:
            return pending.remote
        if pending.state == AttachmentState.uploading:
            raise UploadError("upload in progress", f"{pending.file.name} is already uploading")

        pending.progress = 0
        pending.error = None
        self._transition(pending, AttachmentState.uploading)
        self._emit_progress(pending, 0, on_progress)

        def report(percent: int) -> None:
            if self._is_discarded(pending) or pending.state != AttachmentState.uploading:
                return
            percent = max(0, min(100, int(percent)))
            if percent > pending.progress:
                pending.progress = percent
                self._emit_progress(pending, percent, on_progress)

        folder = f"{CHAT_FILES_FOLDER}/{room_id}"
        try:
            remote = await self.storage.upload(pending.file, folder, report)
        except Exception as e:
            if self._is_discarded(pending):
                logger.debug(f"Ignoring upload failure for released attachment {pending.id}: {e}")
                return None
            error = e if isinstance(e, TalklineError) else UploadError("upload failed", str(e))
            pending.error = error
            self._transition(pending, AttachmentState.failed)
            logger.error(f"Upload of {pending.file.name} failed: {error}")
            if error is e:
                raise
            raise error from e

        if self._is_discarded(pending):
            logger.warning(
                "Discarding upload result for released attachment {} ({})",
                pending.id,
                remote.url,
            )
            return None

        report(100)
        pending.remote = remote
        self._transition(pending, AttachmentState.complete)
        logger.debug(f"Upload complete: {remote.url}")
        return remote

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def remove(self) -> bool:
        """User removal. Releases the preview handle; a second call is a no-op."""
        pending = self._current
        if pending is None:
            return False
        self._current = None
        return self._release(pending)

    def detach(self) -> PendingAttachment | None:
        """Post-send release; clears progress and error state."""
        pending = self._current
        if pending is None:
            return None
        self.remove()
        pending.progress = 0
        pending.error = None
        return pending

    def close(self) -> None:
        """Owner teardown: release everything still held."""
        self.remove()
        self.handles.release_all()

    def __enter__(self) -> "AttachmentController":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_discarded(self, pending: PendingAttachment) -> bool:
        return pending.state == AttachmentState.released or pending is not self._current

    def _release(self, pending: PendingAttachment) -> bool:
        if pending.state == AttachmentState.released:
            return False
        self._release_handle(pending)
        self._transition(pending, AttachmentState.released)
        return True

    def _release_handle(self, pending: PendingAttachment) -> None:
        if pending.handle is not None:
            self.handles.release(pending.handle)

    def _transition(self, pending: PendingAttachment, state: AttachmentState) -> None:
        logger.debug(f"Attachment {pending.id}: {pending.state.value} -> {state.value}")
        pending.state = state
        self._notify_state(pending)

    def _notify_state(self, pending: PendingAttachment) -> None:
        if self._on_state:
            self._on_state(pending, pending.state)

    def _emit_progress(
        self, pending: PendingAttachment, percent: int, extra: ProgressCallback | None
    ) -> None:
        for callback in (self._on_progress, extra):
            if callback:
                callback(percent)
