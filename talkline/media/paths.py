"""Canonical storage paths and authenticated retrieval URLs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

import httpx
from loguru import logger

from talkline.config.schema import StorageConfig, ThumbnailConfig

if TYPE_CHECKING:
    from talkline.auth.session import SessionProvider
    from talkline.media.storage import StorageBackend

CHAT_FILES_FOLDER = "chat-files"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

PREVIEW = "preview"
DOWNLOAD = "download"


@dataclass(frozen=True)
class FolderFile:
    """A file inside an explicit storage folder (e.g. profile-images)."""

    folder: str
    filename: str


@dataclass(frozen=True)
class RoomFile:
    """A chat file known by name, optionally tied to its room."""

    filename: str
    room_id: str | None = None


@dataclass(frozen=True)
class BarePath:
    """A raw string: either a canonical path or just a filename."""

    path: str


AttachmentDescriptor = Union[FolderFile, RoomFile, BarePath]


@dataclass(frozen=True)
class ThumbnailOptions:
    width: int = 150
    height: int = 150
    quality: int = 80
    preview: bool = False  # True skips the resize transform
    include_auth: bool = True


def coerce_descriptor(raw: Any) -> AttachmentDescriptor | None:
    """Turn wire-shaped input (dict or str) into a descriptor.

    Returns None when the input has no usable filename.
    """
    if isinstance(raw, (FolderFile, RoomFile, BarePath)):
        return raw
    if isinstance(raw, str):
        return BarePath(raw)
    if isinstance(raw, dict):
        filename = raw.get("filename")
        if not filename or not isinstance(filename, str):
            return None
        folder = raw.get("folder")
        if folder:
            return FolderFile(str(folder), filename)
        room_id = raw.get("roomId") or raw.get("room_id") or raw.get("room")
        return RoomFile(filename, str(room_id) if room_id else None)
    return None


def is_image_path(path: str) -> bool:
    """Whether a path (query string ignored) has a recognized image extension."""
    if not path or not isinstance(path, str):
        return False
    return path.split("?", 1)[0].lower().endswith(IMAGE_EXTENSIONS)


class PathResolver:
    """Builds canonical paths and retrieval URLs for stored attachments."""

    def __init__(
        self,
        config: StorageConfig,
        session: "SessionProvider | None" = None,
        storage: "StorageBackend | None" = None,
        thumbnails: ThumbnailConfig | None = None,
    ):
        self.config = config
        self._session = session
        self._storage = storage
        self._thumbnails = thumbnails or ThumbnailConfig()

    def resolve_path(self, descriptor: Any, room_id: str | None = None) -> str:
        """Compute the canonical storage-relative path, or "" if unresolvable."""
        resolved = coerce_descriptor(descriptor)
        path = ""

        if isinstance(resolved, FolderFile):
            if resolved.folder and resolved.filename:
                path = f"{resolved.folder}/{resolved.filename}"
            else:
                resolved = RoomFile(resolved.filename)

        if isinstance(resolved, RoomFile) and resolved.filename:
            room = room_id or resolved.room_id
            path = f"{CHAT_FILES_FOLDER}/{room}/{resolved.filename}" if room else resolved.filename

        elif isinstance(resolved, BarePath) and resolved.path:
            if "/" in resolved.path or not room_id:
                path = resolved.path
            else:
                path = f"{CHAT_FILES_FOLDER}/{room_id}/{resolved.path}"

        if not path:
            logger.warning("resolve_path: invalid descriptor {!r}", descriptor)
        return path

    def resolve_url(self, path: str, purpose: str = PREVIEW, include_auth: bool = True) -> str:
        """Prefix a canonical path with the storage origin and add query params.

        Auth params are silently omitted when no live session exists.
        """
        url = f"{self.config.base_url}/{path}"
        params: dict[str, str] = {}

        if include_auth and self._session is not None:
            user = self._session.get_current_user()
            if user is not None and user.is_live:
                params["token"] = user.token
                params["sessionId"] = user.session_id

        if purpose == DOWNLOAD:
            params["download"] = "true"
            params["attachment"] = "true"

        if params:
            url += f"?{httpx.QueryParams(params)}"
        return url

    def file_url(
        self,
        descriptor: Any,
        room_id: str | None = None,
        purpose: str = PREVIEW,
        include_auth: bool = True,
    ) -> str:
        path = self.resolve_path(descriptor, room_id)
        if not path:
            return ""
        return self.resolve_url(path, purpose, include_auth)

    def preview_url(self, descriptor: Any, room_id: str | None = None) -> str:
        return self.file_url(descriptor, room_id, PREVIEW)

    def download_url(self, descriptor: Any, room_id: str | None = None) -> str:
        return self.file_url(descriptor, room_id, DOWNLOAD)

    def thumbnail_options(self, **overrides: Any) -> ThumbnailOptions:
        """Default thumbnail options from config, with overrides applied."""
        values = {
            "width": self._thumbnails.width,
            "height": self._thumbnails.height,
            "quality": self._thumbnails.quality,
        }
        values.update(overrides)
        return ThumbnailOptions(**values)

    def thumbnail_url(
        self,
        descriptor: Any,
        room_id: str | None = None,
        options: ThumbnailOptions | None = None,
    ) -> str:
        """Authenticated URL, resized through the storage CDN for images."""
        options = options or self.thumbnail_options()
        path = self.resolve_path(descriptor, room_id)
        if not path:
            return ""

        url = self.resolve_url(path, PREVIEW, options.include_auth)
        if not is_image_path(path) or options.preview or self._storage is None:
            return url

        try:
            return self._storage.resize_url(
                url, width=options.width, height=options.height, quality=options.quality
            )
        except Exception as e:
            logger.warning(f"thumbnail_url: resize failed for {path}: {e}")
            return url
