"""Ephemeral local object handles for attachment previews."""

import uuid
from typing import Callable

from loguru import logger

HANDLE_SCHEME = "blob:talkline/"


class ObjectHandle:
    """A locally-addressable reference to in-memory file bytes.

    Release is idempotent: the first call frees the bytes and notifies the
    owning table, later calls return False and do nothing.
    """

    def __init__(
        self,
        url: str,
        data: bytes,
        mime_type: str,
        on_release: Callable[["ObjectHandle"], None] | None = None,
    ):
        self.url = url
        self.mime_type = mime_type
        self._data: bytes | None = data
        self._on_release = on_release

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise ValueError(f"Handle {self.url} has been released")
        return self._data

    def release(self) -> bool:
        if self._data is None:
            return False
        self._data = None
        if self._on_release:
            self._on_release(self)
        return True

    def __enter__(self) -> "ObjectHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"ObjectHandle({self.url!r}, {state})"


class HandleTable:
    """Allocates handles and releases only the ones it allocated."""

    def __init__(self):
        self._handles: dict[str, ObjectHandle] = {}

    @property
    def active_count(self) -> int:
        return len(self._handles)

    def allocate(self, data: bytes, mime_type: str) -> ObjectHandle:
        url = f"{HANDLE_SCHEME}{uuid.uuid4()}"
        handle = ObjectHandle(url, data, mime_type, on_release=self._forget)
        self._handles[url] = handle
        logger.debug(f"Allocated preview handle {url} ({len(data)} bytes)")
        return handle

    def resolve(self, url: str) -> bytes | None:
        """Bytes behind a live handle URL, or None."""
        handle = self._handles.get(url)
        return handle.data if handle else None

    def owns(self, handle: ObjectHandle) -> bool:
        return self._handles.get(handle.url) is handle

    def release(self, handle: ObjectHandle) -> bool:
        """Release a handle this table allocated. Double release is a no-op."""
        if handle.released:
            return False
        if not self.owns(handle):
            logger.warning("Refusing to release foreign handle {}", handle.url)
            return False
        return handle.release()

    def release_all(self) -> int:
        handles = list(self._handles.values())
        for handle in handles:
            handle.release()
        return len(handles)

    def _forget(self, handle: ObjectHandle) -> None:
        self._handles.pop(handle.url, None)
        logger.debug(f"Released preview handle {handle.url}")
