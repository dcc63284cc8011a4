"""Tests for preview object handles."""

import pytest

from talkline.media.handles import HANDLE_SCHEME, HandleTable, ObjectHandle


class TestObjectHandle:
    def test_release_is_idempotent(self):
        handle = ObjectHandle("blob:x", b"data", "image/png")
        assert handle.release()
        assert not handle.release()
        assert handle.released

    def test_data_unavailable_after_release(self):
        handle = ObjectHandle("blob:x", b"data", "image/png")
        handle.release()
        with pytest.raises(ValueError):
            handle.data

    def test_context_manager_releases(self):
        with ObjectHandle("blob:x", b"data", "image/png") as handle:
            assert handle.data == b"data"
        assert handle.released


class TestHandleTable:
    def test_allocate_and_resolve(self):
        table = HandleTable()
        handle = table.allocate(b"abc", "image/png")
        assert handle.url.startswith(HANDLE_SCHEME)
        assert table.resolve(handle.url) == b"abc"
        assert table.active_count == 1

    def test_release_forgets_handle(self):
        table = HandleTable()
        handle = table.allocate(b"abc", "image/png")
        assert table.release(handle)
        assert table.resolve(handle.url) is None
        assert table.active_count == 0

    def test_double_release_is_noop(self):
        table = HandleTable()
        handle = table.allocate(b"abc", "image/png")
        table.release(handle)
        assert not table.release(handle)

    def test_foreign_handle_refused(self):
        table = HandleTable()
        foreign = HandleTable().allocate(b"abc", "image/png")
        assert not table.release(foreign)
        assert not foreign.released

    def test_release_all(self):
        table = HandleTable()
        handles = [table.allocate(b"a", "image/png"), table.allocate(b"b", "image/png")]
        assert table.release_all() == 2
        assert all(h.released for h in handles)
        assert table.active_count == 0
