"""Tests for the HTTP storage backend."""

import re

import httpx
import pytest

from talkline.auth.session import StaticSessionProvider, UserSession
from talkline.config.schema import StorageConfig
from talkline.errors import SessionExpired, UploadError, ValidationError
from talkline.media.attachment import CandidateFile
from talkline.media.storage import HttpStorageBackend, generate_unique_filename

BASE = "https://files.example.com"


def _backend(handler, user=None, **config):
    config.setdefault("bucket_url", BASE)
    return HttpStorageBackend(
        StorageConfig(**config),
        session=StaticSessionProvider(user),
        transport=httpx.MockTransport(handler),
    )


def _file(data=b"png-bytes", name="photo.png", mime="image/png"):
    return CandidateFile(name=name, mime_type=mime, data=data)


class Recorder:
    """Async MockTransport handler that records requests."""

    def __init__(self, status=200, text=""):
        self.status = status
        self.text = text
        self.requests = []
        self.bodies = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(await request.aread())
        self.requests.append(request)
        return httpx.Response(self.status, text=self.text)


class TestUpload:
    @pytest.mark.asyncio
    async def test_put_to_folder_key(self):
        recorder = Recorder()
        backend = _backend(recorder)

        result = await backend.upload(_file(), "chat-files/42")

        request = recorder.requests[0]
        assert request.method == "PUT"
        assert re.fullmatch(r"chat-files/42/\d+-[0-9a-f]{13}\.png", result.key)
        assert str(request.url) == f"{BASE}/{result.key}"
        assert result.url == f"{BASE}/{result.key}"
        assert request.headers["content-type"] == "image/png"
        assert recorder.bodies[0] == b"png-bytes"
        assert result.original_name == "photo.png"
        assert result.folder == "chat-files/42"
        assert result.size == 9

    @pytest.mark.asyncio
    async def test_progress_per_chunk(self):
        recorder = Recorder()
        backend = _backend(recorder)
        seen = []
        data = b"x" * (HttpStorageBackend.CHUNK_SIZE * 2)

        await backend.upload(_file(data=data), "f", seen.append)

        assert seen == [50, 100]
        assert recorder.bodies[0] == data

    @pytest.mark.asyncio
    async def test_empty_file_reports_completion(self):
        seen = []
        await _backend(Recorder()).upload(_file(data=b""), "f", seen.append)
        assert seen == [100]

    @pytest.mark.asyncio
    async def test_auth_headers_from_session(self):
        recorder = Recorder()
        user = UserSession(id="u1", token="tok", session_id="sess")
        await _backend(recorder, user=user).upload(_file(), "f")
        headers = recorder.requests[0].headers
        assert headers["x-auth-token"] == "tok"
        assert headers["x-session-id"] == "sess"

    @pytest.mark.asyncio
    async def test_original_name_is_quoted(self):
        recorder = Recorder()
        await _backend(recorder).upload(_file(name="my photo.png"), "f")
        assert recorder.requests[0].headers["x-amz-meta-original-name"] == "my%20photo.png"

    @pytest.mark.asyncio
    async def test_401_is_session_expired(self):
        with pytest.raises(SessionExpired):
            await _backend(Recorder(status=401, text="expired")).upload(_file(), "f")

    @pytest.mark.asyncio
    async def test_server_error_is_upload_error(self):
        with pytest.raises(UploadError) as exc:
            await _backend(Recorder(status=403, text="Forbidden")).upload(_file(), "f")
        assert "403" in exc.value.detail

    @pytest.mark.asyncio
    async def test_network_error_is_upload_error(self):
        async def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UploadError):
            await _backend(handler).upload(_file(), "f")

    @pytest.mark.asyncio
    async def test_invalid_file_never_reaches_network(self):
        recorder = Recorder()
        with pytest.raises(ValidationError):
            await _backend(recorder).upload(_file(mime="application/zip"), "f")
        assert recorder.requests == []


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_by_url(self):
        recorder = Recorder(status=204)
        assert await _backend(recorder).delete(f"{BASE}/chat-files/1/a.png")
        assert recorder.requests[0].method == "DELETE"
        assert str(recorder.requests[0].url) == f"{BASE}/chat-files/1/a.png"

    @pytest.mark.asyncio
    async def test_delete_failure_returns_false(self):
        assert not await _backend(Recorder(status=404)).delete(f"{BASE}/a.png")


class TestResizeUrl:
    def test_cdn_transform(self):
        backend = _backend(Recorder(), cdn_domain="cdn.example.com")
        url = backend.resize_url(f"{BASE}/chat-files/1/a.png?token=t", width=150, height=150)
        assert url == "https://cdn.example.com/w_150,h_150/chat-files/1/a.png?token=t"

    def test_quality_only_when_not_default(self):
        backend = _backend(Recorder(), cdn_domain="cdn.example.com")
        url = backend.resize_url(f"{BASE}/a.png", width=100, quality=60)
        assert url == "https://cdn.example.com/w_100,q_60/a.png"

    def test_without_cdn_unchanged(self):
        backend = _backend(Recorder())
        assert backend.resize_url(f"{BASE}/a.png", width=100) == f"{BASE}/a.png"

    def test_extract_key_from_foreign_url(self):
        backend = _backend(Recorder())
        assert backend.extract_key("https://other.host/x/y.png") == "x/y.png"


def test_unique_filename_keeps_extension():
    name = generate_unique_filename("report.final.pdf")
    assert name.endswith(".pdf")
    assert generate_unique_filename("README").endswith(".bin")
    assert name != generate_unique_filename("report.final.pdf")
