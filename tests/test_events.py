"""Tests for transport payloads."""

import re

from talkline.bus.events import ChatMessage, FileData, HistoryRequest, generate_object_id
from talkline.media.storage import UploadResult


def _upload():
    return UploadResult(
        url="https://files/chat-files/1/17-ab.pdf",
        key="chat-files/1/17-ab.pdf",
        size=42,
        mime_type="application/pdf",
        original_name="report.pdf",
        folder="chat-files/1",
        uploaded_at="2024-05-01T10:00:00+00:00",
    )


def test_object_id_shape():
    first, second = generate_object_id(), generate_object_id()
    assert re.fullmatch(r"[0-9a-f]{24}", first)
    assert first != second


def test_text_message_payload():
    assert ChatMessage(room="1", content="hi").to_payload() == {"room": "1", "type": "text", "content": "hi"}


def test_file_message_payload():
    file_data = FileData.from_upload(_upload())
    payload = ChatMessage(room="1", content="", file_data=file_data).to_payload()

    assert payload["type"] == "file"
    data = payload["fileData"]
    assert data["_id"] == file_data.id
    assert data["filename"] == "17-ab.pdf"
    assert data["originalname"] == "report.pdf"
    assert data["mimetype"] == "application/pdf"
    assert data["size"] == 42
    assert data["path"] == data["url"] == "https://files/chat-files/1/17-ab.pdf"
    assert data["s3Key"] == "chat-files/1/17-ab.pdf"
    assert data["alreadyUploaded"] is True


def test_history_request_payload():
    assert HistoryRequest("1").to_payload() == {"roomId": "1", "before": None}
