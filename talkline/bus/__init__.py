"""Transport events."""

from talkline.bus.events import ChatMessage, FileData, HistoryRequest

__all__ = ["ChatMessage", "FileData", "HistoryRequest"]
