"""Transport channels."""

from talkline.channels.base import TransportChannel
from talkline.channels.websocket import WebSocketChannel

__all__ = ["TransportChannel", "WebSocketChannel"]
