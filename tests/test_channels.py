"""Tests for transport channels."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp import test_utils

from talkline.auth.session import StaticSessionProvider, UserSession
from talkline.channels.base import TransportChannel
from talkline.channels.websocket import WebSocketChannel
from talkline.config.schema import TransportConfig
from talkline.errors import UnknownTransportError


class MemoryChannel(TransportChannel):
    connected = True

    async def connect(self):
        pass

    async def close(self):
        pass

    async def emit(self, event, data):
        pass


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_on_runs_for_every_event(self):
        channel = MemoryChannel()
        handler = MagicMock()
        channel.on("chatMessage", handler)

        await channel._dispatch("chatMessage", 1)
        await channel._dispatch("chatMessage", 2)

        assert [c.args[0] for c in handler.call_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_once_runs_for_first_event(self):
        channel = MemoryChannel()
        handler = MagicMock()
        channel.once("error", handler)

        await channel._dispatch("error", "a")
        await channel._dispatch("error", "b")

        handler.assert_called_once_with("a")
        assert channel.listener_count("error") == 0

    @pytest.mark.asyncio
    async def test_async_handler_is_awaited(self):
        channel = MemoryChannel()
        handler = AsyncMock()
        channel.on("x", handler)
        await channel._dispatch("x", {"k": 1})
        handler.assert_awaited_once_with({"k": 1})

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        channel = MemoryChannel()
        second = MagicMock()
        channel.on("x", MagicMock(side_effect=RuntimeError("boom")))
        channel.on("x", second)
        await channel._dispatch("x", None)
        second.assert_called_once_with(None)

    def test_off(self):
        channel = MemoryChannel()
        first, second = MagicMock(), MagicMock()
        channel.on("x", first)
        channel.on("x", second)

        channel.off("x", first)
        assert channel.listener_count("x") == 1
        channel.off("x")
        assert channel.listener_count("x") == 0


# ---------------------------------------------------------------------------
# WebSocket channel against a local aiohttp server
# ---------------------------------------------------------------------------

def _echo_app(received: list, headers: list) -> web.Application:
    async def handle(request: web.Request) -> web.WebSocketResponse:
        headers.append(dict(request.headers))
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        async for raw in ws:
            if raw.type.name == "TEXT":
                frame = json.loads(raw.data)
                received.append(frame)
                if frame["event"] == "fetchPreviousMessages":
                    await ws.send_json({"event": "previousMessagesLoaded", "data": {"messages": []}})
                    await ws.send_str("not json")
        return ws

    app = web.Application()
    app.router.add_get("/ws", handle)
    return app


class TestWebSocketChannel:
    @pytest.mark.asyncio
    async def test_round_trip(self):
        received, headers = [], []
        server = test_utils.TestServer(_echo_app(received, headers))
        await server.start_server()
        try:
            session = StaticSessionProvider(UserSession(id="u1", token="tok", session_id="sess"))
            channel = WebSocketChannel(TransportConfig(url=str(server.make_url("/ws"))), session)
            loaded = asyncio.get_running_loop().create_future()
            channel.once("previousMessagesLoaded", loaded.set_result)

            await channel.connect()
            assert channel.connected
            await channel.emit("fetchPreviousMessages", {"roomId": "r1", "before": None})

            assert await asyncio.wait_for(loaded, timeout=5) == {"messages": []}
            assert received == [{"event": "fetchPreviousMessages", "data": {"roomId": "r1", "before": None}}]
            assert headers[0]["x-auth-token"] == "tok"
            assert headers[0]["x-session-id"] == "sess"

            await channel.close()
            assert not channel.connected
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_emit_when_closed(self):
        channel = WebSocketChannel(TransportConfig())
        with pytest.raises(UnknownTransportError):
            await channel.emit("chatMessage", {})

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        channel = WebSocketChannel(TransportConfig(url="ws://127.0.0.1:1/ws", connect_timeout=2))
        with pytest.raises(UnknownTransportError):
            await channel.connect()
        assert not channel.connected

    @pytest.mark.asyncio
    async def test_frame_without_event_is_ignored(self):
        channel = WebSocketChannel(TransportConfig())
        handler = MagicMock()
        channel.on("x", handler)
        await channel._handle_frame(json.dumps({"data": 1}))
        await channel._handle_frame("[1, 2]")
        await channel._handle_frame(json.dumps({"event": "x", "data": 3}))
        handler.assert_called_once_with(3)
