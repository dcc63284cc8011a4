"""WebSocket transport channel speaking JSON event frames."""

import asyncio
import json
from typing import Any

import aiohttp
from loguru import logger

from talkline.auth.session import SessionProvider
from talkline.channels.base import TransportChannel
from talkline.config.schema import TransportConfig
from talkline.errors import UnknownTransportError


class WebSocketChannel(TransportChannel):
    """
    Client side of the chat transport.

    Every event travels as one text frame: {"event": name, "data": payload}.
    """

    name = "websocket"

    def __init__(self, config: TransportConfig, session: SessionProvider | None = None):
        super().__init__()
        self.config = config
        self._session = session
        self._http: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        if self.connected:
            return

        self._http = aiohttp.ClientSession()
        try:
            self._ws = await asyncio.wait_for(
                self._http.ws_connect(self.config.url, headers=self._auth_headers()),
                timeout=self.config.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            await self._close_http()
            raise UnknownTransportError(
                "connect timed out", f"No answer from {self.config.url} after {self.config.connect_timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            await self._close_http()
            logger.error(f"WebSocket connect to {self.config.url} failed: {e}")
            raise UnknownTransportError("connect failed", str(e)) from e

        self._reader = asyncio.create_task(self._read_loop(self._ws))
        logger.info("Connected to {}", self.config.url)

    async def close(self) -> None:
        if self._reader:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        await self._close_http()
        logger.debug("WebSocket channel closed")

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        if not self.connected:
            raise UnknownTransportError("not connected", f"Cannot emit {event}: channel is closed")
        try:
            await self._ws.send_json({"event": event, "data": data})
        except (ConnectionError, RuntimeError, aiohttp.ClientError) as e:
            logger.error(f"Failed to emit {event}: {e}")
            raise UnknownTransportError("emit failed", str(e) or type(e).__name__) from e
        logger.debug(f"Emitted {event}")

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for raw in ws:
            if raw.type.name == "TEXT":
                await self._handle_frame(raw.data)
            elif raw.type.name == "ERROR":
                logger.error(f"WebSocket error: {ws.exception()}")
                break
        logger.debug("WebSocket reader finished")

    async def _handle_frame(self, text: str) -> None:
        try:
            frame = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring non-JSON frame: {text[:100]}")
            return

        event = frame.get("event") if isinstance(frame, dict) else None
        if not event:
            logger.warning(f"Ignoring frame without event name: {text[:100]}")
            return
        await self._dispatch(event, frame.get("data"))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        user = self._session.get_current_user() if self._session else None
        if user is None or not user.is_live:
            return {}
        return {"x-auth-token": user.token, "x-session-id": user.session_id}

    async def _close_http(self) -> None:
        if self._http is not None:
            await self._http.close()
            self._http = None
