"""Base transport channel interface."""

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from loguru import logger

Handler = Callable[[Any], "Awaitable[None] | None"]


class TransportChannel(ABC):
    """
    Abstract real-time transport.

    Implementations deliver outbound events with emit() and call
    _dispatch() for every inbound event. Handlers registered with once()
    run for the first matching event only.
    """

    name: str = "base"

    def __init__(self):
        self._handlers: dict[str, list[tuple[Handler, bool]]] = {}

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether emit() can currently reach the server."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection and drop pending I/O."""

    @abstractmethod
    async def emit(self, event: str, data: dict[str, Any]) -> None:
        """
        Send an event.

        Raises:
            UnknownTransportError: If the event could not be written.
        """

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Handler) -> None:
        self._handlers.setdefault(event, []).append((handler, False))

    def once(self, event: str, handler: Handler) -> None:
        self._handlers.setdefault(event, []).append((handler, True))

    def off(self, event: str, handler: Handler | None = None) -> None:
        """Remove one handler, or every handler of the event."""
        if handler is None:
            self._handlers.pop(event, None)
            return
        remaining = [(h, once) for h, once in self._handlers.get(event, []) if h is not handler]
        if remaining:
            self._handlers[event] = remaining
        else:
            self._handlers.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def _dispatch(self, event: str, data: Any) -> None:
        """Run the handlers of an inbound event; handler errors are logged."""
        entries = list(self._handlers.get(event, []))
        if not entries:
            logger.debug(f"No handler for {event}")
            return

        for handler, once in entries:
            if once:
                self.off(event, handler)
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Handler for {event} failed: {e}")
