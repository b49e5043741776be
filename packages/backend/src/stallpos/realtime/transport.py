"""Per-connection outbound delivery.

Learn: Broadcasting is synchronous — the notifier runs inside an HTTP
handler and must not await N slow sockets. So each connection owns an
outbound queue. send() only enqueues; a single writer task per connection
drains the queue onto the WebSocket. One writer per connection keeps
events in the order they were broadcast.

If the socket dies mid-send, the writer logs it and stops. Messages queued
for a dead socket are dropped — clients re-fetch state on reconnect.
"""

import asyncio
from typing import Any, Protocol

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()

_CLOSE = object()


class Transport(Protocol):
    """Anything the broadcast router can hand a message to."""

    def send(self, message: dict[str, Any]) -> None: ...

    def close(self) -> None: ...


class WebSocketTransport:
    """Queue-backed sender for one accepted WebSocket."""

    def __init__(self, websocket: WebSocket, connection_id: str):
        self.websocket = websocket
        self.connection_id = connection_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: dict[str, Any]) -> None:
        if self._closed:
            return
        self._queue.put_nowait(message)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSE)

    async def run(self) -> None:
        """Writer loop. Returns after close() or the first failed send."""
        while True:
            message = await self._queue.get()
            if message is _CLOSE:
                return
            try:
                await self.websocket.send_json(message)
            except Exception as e:
                self._closed = True
                logger.info(
                    "realtime.delivery_failed",
                    connection_id=self.connection_id,
                    error=str(e),
                )
                return
