"""Broadcast router — deliver a named event to all, a room, or one client.

Learn: Wire frames look like {"event": "orderPlaced", "data": {...}}, the
same shape Socket.IO clients expect from emit(event, data).

Every send is fire-and-forget: the router hands the frame to each
subscriber's transport and moves on. No acks, no retries, no queue for
clients that have already gone. A send to a room nobody is in is normal
(rooms come and go with their members) and is silently skipped.
"""

from typing import Any, Iterable, Optional

import structlog

from stallpos.realtime.registry import Connection, ConnectionRegistry

logger = structlog.get_logger()


def make_frame(event: str, data: Any) -> dict[str, Any]:
    return {"event": event, "data": data}


class BroadcastRouter:
    """Resolves subscribers through the registry and sends to each one."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def broadcast_all(
        self,
        event: str,
        data: Any,
        exclude: Optional[str] = None,
    ) -> int:
        """Send to every registered connection. Returns how many were sent to."""
        targets = [c for c in self.registry.connections() if c.id != exclude]
        sent = self._deliver(targets, event, data)
        logger.info("realtime.broadcast", event_name=event, recipients=sent)
        return sent

    def broadcast_to_room(self, room: str, event: str, data: Any) -> int:
        subscriber_ids = self.registry.subscribers(room)
        if not subscriber_ids:
            return 0
        targets = [
            conn
            for conn in (self.registry.get(cid) for cid in subscriber_ids)
            if conn is not None
        ]
        sent = self._deliver(targets, event, data)
        logger.info(
            "realtime.broadcast_room", event_name=event, room=room, recipients=sent
        )
        return sent

    def broadcast_to_connection(self, connection_id: str, event: str, data: Any) -> int:
        conn = self.registry.get(connection_id)
        if conn is None:
            return 0
        sent = self._deliver([conn], event, data)
        logger.debug(
            "realtime.broadcast_client", event_name=event, connection_id=connection_id
        )
        return sent

    def _deliver(self, targets: Iterable[Connection], event: str, data: Any) -> int:
        frame = make_frame(event, data)
        sent = 0
        for conn in targets:
            if conn.transport is None:
                continue
            try:
                conn.transport.send(frame)
            except Exception as e:
                # A broken transport must not stop delivery to the others.
                logger.warning(
                    "realtime.send_failed",
                    connection_id=conn.id,
                    event_name=event,
                    error=str(e),
                )
                continue
            sent += 1
        return sent
