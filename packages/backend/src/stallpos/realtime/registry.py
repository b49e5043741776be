"""Connection registry — live clients and their room memberships.

Learn: Two maps are kept in lockstep:

    connections: connection_id → Connection (identity, rooms, transport)
    rooms:       room name     → {connection_id, ...}

Rooms hold ids, not Connection objects, so an unregistered client can never
linger in a room by reference. A room exists only while it has at least one
subscriber.

Clients emit joinRoom before authenticate, and re-authenticate after token
refresh, so register() on a known id only swaps the identity and never
touches the rooms.

Everything here runs on the event loop thread with no awaits, so each call
is atomic from the caller's point of view.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

import structlog

from stallpos.realtime.transport import Transport

logger = structlog.get_logger()

UNKNOWN_ROLE = "unknown"


@dataclass
class ClientIdentity:
    """Who is on the other end of a connection, as far as we were told."""

    role: str = UNKNOWN_ROLE
    user_id: Optional[str] = None

    @classmethod
    def from_message(cls, data: Any) -> "ClientIdentity":
        """Build an identity from an `authenticate` message body."""
        if not isinstance(data, dict):
            return cls()
        role = data.get("role") or UNKNOWN_ROLE
        user_id = data.get("id") or data.get("user_id")
        return cls(role=str(role), user_id=str(user_id) if user_id else None)


@dataclass
class Connection:
    id: str
    identity: ClientIdentity
    rooms: set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    transport: Optional[Transport] = None


@dataclass
class RegistryStats:
    total_clients: int
    total_rooms: int
    room_stats: dict[str, int]


class ConnectionRegistry:
    """Owns the connection table and the room table."""

    def __init__(self):
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}

    # ─── Connections ────────────────────────────────────

    def register(
        self,
        connection_id: str,
        identity: Optional[ClientIdentity] = None,
        transport: Optional[Transport] = None,
    ) -> Connection:
        """Add a connection, or update the identity of a known one.

        Room membership of a known connection is left exactly as it was.
        """
        identity = identity or ClientIdentity()
        existing = self._connections.get(connection_id)
        if existing is not None:
            existing.identity = identity
            if transport is not None:
                existing.transport = transport
            logger.info(
                "realtime.client_updated",
                connection_id=connection_id,
                role=identity.role,
                rooms=len(existing.rooms),
            )
            return existing

        conn = Connection(id=connection_id, identity=identity, transport=transport)
        self._connections[connection_id] = conn
        logger.info(
            "realtime.client_registered",
            connection_id=connection_id,
            role=identity.role,
            total_clients=len(self._connections),
        )
        return conn

    def unregister(self, connection_id: str) -> None:
        conn = self._connections.get(connection_id)
        if conn is None:
            return
        for room in list(conn.rooms):
            self.leave_room(connection_id, room)
        del self._connections[connection_id]
        logger.info(
            "realtime.client_unregistered",
            connection_id=connection_id,
            total_clients=len(self._connections),
        )

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def connections(self) -> Iterator[Connection]:
        """Snapshot iteration — safe against (un)registration mid-loop."""
        return iter(list(self._connections.values()))

    # ─── Rooms ──────────────────────────────────────────

    def join_room(self, connection_id: str, room: str) -> bool:
        """Subscribe a connection to a room. Returns False for unknown ids."""
        conn = self._connections.get(connection_id)
        if conn is None:
            logger.warning(
                "realtime.join_unknown_client",
                connection_id=connection_id,
                room=room,
            )
            return False
        conn.rooms.add(room)
        self._rooms.setdefault(room, set()).add(connection_id)
        logger.info(
            "realtime.room_joined",
            connection_id=connection_id,
            room=room,
            rooms=sorted(conn.rooms),
        )
        return True

    def leave_room(self, connection_id: str, room: str) -> bool:
        """Unsubscribe a connection. Empty rooms are deleted."""
        conn = self._connections.get(connection_id)
        if conn is None:
            logger.warning(
                "realtime.leave_unknown_client",
                connection_id=connection_id,
                room=room,
            )
            return False
        conn.rooms.discard(room)
        subscribers = self._rooms.get(room)
        if subscribers is not None:
            subscribers.discard(connection_id)
            if not subscribers:
                del self._rooms[room]
        logger.info("realtime.room_left", connection_id=connection_id, room=room)
        return True

    def subscribers(self, room: str) -> frozenset[str]:
        return frozenset(self._rooms.get(room, ()))

    def rooms(self) -> list[str]:
        return list(self._rooms)

    # ─── Stats ──────────────────────────────────────────

    def stats(self) -> RegistryStats:
        return RegistryStats(
            total_clients=len(self._connections),
            total_rooms=len(self._rooms),
            room_stats={room: len(ids) for room, ids in self._rooms.items()},
        )
