"""Connection registry tests — rooms and connections stay in lockstep."""

from stallpos.realtime.registry import UNKNOWN_ROLE, ClientIdentity


def _consistent(registry) -> bool:
    """Every room member lists the room, and every listed room has the member."""
    for room in registry.rooms():
        for cid in registry.subscribers(room):
            conn = registry.get(cid)
            if conn is None or room not in conn.rooms:
                return False
    for conn in registry.connections():
        for room in conn.rooms:
            if conn.id not in registry.subscribers(room):
                return False
    return True


def test_register_defaults_to_unknown_identity(registry):
    conn = registry.register("c1")
    assert conn.identity.role == UNKNOWN_ROLE
    assert conn.identity.user_id is None
    assert conn.rooms == set()
    assert "c1" in registry
    assert len(registry) == 1


def test_join_and_leave_rooms(registry):
    registry.register("c1")
    registry.register("c2")

    assert registry.join_room("c1", "delivery")
    assert registry.join_room("c2", "delivery")
    assert registry.join_room("c1", "admin")

    assert registry.subscribers("delivery") == {"c1", "c2"}
    assert registry.get("c1").rooms == {"delivery", "admin"}
    assert _consistent(registry)

    assert registry.leave_room("c1", "delivery")
    assert registry.subscribers("delivery") == {"c2"}
    assert _consistent(registry)


def test_join_is_idempotent(registry):
    registry.register("c1")
    registry.join_room("c1", "counter")
    registry.join_room("c1", "counter")
    assert registry.stats().room_stats == {"counter": 1}


def test_empty_rooms_are_removed(registry):
    registry.register("c1")
    registry.join_room("c1", "kitchen")
    registry.leave_room("c1", "kitchen")

    stats = registry.stats()
    assert stats.total_rooms == 0
    assert "kitchen" not in stats.room_stats


def test_unregister_leaves_every_room(registry):
    registry.register("c1")
    registry.register("c2")
    registry.join_room("c1", "delivery")
    registry.join_room("c1", "admin")
    registry.join_room("c2", "admin")

    registry.unregister("c1")

    assert "c1" not in registry
    assert registry.rooms() == ["admin"]
    assert registry.subscribers("admin") == {"c2"}
    assert _consistent(registry)


def test_unregister_unknown_is_noop(registry):
    registry.unregister("ghost")
    assert len(registry) == 0


def test_join_unknown_connection_is_rejected(registry):
    assert registry.join_room("ghost", "delivery") is False
    assert registry.leave_room("ghost", "delivery") is False
    assert registry.stats().total_rooms == 0


def test_reregister_keeps_rooms_and_swaps_identity(registry):
    """A client may join rooms before it authenticates."""
    registry.register("c1")
    registry.join_room("c1", "delivery")

    registry.register("c1", ClientIdentity(role="delivery", user_id="user-7"))

    conn = registry.get("c1")
    assert conn.identity.role == "delivery"
    assert conn.identity.user_id == "user-7"
    assert conn.rooms == {"delivery"}
    assert len(registry) == 1


def test_reregister_without_transport_keeps_existing_transport(registry, transport_factory):
    transport = transport_factory()
    registry.register("c1", transport=transport)
    registry.register("c1", ClientIdentity(role="admin"))
    assert registry.get("c1").transport is transport


def test_stats_counts_members_per_room(registry):
    for cid in ("c1", "c2", "c3"):
        registry.register(cid)
    registry.join_room("c1", "delivery")
    registry.join_room("c2", "delivery")
    registry.join_room("c3", "admin")

    stats = registry.stats()
    assert stats.total_clients == 3
    assert stats.total_rooms == 2
    assert stats.room_stats == {"delivery": 2, "admin": 1}


def test_connections_snapshot_survives_mutation(registry):
    for cid in ("c1", "c2"):
        registry.register(cid)
    for conn in registry.connections():
        registry.unregister(conn.id)
    assert len(registry) == 0


def test_identity_from_authenticate_message():
    identity = ClientIdentity.from_message({"role": "counter", "id": "u-3"})
    assert identity == ClientIdentity(role="counter", user_id="u-3")

    assert ClientIdentity.from_message({"user_id": 42}).user_id == "42"
    assert ClientIdentity.from_message("not a dict") == ClientIdentity()
    assert ClientIdentity.from_message({}).role == UNKNOWN_ROLE
