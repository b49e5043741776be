"""WebSocket endpoint — the transport side of the realtime core.

Learn: Each dashboard connects to /ws?token=JWT. The handler:
1. Authenticates via JWT query param (required outside development)
2. Registers the connection with the notifier, attaching a queue-backed
   transport whose writer task runs alongside the receive loop
3. Dispatches client messages:
   - authenticate            → update identity (rooms untouched)
   - joinRoom / leaveRoom    → room membership, data is the room name
   - ping                    → pong, to the sender only
   - orderPlaced, orderStatusUpdated, itemPreparationUpdated
                             → relayed to every other client
4. Unregisters on disconnect, whatever the reason

Every frame in both directions is `{"event": <name>, "data": <payload>}`.
"""

import asyncio
import json
import uuid

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from stallpos.config import settings
from stallpos.events.notifier import RELAYABLE_EVENTS, EventNotifier
from stallpos.realtime.registry import ClientIdentity
from stallpos.realtime.transport import WebSocketTransport

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket):
    """Long-lived connection, one per open dashboard tab."""
    # ── Authentication ──────────────────────────────────────
    token = websocket.query_params.get("token")

    if not token and settings.websocket_auth_required:
        await websocket.close(code=4001, reason="Authentication required")
        return

    identity = ClientIdentity()
    if token:
        from stallpos.auth.jwt import TokenError, verify_token

        try:
            payload = verify_token(token)
        except TokenError:
            await websocket.close(code=4001, reason="Invalid or expired token")
            return
        identity = ClientIdentity(role=payload.get("role", identity.role), user_id=payload["sub"])

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()

    notifier: EventNotifier = websocket.app.state.notifier
    connection_id = uuid.uuid4().hex
    transport = WebSocketTransport(websocket, connection_id)
    notifier.register_client(connection_id, identity, transport)
    writer = asyncio.create_task(transport.run())

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            raw = frame.get("text")
            if raw is None:
                # Binary frames are not part of the protocol
                continue
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(message, dict):
                continue
            _dispatch(notifier, connection_id, message.get("event"), message.get("data"))
    except WebSocketDisconnect:
        pass
    finally:
        notifier.unregister_client(connection_id)
        transport.close()
        try:
            await asyncio.wait_for(writer, timeout=1.0)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            writer.cancel()
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()


def _dispatch(notifier: EventNotifier, connection_id: str, event, data) -> None:
    if event == "authenticate":
        notifier.register_client(connection_id, ClientIdentity.from_message(data))
    elif event == "joinRoom":
        if isinstance(data, str) and data:
            notifier.join_room(connection_id, data)
    elif event == "leaveRoom":
        if isinstance(data, str) and data:
            notifier.leave_room(connection_id, data)
    elif event == "ping":
        notifier.router.broadcast_to_connection(connection_id, "pong", data)
    elif event in RELAYABLE_EVENTS:
        notifier.relay(connection_id, event, data)
    else:
        logger.debug("realtime.unknown_message", connection_id=connection_id, event_name=event)
