from __future__ import annotations

from typing import TYPE_CHECKING

from relay.messaging.encoder import decode, encode
from relay.messaging.mock import MockConnection

if TYPE_CHECKING:
    from starlette.testclient import WebSocketTestSession

    from relay.session.broadcast import ConnectionHub
    from relay.session.registry import SessionRegistry


def connect(hub: ConnectionHub, connection_id: str) -> MockConnection:
    """Register a mock client with the hub, as the websocket endpoint does on accept."""
    connection = MockConnection(connection_id)
    hub.register(connection)
    return connection


async def create_populated_room(
    registry: SessionRegistry,
    hub: ConnectionHub,
    host_id: str = "A",
    guest_ids: tuple[str, ...] = ("B",),
) -> tuple[str, dict[str, MockConnection]]:
    """Create a room hosted by host_id, join the guests, and clear every outbox."""
    conns = {host_id: connect(hub, host_id)}
    room = await registry.create_room(host_id, f"Player {host_id}")
    for guest_id in guest_ids:
        conns[guest_id] = connect(hub, guest_id)
        await registry.join_room(guest_id, room.room_id, f"Player {guest_id}")
    for conn in conns.values():
        conn.clear()
    return room.room_id, conns


def send_ws(ws: WebSocketTestSession, data: dict) -> None:
    """Send a MessagePack-encoded message over a test WebSocket."""
    ws.send_bytes(encode(data))


def recv_ws(ws: WebSocketTestSession) -> dict:
    """Receive and decode a MessagePack message from a test WebSocket."""
    return decode(ws.receive_bytes())
