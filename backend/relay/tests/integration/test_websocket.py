"""Integration tests for WebSocket and HTTP endpoints.

These go through the Starlette test client so the MessagePack framing,
the receive loop and disconnect cleanup are exercised end to end.
"""

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from relay.messaging.types import ServerEventType, SessionErrorCode
from relay.server.app import create_app
from relay.server.settings import RelayServerSettings
from relay.tests.helpers import recv_ws, send_ws


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def _create_room(ws, name: str = "Alice") -> dict:
    send_ws(ws, {"event": "create_room", "data": {"player_name": name}})
    message = recv_ws(ws)
    assert message["event"] == ServerEventType.ROOM_CREATED
    return message["data"]


class TestWebSocketIntegration:
    def test_create_room(self, client):
        with client.websocket_connect("/ws") as ws:
            created = _create_room(ws)

        assert created["success"] is True
        assert created["room_id"] == "ABC123"
        assert created["is_host"] is True
        player_id = created["player_id"]
        assert created["players"][player_id]["name"] == "Alice"
        assert created["room_state"]["host_id"] == player_id
        assert created["room_state"]["wave"] == 1

    def test_join_and_leave(self, client, registry):
        with client.websocket_connect("/ws") as host:
            created = _create_room(host)

            with client.websocket_connect("/ws") as guest:
                send_ws(guest, {"event": "join_room", "data": {"room_id": "ABC123", "player_name": "Bob"}})
                joined = recv_ws(guest)
                assert joined["event"] == ServerEventType.ROOM_JOINED
                guest_id = joined["data"]["player_id"]
                assert list(joined["data"]["players"]) == [created["player_id"], guest_id]

                announced = recv_ws(host)
                assert announced["event"] == ServerEventType.PLAYER_JOINED
                assert announced["data"]["id"] == guest_id

                send_ws(host, {"event": "player_input", "data": {"room_id": "ABC123", "x": 10.0, "y": 20.0}})
                update = recv_ws(guest)
                assert update == {
                    "event": ServerEventType.PLAYER_UPDATE,
                    "data": {"id": created["player_id"], "x": 10.0, "y": 20.0},
                }

            left = recv_ws(host)
            assert left == {"event": ServerEventType.PLAYER_LEFT, "data": {"id": guest_id}}
            assert registry.get_room("ABC123").player_count == 1

        assert registry.get_room("ABC123") is None

    def test_join_unknown_room(self, client):
        with client.websocket_connect("/ws") as ws:
            send_ws(ws, {"event": "join_room", "data": {"room_id": "NOPE00", "player_name": "Bob"}})
            response = recv_ws(ws)

        assert response == {
            "event": ServerEventType.ROOM_JOINED,
            "data": {"success": False, "code": "room_not_found", "error": "Room not found"},
        }

    def test_invalid_msgpack_returns_error_and_keeps_connection(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\xff\xff\xff")

            response = recv_ws(ws)
            assert response["event"] == ServerEventType.ERROR
            assert response["data"]["code"] == SessionErrorCode.INVALID_MESSAGE

            created = _create_room(ws)
            assert created["room_id"] == "ABC123"

    def test_text_frame_returns_error(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("hello")

            response = recv_ws(ws)
            assert response["event"] == ServerEventType.ERROR

    def test_schema_error_returns_error(self, client):
        with client.websocket_connect("/ws") as ws:
            send_ws(ws, {"event": "fly", "data": {}})

            response = recv_ws(ws)
            assert response["event"] == ServerEventType.ERROR
            assert response["data"]["code"] == SessionErrorCode.INVALID_MESSAGE

    def test_repeated_decode_errors_disconnect(self, registry, hub, message_router):
        settings = RelayServerSettings(max_decode_errors=3)
        app = create_app(settings=settings, registry=registry, hub=hub, message_router=message_router)

        with TestClient(app) as client, client.websocket_connect("/ws") as ws:
            for _ in range(3):
                ws.send_bytes(b"\xff\xff\xff")
                recv_ws(ws)  # drain INVALID_MESSAGE error
            with pytest.raises(WebSocketDisconnect):
                ws.receive_bytes()

    def test_decode_error_counter_resets_on_valid_message(self, registry, hub, message_router):
        settings = RelayServerSettings(max_decode_errors=3)
        app = create_app(settings=settings, registry=registry, hub=hub, message_router=message_router)

        with TestClient(app) as client, client.websocket_connect("/ws") as ws:
            for _ in range(2):
                ws.send_bytes(b"\xff\xff\xff")
                recv_ws(ws)

            _create_room(ws)

            for _ in range(2):
                ws.send_bytes(b"\xff\xff\xff")
                resp = recv_ws(ws)
                assert resp["data"]["code"] == SessionErrorCode.INVALID_MESSAGE

            # still connected
            send_ws(ws, {"event": "wave_cleared", "data": {"room_id": "ABC123"}})
            assert recv_ws(ws)["event"] == ServerEventType.NEXT_WAVE


class TestHttpEndpoints:
    def test_root_returns_health_text(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Bullet Hell Co-op Server Running"

    def test_status_counts(self, client):
        assert client.get("/status").json() == {"status": "ok", "rooms": 0, "players": 0, "connections": 0}

        with client.websocket_connect("/ws") as ws:
            _create_room(ws)
            data = client.get("/status").json()

        assert data == {"status": "ok", "rooms": 1, "players": 1, "connections": 1}

    def test_cors_header_for_allowed_origin(self, client):
        response = client.get("/", headers={"Origin": "http://localhost:8080"})
        assert response.headers["access-control-allow-origin"] == "http://localhost:8080"

    def test_no_cors_header_for_other_origin(self, client):
        response = client.get("/", headers={"Origin": "http://evil.example"})
        assert "access-control-allow-origin" not in response.headers
