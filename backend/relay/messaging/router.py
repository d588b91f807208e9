from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from relay.messaging.types import (
    CreateRoomPayload,
    ErrorMessage,
    JoinRoomPayload,
    PlayerInputPayload,
    PlayerShootPayload,
    SessionErrorCode,
    SkillTreeChoicePayload,
    StartGamePayload,
    WaveClearedPayload,
    parse_client_message,
)
from relay.session.registry import UNSET

if TYPE_CHECKING:
    from relay.messaging.protocol import ConnectionProtocol
    from relay.messaging.types import ClientPayload
    from relay.session.broadcast import ConnectionHub
    from relay.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes decoded client messages to the session registry.

    Holds no state of its own and can be tested with MockConnection
    instead of real WebSockets.
    """

    def __init__(self, registry: SessionRegistry, hub: ConnectionHub) -> None:
        self._registry = registry
        self._hub = hub

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._hub.register(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._registry.handle_disconnect(connection.connection_id)
        self._hub.unregister(connection.connection_id)

    async def handle_message(self, connection: ConnectionProtocol, raw_message: dict[str, Any]) -> None:
        try:
            event, payload = parse_client_message(raw_message)
        except ValidationError as e:
            # Debug only: a misbehaving client could otherwise flood the log.
            logger.debug("invalid message from %s: %s", connection.connection_id, e)
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=_summarize(e)).to_wire(),
            )
            return

        with structlog.contextvars.bound_contextvars(client_event=event):
            await self._dispatch(connection.connection_id, payload)

    async def _dispatch(self, connection_id: str, payload: ClientPayload) -> None:
        registry = self._registry
        if isinstance(payload, PlayerInputPayload):
            await registry.apply_player_input(
                connection_id,
                payload.room_id,
                payload.x,
                payload.y,
                payload.hp if payload.has_hp else UNSET,
            )
        elif isinstance(payload, PlayerShootPayload):
            await registry.broadcast_shoot(connection_id, payload.room_id, payload.shot_data)
        elif isinstance(payload, CreateRoomPayload):
            await registry.create_room(connection_id, payload.player_name)
        elif isinstance(payload, JoinRoomPayload):
            await registry.join_room(connection_id, payload.room_id, payload.player_name)
        elif isinstance(payload, WaveClearedPayload):
            await registry.host_advance_wave(connection_id, payload.room_id)
        elif isinstance(payload, SkillTreeChoicePayload):
            await registry.host_set_skill(connection_id, payload.room_id, payload.type, payload.value)
        elif isinstance(payload, StartGamePayload):
            await registry.host_start_game(connection_id, payload.room_id)


def _summarize(error: ValidationError) -> str:
    """First validation problem as 'field: message', for the client's benefit."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "message"
    return f"{location}: {first['msg']}"
