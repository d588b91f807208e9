from enum import StrEnum
from typing import Annotated, Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field

from relay.session.models import PlayerState, RoomState


class ClientEventType(StrEnum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    PLAYER_INPUT = "player_input"
    PLAYER_SHOOT = "player_shoot"
    WAVE_CLEARED = "wave_cleared"
    SKILL_TREE_CHOICE = "skill_tree_choice"
    START_GAME = "start_game"


class ServerEventType(StrEnum):
    ROOM_CREATED = "room_created"
    ROOM_JOINED = "room_joined"
    PLAYER_JOINED = "player_joined"
    PLAYER_UPDATE = "player_update"
    PLAYER_SHOOT = "player_shoot"
    NEXT_WAVE = "next_wave"
    SKILL_TREE_UPDATE = "skill_tree_update"
    GAME_STARTING = "game_starting"
    PLAYER_LEFT = "player_left"
    ERROR = "session_error"


class JoinErrorCode(StrEnum):
    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"


JOIN_ERROR_TEXT = {
    JoinErrorCode.ROOM_NOT_FOUND: "Room not found",
    JoinErrorCode.ROOM_FULL: "Room full",
}


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"


# --- inbound ---

# An absent room id resolves to no room, which every room-scoped event treats as a no-op.
_ROOM_ID_FIELD = Field(default="", max_length=50)
_Number = Annotated[float, Field(strict=True, allow_inf_nan=False)]


class ClientEnvelope(BaseModel):
    """Outer frame of every client message: event name plus its payload."""

    event: ClientEventType
    data: dict[str, Any] = Field(default_factory=dict)


class CreateRoomPayload(BaseModel):
    player_name: str = ""


class JoinRoomPayload(BaseModel):
    room_id: str = _ROOM_ID_FIELD
    player_name: str = ""


class PlayerInputPayload(BaseModel):
    room_id: str = _ROOM_ID_FIELD
    x: _Number
    y: _Number
    hp: _Number | None = None

    @property
    def has_hp(self) -> bool:
        """True if the client sent an hp key at all, even a null one."""
        return "hp" in self.model_fields_set


class PlayerShootPayload(BaseModel):
    """Shot data is relayed untouched; only room_id is read by the server."""

    model_config = ConfigDict(extra="allow")

    room_id: str = _ROOM_ID_FIELD

    @property
    def shot_data(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class WaveClearedPayload(BaseModel):
    room_id: str = _ROOM_ID_FIELD


class SkillTreeChoicePayload(BaseModel):
    room_id: str = _ROOM_ID_FIELD
    type: str
    value: Any


class StartGamePayload(BaseModel):
    room_id: str = _ROOM_ID_FIELD


ClientPayload = (
    CreateRoomPayload
    | JoinRoomPayload
    | PlayerInputPayload
    | PlayerShootPayload
    | WaveClearedPayload
    | SkillTreeChoicePayload
    | StartGamePayload
)

_PAYLOAD_MODELS: dict[ClientEventType, type[ClientPayload]] = {
    ClientEventType.CREATE_ROOM: CreateRoomPayload,
    ClientEventType.JOIN_ROOM: JoinRoomPayload,
    ClientEventType.PLAYER_INPUT: PlayerInputPayload,
    ClientEventType.PLAYER_SHOOT: PlayerShootPayload,
    ClientEventType.WAVE_CLEARED: WaveClearedPayload,
    ClientEventType.SKILL_TREE_CHOICE: SkillTreeChoicePayload,
    ClientEventType.START_GAME: StartGamePayload,
}


def parse_client_message(data: dict[str, Any]) -> tuple[ClientEventType, ClientPayload]:
    """Validate a decoded frame into its event name and typed payload.

    Raises pydantic.ValidationError for an unknown event or a bad payload.
    """
    envelope = ClientEnvelope.model_validate(data)
    payload = _PAYLOAD_MODELS[envelope.event].model_validate(envelope.data)
    return envelope.event, payload


# --- outbound ---


class ServerMessage(BaseModel):
    """Base for server-to-client messages, sent as {"event": ..., "data": ...}."""

    event: ClassVar[ServerEventType]

    def payload(self) -> dict[str, Any]:
        return self.model_dump()

    def to_wire(self) -> dict[str, Any]:
        return {"event": self.event, "data": self.payload()}


class RoomCreatedMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.ROOM_CREATED

    success: bool = True
    room_id: str
    player_id: str
    is_host: bool = True
    room_state: RoomState
    players: dict[str, PlayerState]


class RoomJoinedMessage(ServerMessage):
    """Direct reply to a join: the full snapshot on success, an error code otherwise."""

    event: ClassVar[ServerEventType] = ServerEventType.ROOM_JOINED

    success: bool
    room_id: str | None = None
    player_id: str | None = None
    room_state: RoomState | None = None
    players: dict[str, PlayerState] | None = None
    code: JoinErrorCode | None = None
    error: str | None = None

    @classmethod
    def failure(cls, code: JoinErrorCode) -> Self:
        return cls(success=False, code=code, error=JOIN_ERROR_TEXT[code])

    def payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PlayerJoinedMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.PLAYER_JOINED

    id: str
    state: PlayerState


class PlayerUpdateMessage(ServerMessage):
    """Position update relayed to the other players; hp only when the client sent one."""

    event: ClassVar[ServerEventType] = ServerEventType.PLAYER_UPDATE

    id: str
    x: float
    y: float
    hp: float | None = None

    def payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class PlayerShootMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.PLAYER_SHOOT
    model_config = ConfigDict(extra="allow")

    id: str


class NextWaveMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.NEXT_WAVE

    wave: int
    seed: int


class SkillTreeUpdateMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.SKILL_TREE_UPDATE

    skill_tree: dict[str, Any]


class GameStartingMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.GAME_STARTING


class PlayerLeftMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.PLAYER_LEFT

    id: str


class ErrorMessage(ServerMessage):
    event: ClassVar[ServerEventType] = ServerEventType.ERROR

    code: SessionErrorCode
    message: str
