"""Room and player state owned by the session registry."""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

MAX_PLAYERS = 4
INITIAL_HP = 100
INITIAL_WAVE = 1


def default_skill_tree() -> dict[str, Any]:
    return {"damage": 1, "fireRate": 1, "speed": 1}


class PlayerState(BaseModel):
    """Player entry as it appears in room snapshots and join announcements."""

    id: str
    name: str
    x: float
    y: float
    hp: float
    is_host: bool


class RoomState(BaseModel):
    """Full authoritative snapshot of a room."""

    room_id: str
    host_id: str
    players: dict[str, PlayerState]
    skill_tree: dict[str, Any]
    wave: int
    seed: int


@dataclass
class Player:
    """Server-held copy of one player's position and health.

    Position and health are reported by the owning client and stored
    as-is; the key in Room.players is always the player's id.
    """

    id: str
    name: str
    x: float = 0
    y: float = 0
    hp: float = INITIAL_HP
    is_host: bool = False

    def to_state(self) -> PlayerState:
        return PlayerState(id=self.id, name=self.name, x=self.x, y=self.y, hp=self.hp, is_host=self.is_host)


@dataclass
class Room:
    """One game session: up to MAX_PLAYERS players around a fixed host and seed.

    host_id never changes. If the host disconnects the room keeps running
    without one, and host-only actions can no longer be triggered.
    """

    room_id: str
    host_id: str
    seed: int
    wave: int = INITIAL_WAVE
    players: dict[str, Player] = field(default_factory=dict)  # connection_id -> Player
    skill_tree: dict[str, Any] = field(default_factory=default_skill_tree)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return self.player_count == 0

    @property
    def is_full(self) -> bool:
        return self.player_count >= MAX_PLAYERS

    def has_player(self, connection_id: str) -> bool:
        return connection_id in self.players

    def is_host(self, connection_id: str) -> bool:
        return connection_id == self.host_id

    def player_states(self) -> dict[str, PlayerState]:
        return {pid: p.to_state() for pid, p in self.players.items()}

    def snapshot(self) -> RoomState:
        return RoomState(
            room_id=self.room_id,
            host_id=self.host_id,
            players=self.player_states(),
            skill_tree=dict(self.skill_tree),
            wave=self.wave,
            seed=self.seed,
        )
