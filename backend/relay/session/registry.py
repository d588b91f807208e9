"""Session registry: rooms, players, and the events that change them."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from relay.messaging.types import (
    GameStartingMessage,
    JoinErrorCode,
    NextWaveMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerShootMessage,
    PlayerUpdateMessage,
    RoomCreatedMessage,
    RoomJoinedMessage,
    SkillTreeUpdateMessage,
)
from relay.session.identity import IdentityProvider, RandomIdentityProvider
from relay.session.models import Player, Room

if TYPE_CHECKING:
    from relay.session.broadcast import Broadcaster

logger = structlog.get_logger()


class _Unset(Enum):
    UNSET = "unset"


UNSET = _Unset.UNSET


class SessionRegistry:
    """Own every live room and apply client events to them.

    Each operation finishes mutating state before its first send, so on a
    single event loop no two events interleave their changes to a room.
    Failures other than a rejected join are silent no-ops: late or stray
    messages after a disconnect are normal traffic, not errors.
    """

    def __init__(self, broadcaster: Broadcaster, identity: IdentityProvider | None = None) -> None:
        self._broadcaster = broadcaster
        self._identity = identity or RandomIdentityProvider()
        self._rooms: dict[str, Room] = {}

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def player_count(self) -> int:
        return sum(room.player_count for room in self._rooms.values())

    def _get_member_room(self, room_id: str, connection_id: str) -> Room | None:
        room = self._rooms.get(room_id)
        if room is None or not room.has_player(connection_id):
            return None
        return room

    def _get_hosted_room(self, room_id: str, connection_id: str) -> Room | None:
        room = self._rooms.get(room_id)
        if room is None or not room.is_host(connection_id) or not room.has_player(connection_id):
            logger.debug("host action ignored", room_id=room_id, connection_id=connection_id)
            return None
        return room

    # --- room membership ---

    async def create_room(self, connection_id: str, player_name: str) -> Room:
        """Open a new room with the caller as host and send them its snapshot."""
        room_id = self._identity.new_room_id()
        room = Room(room_id=room_id, host_id=connection_id, seed=self._identity.new_seed())
        room.players[connection_id] = Player(id=connection_id, name=player_name, is_host=True)
        self._rooms[room_id] = room
        self._broadcaster.join_group(room_id, connection_id)
        logger.info("room created", room_id=room_id, host_id=connection_id, player_name=player_name)

        snapshot = room.snapshot()
        await self._broadcaster.send_to(
            connection_id,
            RoomCreatedMessage(
                room_id=room_id,
                player_id=connection_id,
                room_state=snapshot,
                players=snapshot.players,
            ).to_wire(),
        )
        return room

    async def join_room(self, connection_id: str, room_id: str, player_name: str) -> Room | None:
        """Add the caller to a room.

        The joiner gets one snapshot that already includes itself; everyone
        else gets one player_joined announcement. Returns the room, or None
        if the join was rejected.
        """
        room = self._rooms.get(room_id)
        if room is None:
            await self._reject_join(connection_id, room_id, JoinErrorCode.ROOM_NOT_FOUND)
            return None

        if room.has_player(connection_id):
            # Repeated join from a current member: resend the snapshot, change nothing.
            await self._send_join_snapshot(connection_id, room)
            return room

        if room.is_full:
            await self._reject_join(connection_id, room_id, JoinErrorCode.ROOM_FULL)
            return None

        player = Player(id=connection_id, name=player_name)
        room.players[connection_id] = player
        self._broadcaster.join_group(room_id, connection_id)
        logger.info(
            "player joined room",
            room_id=room_id,
            connection_id=connection_id,
            player_name=player_name,
            player_count=room.player_count,
        )

        announcement = PlayerJoinedMessage(id=connection_id, state=player.to_state()).to_wire()
        try:
            await self._send_join_snapshot(connection_id, room)
        finally:
            # Peers hear about the join even if the ack fails; every player_left
            # must follow a player_joined.
            await self._broadcaster.broadcast_except(room_id, connection_id, announcement)
        return room

    async def _send_join_snapshot(self, connection_id: str, room: Room) -> None:
        snapshot = room.snapshot()
        await self._broadcaster.send_to(
            connection_id,
            RoomJoinedMessage(
                success=True,
                room_id=room.room_id,
                player_id=connection_id,
                room_state=snapshot,
                players=snapshot.players,
            ).to_wire(),
        )

    async def _reject_join(self, connection_id: str, room_id: str, code: JoinErrorCode) -> None:
        logger.info("join rejected", room_id=room_id, connection_id=connection_id, reason=code)
        await self._broadcaster.send_to(connection_id, RoomJoinedMessage.failure(code).to_wire())

    async def handle_disconnect(self, connection_id: str) -> list[str]:
        """Remove the connection from every room it is in.

        Remaining members of each room get a player_left; a room is deleted
        the moment its last player is removed. Returns the affected room ids.
        """
        affected: list[str] = []
        for room in list(self._rooms.values()):
            if not room.has_player(connection_id):
                continue
            affected.append(room.room_id)
            player = room.players.pop(connection_id)
            self._broadcaster.leave_group(room.room_id, connection_id)
            logger.info("player left room", room_id=room.room_id, connection_id=connection_id, player_name=player.name)

            if room.is_empty:
                self._rooms.pop(room.room_id, None)
                logger.info("room removed", room_id=room.room_id)
                continue

            await self._broadcaster.broadcast(room.room_id, PlayerLeftMessage(id=connection_id).to_wire())
        return affected

    # --- gameplay relay ---

    async def apply_player_input(
        self,
        connection_id: str,
        room_id: str,
        x: float,
        y: float,
        hp: float | None | _Unset = UNSET,
    ) -> None:
        """Store the caller's reported position (and hp, if sent) and relay it to the others.

        A null hp is relayed as sent but does not overwrite the stored value.
        """
        room = self._get_member_room(room_id, connection_id)
        if room is None:
            return

        player = room.players[connection_id]
        player.x = x
        player.y = y
        if hp is not UNSET and hp is not None:
            player.hp = hp

        if hp is UNSET:
            update = PlayerUpdateMessage(id=connection_id, x=x, y=y)
        else:
            update = PlayerUpdateMessage(id=connection_id, x=x, y=y, hp=hp)
        await self._broadcaster.broadcast_except(room_id, connection_id, update.to_wire())

    async def broadcast_shoot(self, connection_id: str, room_id: str, shot: dict[str, Any]) -> None:
        """Relay shot data to the whole room, shooter included.

        Shots are cosmetic and hit-registration hints, not stored state, so
        room membership is not checked.
        """
        if not room_id:
            return
        message = PlayerShootMessage.model_validate({**shot, "id": connection_id})
        await self._broadcaster.broadcast(room_id, message.to_wire())

    # --- host-only progression ---

    async def host_advance_wave(self, connection_id: str, room_id: str) -> None:
        room = self._get_hosted_room(room_id, connection_id)
        if room is None:
            return
        room.wave += 1
        logger.info("wave advanced", room_id=room_id, wave=room.wave)
        await self._broadcaster.broadcast(room_id, NextWaveMessage(wave=room.wave, seed=room.seed).to_wire())

    async def host_set_skill(self, connection_id: str, room_id: str, skill_type: str, value: Any) -> None:  # noqa: ANN401
        room = self._get_hosted_room(room_id, connection_id)
        if room is None:
            return
        room.skill_tree[skill_type] = value
        logger.info("skill tree updated", room_id=room_id, skill=skill_type)
        await self._broadcaster.broadcast(room_id, SkillTreeUpdateMessage(skill_tree=dict(room.skill_tree)).to_wire())

    async def host_start_game(self, connection_id: str, room_id: str) -> None:
        room = self._get_hosted_room(room_id, connection_id)
        if room is None:
            return
        logger.info("game starting", room_id=room_id, player_count=room.player_count)
        await self._broadcaster.broadcast(room_id, GameStartingMessage().to_wire())
