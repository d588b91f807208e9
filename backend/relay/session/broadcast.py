"""Broadcast groups: the delivery capability the session registry depends on."""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from relay.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


class Broadcaster(ABC):
    """Deliver messages to single connections or to named groups of connections.

    The registry only ever sends through these primitives, so it can be
    driven in tests without a live transport.
    """

    @abstractmethod
    def join_group(self, group: str, connection_id: str) -> None: ...

    @abstractmethod
    def leave_group(self, group: str, connection_id: str) -> None: ...

    @abstractmethod
    async def send_to(self, connection_id: str, message: dict[str, Any]) -> None: ...

    @abstractmethod
    async def broadcast(self, group: str, message: dict[str, Any]) -> None: ...

    @abstractmethod
    async def broadcast_except(self, group: str, exclude_connection_id: str, message: dict[str, Any]) -> None: ...


class ConnectionHub(Broadcaster):
    """In-process Broadcaster over live connections.

    A connection must be registered before it can receive anything. Groups
    are created on first join and dropped when their last member leaves.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionProtocol] = {}
        self._groups: dict[str, set[str]] = {}  # group -> connection_ids
        self._memberships: dict[str, set[str]] = {}  # connection_id -> groups

    def register(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister(self, connection_id: str) -> None:
        """Forget a connection and remove it from every group it was in."""
        self._connections.pop(connection_id, None)
        for group in self._memberships.pop(connection_id, set()):
            self._discard_member(group, connection_id)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def group_members(self, group: str) -> set[str]:
        return set(self._groups.get(group, ()))

    def join_group(self, group: str, connection_id: str) -> None:
        self._groups.setdefault(group, set()).add(connection_id)
        self._memberships.setdefault(connection_id, set()).add(group)

    def leave_group(self, group: str, connection_id: str) -> None:
        groups = self._memberships.get(connection_id)
        if groups is not None:
            groups.discard(group)
            if not groups:
                del self._memberships[connection_id]
        self._discard_member(group, connection_id)

    def _discard_member(self, group: str, connection_id: str) -> None:
        members = self._groups.get(group)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._groups[group]

    async def send_to(self, connection_id: str, message: dict[str, Any]) -> None:
        """Send directly to one connection. Send failures propagate to the caller."""
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug("send to unknown connection dropped", connection_id=connection_id)
            return
        await connection.send_message(message)

    async def broadcast(self, group: str, message: dict[str, Any]) -> None:
        await self._deliver(self.group_members(group), message)

    async def broadcast_except(self, group: str, exclude_connection_id: str, message: dict[str, Any]) -> None:
        await self._deliver(self.group_members(group) - {exclude_connection_id}, message)

    async def _deliver(self, connection_ids: Iterable[str], message: dict[str, Any]) -> None:
        """Send to each recipient, skipping any whose socket has gone away.

        Recipients are resolved up front so a member leaving while we
        yield on a send does not change who this message goes to.
        """
        recipients = [self._connections[cid] for cid in connection_ids if cid in self._connections]
        for connection in recipients:
            with contextlib.suppress(RuntimeError, OSError):
                await connection.send_message(message)
