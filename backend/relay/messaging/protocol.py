"""Abstract client connection."""

from abc import ABC, abstractmethod
from typing import Any

from relay.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One connected game client, as seen by the hub and the router.

    The WebSocket implementation lives in the server package; tests use
    MockConnection. Messages are dicts encoded with MessagePack.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Opaque identifier assigned by the transport; doubles as the player id."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        return decode(await self.receive_bytes())
