"""Room code and seed generation."""

import secrets
import string
from abc import ABC, abstractmethod

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_ROOM_CODE_LENGTH = 6
SEED_UPPER_BOUND = 10**9


class IdentityProvider(ABC):
    """Source of room codes and per-room seeds, injected into the registry."""

    @abstractmethod
    def new_room_id(self) -> str: ...

    @abstractmethod
    def new_seed(self) -> int: ...


class RandomIdentityProvider(IdentityProvider):
    """Short uppercase alphanumeric room codes and seeds in [0, SEED_UPPER_BOUND).

    With 36**6 codes and a handful of live rooms per process a collision is
    negligible, so codes are not checked against existing rooms.
    """

    def __init__(self, room_code_length: int = DEFAULT_ROOM_CODE_LENGTH) -> None:
        if room_code_length < 1:
            raise ValueError(f"room_code_length must be positive, got {room_code_length}")
        self._room_code_length = room_code_length

    def new_room_id(self) -> str:
        return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(self._room_code_length))

    def new_seed(self) -> int:
        return secrets.randbelow(SEED_UPPER_BOUND)
