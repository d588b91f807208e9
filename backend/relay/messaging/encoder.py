"""
MessagePack codec for the relay wire format.

Every frame is a single MessagePack map. Outbound maps are built from
pydantic model dumps; inbound maps are size-limited so a hostile client
cannot make the server allocate unbounded buffers.
"""

from typing import Any

import msgpack

# Input frames arrive many times per second per player; keep them small.
MAX_FRAME_LEN = 64 * 1024
MAX_STR_LEN = 16 * 1024
MAX_BIN_LEN = 16 * 1024
MAX_ARRAY_LEN = 512
MAX_MAP_LEN = 128
MAX_EXT_LEN = 0  # no extension types on this protocol


class DecodeError(Exception):
    """Raised when an inbound frame is not a well-formed MessagePack map."""


def _normalize_keys(obj: object) -> object:
    """Convert non-string map keys to strings, recursively.

    Clients index the skill tree and player maps by string; numeric keys
    coming out of a model dump would otherwise reach them as integers.
    """
    if isinstance(obj, dict):
        return {k if isinstance(k, str) else str(k): _normalize_keys(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_normalize_keys(item) for item in obj]
    return obj


def encode(data: dict[str, Any]) -> bytes:
    """Encode an outbound message map."""
    return msgpack.packb(_normalize_keys(data), use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode an inbound frame into a dict.

    Raises DecodeError if the frame is oversized, malformed, or not a map.
    """
    if len(data) > MAX_FRAME_LEN:
        raise DecodeError(f"frame too large: {len(data)} bytes (max {MAX_FRAME_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"malformed frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected a map, got {type(result).__name__}")
    return result
