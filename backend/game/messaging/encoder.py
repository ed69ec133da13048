"""
MessagePack framing for WebSocket messages.

Every frame in either direction is a single MessagePack map. Client
frames are small, so decoding enforces tight size limits before any
parsing happens.
"""

from typing import Any

import msgpack

# client frames carry one short command; anything larger is rejected
MAX_FRAME_BYTES = 16 * 1024
MAX_STR_LEN = 4 * 1024
MAX_ARRAY_LEN = 64
MAX_MAP_LEN = 32


class DecodeError(Exception):
    """Raised when an inbound frame is not a valid MessagePack map."""


def encode(data: dict[str, Any]) -> bytes:
    """Pack an outbound message; enum members must already be plain values."""
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Unpack an inbound frame into a dict.

    Raises DecodeError if the frame is oversized, malformed or not a map.
    """
    if len(data) > MAX_FRAME_BYTES:
        raise DecodeError(f"frame too large: {len(data)} bytes (max {MAX_FRAME_BYTES})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=0,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=0,
        )
    except (msgpack.UnpackException, ValueError, TypeError) as e:
        raise DecodeError(f"malformed frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected a map, got {type(result).__name__}")
    return result
