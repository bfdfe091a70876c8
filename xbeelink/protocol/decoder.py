from __future__ import annotations

from typing import Dict, Type

from xbeelink.protocol.errors import (
    ChecksumMismatch,
    FrameTooShort,
    LengthMismatch,
    UnknownFrameType,
)
from xbeelink.protocol.frames import INBOUND_TYPES, OUTBOUND_TYPES, Frame
from xbeelink.protocol.framing import OVERHEAD, START_DELIMITER, checksum

FRAME_REGISTRY: Dict[int, Type[Frame]] = {
    cls.frame_type: cls for cls in (*OUTBOUND_TYPES, *INBOUND_TYPES)
}


def split_frame(candidate: bytes) -> tuple[int, bytes]:
    """Validate marker, length and checksum; return (frame_type, payload)."""
    if len(candidate) < OVERHEAD + 1:
        raise FrameTooShort(f"frame must be at least {OVERHEAD + 1} bytes")
    if candidate[0] != START_DELIMITER:
        raise LengthMismatch("frame does not start with the start delimiter")
    length = int.from_bytes(candidate[1:3], "big")
    if len(candidate) != length + OVERHEAD:
        raise LengthMismatch(f"frame length {len(candidate)} does not match LEN {length}")
    body = candidate[3:-1]
    expected = checksum(body)
    if expected != candidate[-1]:
        raise ChecksumMismatch(expected, candidate[-1])
    return body[0], bytes(body[1:])


def decode_frame(candidate: bytes) -> Frame:
    frame_type, payload = split_frame(candidate)
    cls = FRAME_REGISTRY.get(frame_type)
    if cls is None:
        raise UnknownFrameType(frame_type, payload)
    return cls.from_payload(payload)
