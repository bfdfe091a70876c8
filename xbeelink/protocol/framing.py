"""
API-mode wire framing.

Wire format:
  0x7E | LEN(2B, big-endian) | TYPE(1B) | PAYLOAD(LEN-1 bytes) | CHECKSUM(1B)

LEN counts TYPE and PAYLOAD only. CHECKSUM = 0xFF - (sum(TYPE + PAYLOAD) & 0xFF).
"""

from __future__ import annotations

from xbeelink.protocol.errors import FrameValueError
from xbeelink.protocol.frames import ATCommandQueueParamRequest, ATCommandRequest, Frame

START_DELIMITER = 0x7E
HEADER_SIZE = 3  # marker + 2 length bytes
OVERHEAD = HEADER_SIZE + 1  # plus checksum
MAX_BODY_BYTES = 0xFFFF


def checksum(body: bytes) -> int:
    return 0xFF - (sum(body) & 0xFF)


def frame_bytes(frame_type: int, payload: bytes) -> bytes:
    if not (0 <= frame_type <= 0xFF):
        raise FrameValueError("frame type must be 0..255")
    body = bytes([frame_type]) + bytes(payload)
    if len(body) > MAX_BODY_BYTES:
        raise FrameValueError(f"frame body length {len(body)} exceeds {MAX_BODY_BYTES}")
    return bytes([START_DELIMITER]) + len(body).to_bytes(2, "big") + body + bytes([checksum(body)])


def encode_frame(frame: Frame) -> bytes:
    return frame_bytes(frame.frame_type, frame.to_payload())


def _command_bytes(command: str | bytes) -> bytes:
    if isinstance(command, str):
        try:
            return command.upper().encode("ascii")
        except UnicodeEncodeError as exc:
            raise FrameValueError("AT command must be ASCII") from exc
    return bytes(command)


def make_at_command(
    command: str | bytes,
    parameter: bytes = b"",
    *,
    frame_id: int = 0,
    queued: bool = False,
) -> ATCommandRequest:
    cls = ATCommandQueueParamRequest if queued else ATCommandRequest
    return cls(command=_command_bytes(command), parameter=bytes(parameter), frame_id=frame_id)
