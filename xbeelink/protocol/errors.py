from __future__ import annotations


class EngineError(Exception):
    pass


class FrameError(EngineError):
    pass


class FrameTooShort(FrameError):
    pass


class LengthMismatch(FrameError):
    pass


class ChecksumMismatch(FrameError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"checksum mismatch: expected 0x{expected:02X}, got 0x{actual:02X}")
        self.expected = expected
        self.actual = actual


class UnknownFrameType(FrameError):
    def __init__(self, frame_type: int, payload: bytes) -> None:
        super().__init__(f"unknown frame type 0x{frame_type:02X}")
        self.frame_type = frame_type
        self.payload = bytes(payload)


class FrameValueError(EngineError, ValueError):
    pass


class ResponseTimeout(EngineError, TimeoutError):
    def __init__(self, frame_id: int, timeout_ms: int) -> None:
        super().__init__(f"no response for frame_id {frame_id} within {timeout_ms} ms")
        self.frame_id = frame_id
        self.timeout_ms = timeout_ms


class CommandRejected(EngineError):
    def __init__(self, response) -> None:  # type: ignore[no-untyped-def]
        from xbeelink.protocol.frames import status_label

        command = response.command.decode("ascii", errors="replace")
        super().__init__(f"AT command {command} rejected: {status_label(response.status)}")
        self.response = response


class ChannelBusy(EngineError):
    pass


class TransportUnavailable(EngineError):
    pass
