from __future__ import annotations

from xbeelink.protocol.framing import HEADER_SIZE, OVERHEAD, START_DELIMITER

CARRIAGE_RETURN = 0x0D


class StreamReassembler:
    """
    Extracts candidate API frames from a byte stream.

    Bytes ahead of the start delimiter are dropped. A candidate is returned as
    soon as the declared length is buffered; checksum validation is left to the
    decoder so that a corrupt frame never stalls the stream.
    """

    def __init__(self) -> None:
        self._buf = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        if data:
            self._buf.extend(data)
        frames: list[bytes] = []
        while True:
            start = self._buf.find(START_DELIMITER)
            if start < 0:
                self._buf.clear()
                return frames
            if start > 0:
                del self._buf[:start]
            if len(self._buf) < HEADER_SIZE:
                return frames
            length = int.from_bytes(self._buf[1:3], "big")
            total_len = length + OVERHEAD
            if len(self._buf) < total_len:
                return frames
            frames.append(bytes(self._buf[:total_len]))
            del self._buf[:total_len]

    def buffered_bytes(self) -> int:
        return len(self._buf)

    def reset(self) -> None:
        self._buf.clear()


class LineAssembler:
    """Transparent mode: buffer until the terminator arrives, then emit everything."""

    def __init__(self, terminator: int = CARRIAGE_RETURN) -> None:
        if not (0 <= terminator <= 0xFF):
            raise ValueError("terminator must be 0..255")
        self._terminator = int(terminator)
        self._buf = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        if data:
            self._buf.extend(data)
        if self._buf and self._buf[-1] == self._terminator:
            line = bytes(self._buf)
            self._buf.clear()
            return [line]
        return []

    def buffered_bytes(self) -> int:
        return len(self._buf)

    def reset(self) -> None:
        self._buf.clear()
