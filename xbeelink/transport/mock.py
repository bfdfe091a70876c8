from __future__ import annotations

import random
import threading
from typing import Callable, Dict, List, Mapping

from xbeelink.protocol.decoder import decode_frame
from xbeelink.protocol.errors import FrameError
from xbeelink.protocol.frames import (
    ATCommandQueueParamRequest,
    ATCommandRequest,
    ATCommandResponse,
    CommandStatus,
    ExplicitAddressingCommandRequest,
    RemoteATCommandRequest,
    RemoteATCommandResponse,
    TransmitRequest,
    TransmitStatus,
)
from xbeelink.protocol.framing import encode_frame
from xbeelink.protocol.reassembly import StreamReassembler
from xbeelink.transport.base import BytesAvailable, ITransport

Responder = Callable[[bytes], bytes | None]

DEFAULT_RADIO_PARAMETERS: Dict[str, bytes] = {
    "AP": b"\x01",
    "HV": b"\x17\x44",
    "DH": b"\x00\x13\xa2\x00",
    "DL": b"\x40\x52\x2b\xaa",
    "MY": b"\xff\xfe",
    "MP": b"\xff\xfe",
    "NC": b"\x14",
    "SH": b"\x00\x13\xa2\x00",
    "SL": b"\x40\x52\x2b\xbb",
    "NI": b"MOCK",
    "SE": b"\xe8",
    "DE": b"\xe8",
    "CI": b"\x00\x11",
    "TO": b"\x40",
    "NP": b"\x00\x49",
    "DD": b"\x00\x0c\x00\x00",
    "CR": b"\x03",
}


class _LossModel:
    def __init__(self, loss_rate: float, seed: int, drop_pattern: List[bool] | None) -> None:
        self._rng = random.Random(seed)
        self._loss_rate = loss_rate
        self._drop_pattern = drop_pattern
        self._counter = 0

    def should_drop(self) -> bool:
        if self._drop_pattern:
            drop = self._drop_pattern[self._counter % len(self._drop_pattern)]
            self._counter += 1
            return drop
        return self._rng.random() < self._loss_rate


class MockRadio:
    """
    Answers API frames the way a module with AP=1 does.

    Local AT queries return the stored value, sets store it and return an empty
    OK, unknown commands return INVALID_COMMAND. Frames with frame_id 0 get no
    response. Transmit requests are acknowledged with a delivered TransmitStatus.
    """

    def __init__(self, parameters: Mapping[str, bytes] | None = None) -> None:
        self.parameters: Dict[str, bytes] = dict(
            DEFAULT_RADIO_PARAMETERS if parameters is None else parameters
        )
        self.received: list = []
        self._reassembler = StreamReassembler()

    def __call__(self, data: bytes) -> bytes | None:
        replies = bytearray()
        for candidate in self._reassembler.feed(data):
            try:
                frame = decode_frame(candidate)
            except FrameError:
                continue
            self.received.append(frame)
            reply = self._reply(frame)
            if reply is not None:
                replies.extend(encode_frame(reply))
        return bytes(replies) or None

    def _at(self, command: bytes, parameter: bytes) -> tuple[int, bytes]:
        name = command.decode("ascii", errors="replace").upper()
        if parameter:
            self.parameters[name] = bytes(parameter)
            return CommandStatus.OK, b""
        if name not in self.parameters:
            return CommandStatus.INVALID_COMMAND, b""
        return CommandStatus.OK, self.parameters[name]

    def _reply(self, frame):  # type: ignore[no-untyped-def]
        if isinstance(frame, (ATCommandRequest, ATCommandQueueParamRequest)):
            if frame.frame_id == 0:
                if frame.parameter:
                    self._at(frame.command, frame.parameter)
                return None
            status, data = self._at(frame.command, frame.parameter)
            return ATCommandResponse(
                command=frame.command, status=status, data=data, frame_id=frame.frame_id
            )
        if isinstance(frame, RemoteATCommandRequest):
            if frame.frame_id == 0:
                return None
            status, data = self._at(frame.command, frame.parameter)
            return RemoteATCommandResponse(
                source64=frame.dest64,
                source16=frame.dest16,
                command=frame.command,
                status=status,
                data=data,
                frame_id=frame.frame_id,
            )
        if isinstance(frame, (TransmitRequest, ExplicitAddressingCommandRequest)):
            if frame.frame_id == 0:
                return None
            return TransmitStatus(
                dest16=frame.dest16,
                retry_count=0,
                delivery_status=0,
                discovery_status=0,
                frame_id=frame.frame_id,
            )
        return None


class MockTransport(ITransport):
    """
    In-memory transport. Bytes handed to ``inject`` (or produced by the
    responder for a write) are buffered and announced through the
    bytes-available callback on the calling thread.
    """

    def __init__(
        self,
        responder: Responder | None = None,
        *,
        loss_rate: float = 0.0,
        seed: int = 0,
        drop_pattern: List[bool] | None = None,
    ) -> None:
        self._responder = responder
        self._loss = _LossModel(loss_rate, seed, drop_pattern)
        self._rx = bytearray()
        self._lock = threading.Lock()
        self._callback: BytesAvailable | None = None
        self._open = True
        self.writes: list[bytes] = []
        self.flush_count = 0

    @property
    def is_open(self) -> bool:
        return self._open

    def write(self, data: bytes) -> None:
        if not self._open:
            raise OSError("mock transport is closed")
        self.writes.append(bytes(data))
        if self._responder is None:
            return
        reply = self._responder(bytes(data))
        if reply and not self._loss.should_drop():
            self.inject(reply)

    def flush(self) -> None:
        self.flush_count += 1

    def inject(self, data: bytes) -> None:
        with self._lock:
            self._rx.extend(data)
        callback = self._callback
        if callback is not None:
            callback()

    def read_all(self) -> bytes:
        with self._lock:
            out = bytes(self._rx)
            self._rx.clear()
        return out

    def set_bytes_available(self, callback: BytesAvailable | None) -> None:
        self._callback = callback

    def stop(self) -> None:
        with self._lock:
            self._rx.clear()

    def close(self) -> None:
        self._open = False
        self._callback = None


def create_mock_radio_transport(
    parameters: Mapping[str, bytes] | None = None,
    *,
    loss_rate: float = 0.0,
    seed: int = 0,
    drop_pattern: List[bool] | None = None,
) -> tuple[MockTransport, MockRadio]:
    radio = MockRadio(parameters)
    transport = MockTransport(radio, loss_rate=loss_rate, seed=seed, drop_pattern=drop_pattern)
    return transport, radio
