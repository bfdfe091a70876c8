"""
Typed frame variants of the XBee API protocol.

Each variant is a frozen dataclass carrying the fields that follow the frame
type byte. ``to_payload`` serialises those fields, ``from_payload`` parses them
back. Framing (start marker, length, checksum) lives in ``framing``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar

from xbeelink.protocol.errors import FrameTooShort, FrameValueError

BROADCAST_64 = 0x000000000000FFFF
UNKNOWN_16 = 0xFFFE


class FrameType(IntEnum):
    AT_COMMAND = 0x08
    AT_COMMAND_QUEUE_PARAM = 0x09
    TRANSMIT_REQUEST = 0x10
    EXPLICIT_ADDRESSING_COMMAND = 0x11
    REMOTE_AT_COMMAND_REQUEST = 0x17
    AT_COMMAND_RESPONSE = 0x88
    MODEM_STATUS = 0x8A
    TRANSMIT_STATUS = 0x8B
    RECEIVE_PACKET = 0x90
    EXPLICIT_RX_INDICATOR = 0x91
    NODE_IDENTIFICATION_INDICATOR = 0x95
    REMOTE_AT_COMMAND_RESPONSE = 0x97


class CommandStatus(IntEnum):
    OK = 0
    ERROR = 1
    INVALID_COMMAND = 2
    INVALID_PARAMETER = 3
    TX_FAILURE = 4


class ModemStatusCode(IntEnum):
    HARDWARE_RESET = 0x00
    WATCHDOG_RESET = 0x01
    JOINED_NETWORK = 0x02
    DISASSOCIATED = 0x03
    COORDINATOR_STARTED = 0x06
    NETWORK_WOKE_UP = 0x0B
    NETWORK_WENT_TO_SLEEP = 0x0C


def status_label(status: int) -> str:
    try:
        return CommandStatus(status).name
    except ValueError:
        return f"0x{status:02X}"


def _uint(value: int, width: int, name: str) -> bytes:
    if not (0 <= value < (1 << (8 * width))):
        raise FrameValueError(f"{name} must fit in {width * 8} bits")
    return int(value).to_bytes(width, "big")


def _at_command(command: bytes) -> bytes:
    if len(command) != 2:
        raise FrameValueError("AT command must be exactly 2 characters")
    try:
        command.decode("ascii")
    except UnicodeDecodeError as exc:
        raise FrameValueError("AT command must be ASCII") from exc
    return bytes(command)


def _require(payload: bytes, minimum: int, name: str) -> None:
    if len(payload) < minimum:
        raise FrameTooShort(f"{name} payload must be at least {minimum} bytes, got {len(payload)}")


def _be(data: bytes) -> int:
    return int.from_bytes(data, "big")


class Frame(ABC):
    frame_type: ClassVar[int]
    # True for variants whose first payload byte is a correlation frame ID.
    correlated: ClassVar[bool] = False

    @abstractmethod
    def to_payload(self) -> bytes:
        raise NotImplementedError

    @classmethod
    @abstractmethod
    def from_payload(cls, payload: bytes) -> "Frame":
        raise NotImplementedError


@dataclass(frozen=True)
class ATCommandRequest(Frame):
    command: bytes
    parameter: bytes = b""
    frame_id: int = 0

    frame_type: ClassVar[int] = FrameType.AT_COMMAND
    correlated: ClassVar[bool] = True

    def to_payload(self) -> bytes:
        return (
            _uint(self.frame_id, 1, "frame_id")
            + _at_command(self.command)
            + bytes(self.parameter)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "ATCommandRequest":
        _require(payload, 3, cls.__name__)
        return cls(command=bytes(payload[1:3]), parameter=bytes(payload[3:]), frame_id=payload[0])


@dataclass(frozen=True)
class ATCommandQueueParamRequest(ATCommandRequest):
    """Same layout as an AT command; the radio holds the value until applied."""

    frame_type: ClassVar[int] = FrameType.AT_COMMAND_QUEUE_PARAM


@dataclass(frozen=True)
class TransmitRequest(Frame):
    data: bytes
    dest64: int = BROADCAST_64
    dest16: int = UNKNOWN_16
    broadcast_radius: int = 0
    options: int = 0
    frame_id: int = 0

    frame_type: ClassVar[int] = FrameType.TRANSMIT_REQUEST
    correlated: ClassVar[bool] = True

    def to_payload(self) -> bytes:
        return (
            _uint(self.frame_id, 1, "frame_id")
            + _uint(self.dest64, 8, "dest64")
            + _uint(self.dest16, 2, "dest16")
            + _uint(self.broadcast_radius, 1, "broadcast_radius")
            + _uint(self.options, 1, "options")
            + bytes(self.data)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "TransmitRequest":
        _require(payload, 13, cls.__name__)
        return cls(
            data=bytes(payload[13:]),
            dest64=_be(payload[1:9]),
            dest16=_be(payload[9:11]),
            broadcast_radius=payload[11],
            options=payload[12],
            frame_id=payload[0],
        )


@dataclass(frozen=True)
class ExplicitAddressingCommandRequest(Frame):
    data: bytes
    dest64: int = BROADCAST_64
    dest16: int = UNKNOWN_16
    source_endpoint: int = 0xE8
    dest_endpoint: int = 0xE8
    cluster_id: int = 0x0011
    profile_id: int = 0xC105
    broadcast_radius: int = 0
    options: int = 0
    frame_id: int = 0

    frame_type: ClassVar[int] = FrameType.EXPLICIT_ADDRESSING_COMMAND
    correlated: ClassVar[bool] = True

    def to_payload(self) -> bytes:
        return (
            _uint(self.frame_id, 1, "frame_id")
            + _uint(self.dest64, 8, "dest64")
            + _uint(self.dest16, 2, "dest16")
            + _uint(self.source_endpoint, 1, "source_endpoint")
            + _uint(self.dest_endpoint, 1, "dest_endpoint")
            + _uint(self.cluster_id, 2, "cluster_id")
            + _uint(self.profile_id, 2, "profile_id")
            + _uint(self.broadcast_radius, 1, "broadcast_radius")
            + _uint(self.options, 1, "options")
            + bytes(self.data)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "ExplicitAddressingCommandRequest":
        _require(payload, 19, cls.__name__)
        return cls(
            data=bytes(payload[19:]),
            dest64=_be(payload[1:9]),
            dest16=_be(payload[9:11]),
            source_endpoint=payload[11],
            dest_endpoint=payload[12],
            cluster_id=_be(payload[13:15]),
            profile_id=_be(payload[15:17]),
            broadcast_radius=payload[17],
            options=payload[18],
            frame_id=payload[0],
        )


@dataclass(frozen=True)
class RemoteATCommandRequest(Frame):
    command: bytes
    parameter: bytes = b""
    dest64: int = BROADCAST_64
    dest16: int = UNKNOWN_16
    remote_options: int = 0x02
    frame_id: int = 0

    frame_type: ClassVar[int] = FrameType.REMOTE_AT_COMMAND_REQUEST
    correlated: ClassVar[bool] = True

    def to_payload(self) -> bytes:
        return (
            _uint(self.frame_id, 1, "frame_id")
            + _uint(self.dest64, 8, "dest64")
            + _uint(self.dest16, 2, "dest16")
            + _uint(self.remote_options, 1, "remote_options")
            + _at_command(self.command)
            + bytes(self.parameter)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "RemoteATCommandRequest":
        _require(payload, 14, cls.__name__)
        return cls(
            command=bytes(payload[12:14]),
            parameter=bytes(payload[14:]),
            dest64=_be(payload[1:9]),
            dest16=_be(payload[9:11]),
            remote_options=payload[11],
            frame_id=payload[0],
        )


@dataclass(frozen=True)
class ATCommandResponse(Frame):
    command: bytes
    status: int = CommandStatus.OK
    data: bytes = b""
    frame_id: int = 0

    frame_type: ClassVar[int] = FrameType.AT_COMMAND_RESPONSE
    correlated: ClassVar[bool] = True

    @property
    def ok(self) -> bool:
        return self.status == CommandStatus.OK

    def to_payload(self) -> bytes:
        return (
            _uint(self.frame_id, 1, "frame_id")
            + _at_command(self.command)
            + _uint(self.status, 1, "status")
            + bytes(self.data)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "ATCommandResponse":
        _require(payload, 4, cls.__name__)
        return cls(
            command=bytes(payload[1:3]),
            status=payload[3],
            data=bytes(payload[4:]),
            frame_id=payload[0],
        )


@dataclass(frozen=True)
class ModemStatus(Frame):
    status: int

    frame_type: ClassVar[int] = FrameType.MODEM_STATUS

    @property
    def code(self) -> ModemStatusCode | None:
        try:
            return ModemStatusCode(self.status)
        except ValueError:
            return None

    def to_payload(self) -> bytes:
        return _uint(self.status, 1, "status")

    @classmethod
    def from_payload(cls, payload: bytes) -> "ModemStatus":
        _require(payload, 1, cls.__name__)
        return cls(status=payload[0])


@dataclass(frozen=True)
class TransmitStatus(Frame):
    dest16: int
    retry_count: int
    delivery_status: int
    discovery_status: int
    frame_id: int = 0

    frame_type: ClassVar[int] = FrameType.TRANSMIT_STATUS
    correlated: ClassVar[bool] = True

    @property
    def delivered(self) -> bool:
        return self.delivery_status == 0

    def to_payload(self) -> bytes:
        return (
            _uint(self.frame_id, 1, "frame_id")
            + _uint(self.dest16, 2, "dest16")
            + _uint(self.retry_count, 1, "retry_count")
            + _uint(self.delivery_status, 1, "delivery_status")
            + _uint(self.discovery_status, 1, "discovery_status")
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "TransmitStatus":
        _require(payload, 6, cls.__name__)
        return cls(
            dest16=_be(payload[1:3]),
            retry_count=payload[3],
            delivery_status=payload[4],
            discovery_status=payload[5],
            frame_id=payload[0],
        )


@dataclass(frozen=True)
class ReceivePacket(Frame):
    source64: int
    source16: int
    options: int
    data: bytes

    frame_type: ClassVar[int] = FrameType.RECEIVE_PACKET

    def to_payload(self) -> bytes:
        return (
            _uint(self.source64, 8, "source64")
            + _uint(self.source16, 2, "source16")
            + _uint(self.options, 1, "options")
            + bytes(self.data)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "ReceivePacket":
        _require(payload, 11, cls.__name__)
        return cls(
            source64=_be(payload[0:8]),
            source16=_be(payload[8:10]),
            options=payload[10],
            data=bytes(payload[11:]),
        )


@dataclass(frozen=True)
class ExplicitRxIndicator(Frame):
    source64: int
    source16: int
    source_endpoint: int
    dest_endpoint: int
    cluster_id: int
    profile_id: int
    options: int
    data: bytes

    frame_type: ClassVar[int] = FrameType.EXPLICIT_RX_INDICATOR

    def to_payload(self) -> bytes:
        return (
            _uint(self.source64, 8, "source64")
            + _uint(self.source16, 2, "source16")
            + _uint(self.source_endpoint, 1, "source_endpoint")
            + _uint(self.dest_endpoint, 1, "dest_endpoint")
            + _uint(self.cluster_id, 2, "cluster_id")
            + _uint(self.profile_id, 2, "profile_id")
            + _uint(self.options, 1, "options")
            + bytes(self.data)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "ExplicitRxIndicator":
        _require(payload, 17, cls.__name__)
        return cls(
            source64=_be(payload[0:8]),
            source16=_be(payload[8:10]),
            source_endpoint=payload[10],
            dest_endpoint=payload[11],
            cluster_id=_be(payload[12:14]),
            profile_id=_be(payload[14:16]),
            options=payload[16],
            data=bytes(payload[17:]),
        )


@dataclass(frozen=True)
class NodeIdentificationIndicator(Frame):
    """
    Node identification payload kept as an opaque blob.

    ``details`` is filled by the node-discovery decoder registered on the
    dispatcher, if any; it takes no part in equality.
    """

    data: bytes
    details: Any = field(default=None, compare=False)

    frame_type: ClassVar[int] = FrameType.NODE_IDENTIFICATION_INDICATOR

    def to_payload(self) -> bytes:
        return bytes(self.data)

    @classmethod
    def from_payload(cls, payload: bytes) -> "NodeIdentificationIndicator":
        return cls(data=bytes(payload))


@dataclass(frozen=True)
class RemoteATCommandResponse(Frame):
    source64: int
    source16: int
    command: bytes
    status: int = CommandStatus.OK
    data: bytes = b""
    frame_id: int = 0

    frame_type: ClassVar[int] = FrameType.REMOTE_AT_COMMAND_RESPONSE
    correlated: ClassVar[bool] = True

    @property
    def ok(self) -> bool:
        return self.status == CommandStatus.OK

    def to_payload(self) -> bytes:
        return (
            _uint(self.frame_id, 1, "frame_id")
            + _uint(self.source64, 8, "source64")
            + _uint(self.source16, 2, "source16")
            + _at_command(self.command)
            + _uint(self.status, 1, "status")
            + bytes(self.data)
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> "RemoteATCommandResponse":
        _require(payload, 14, cls.__name__)
        return cls(
            source64=_be(payload[1:9]),
            source16=_be(payload[9:11]),
            command=bytes(payload[11:13]),
            status=payload[13],
            data=bytes(payload[14:]),
            frame_id=payload[0],
        )


@dataclass(frozen=True)
class UnknownFrame:
    """A frame whose type byte is outside the supported set."""

    frame_type: int
    data: bytes


OUTBOUND_TYPES = (
    ATCommandRequest,
    ATCommandQueueParamRequest,
    TransmitRequest,
    ExplicitAddressingCommandRequest,
    RemoteATCommandRequest,
)

INBOUND_TYPES = (
    ATCommandResponse,
    ModemStatus,
    TransmitStatus,
    ReceivePacket,
    ExplicitRxIndicator,
    NodeIdentificationIndicator,
    RemoteATCommandResponse,
)
