from xbeelink.protocol.decoder import FRAME_REGISTRY, decode_frame, split_frame
from xbeelink.protocol.errors import (
    ChannelBusy,
    ChecksumMismatch,
    CommandRejected,
    EngineError,
    FrameError,
    FrameTooShort,
    FrameValueError,
    LengthMismatch,
    ResponseTimeout,
    TransportUnavailable,
    UnknownFrameType,
)
from xbeelink.protocol.frames import (
    ATCommandQueueParamRequest,
    ATCommandRequest,
    ATCommandResponse,
    CommandStatus,
    ExplicitAddressingCommandRequest,
    ExplicitRxIndicator,
    Frame,
    FrameType,
    ModemStatus,
    NodeIdentificationIndicator,
    ReceivePacket,
    RemoteATCommandRequest,
    RemoteATCommandResponse,
    TransmitRequest,
    TransmitStatus,
    UnknownFrame,
)
from xbeelink.protocol.framing import checksum, encode_frame, frame_bytes, make_at_command
from xbeelink.protocol.reassembly import LineAssembler, StreamReassembler

__all__ = [
    "ATCommandQueueParamRequest",
    "ATCommandRequest",
    "ATCommandResponse",
    "ChannelBusy",
    "ChecksumMismatch",
    "CommandRejected",
    "CommandStatus",
    "EngineError",
    "ExplicitAddressingCommandRequest",
    "ExplicitRxIndicator",
    "FRAME_REGISTRY",
    "Frame",
    "FrameError",
    "FrameTooShort",
    "FrameType",
    "FrameValueError",
    "LengthMismatch",
    "LineAssembler",
    "ModemStatus",
    "NodeIdentificationIndicator",
    "ReceivePacket",
    "RemoteATCommandRequest",
    "RemoteATCommandResponse",
    "ResponseTimeout",
    "StreamReassembler",
    "TransmitRequest",
    "TransmitStatus",
    "TransportUnavailable",
    "UnknownFrame",
    "UnknownFrameType",
    "checksum",
    "decode_frame",
    "encode_frame",
    "frame_bytes",
    "make_at_command",
    "split_frame",
]
