from __future__ import annotations

import dataclasses
from typing import Any, Callable

from xbeelink.protocol.decoder import decode_frame
from xbeelink.protocol.errors import ChecksumMismatch, FrameError, UnknownFrameType
from xbeelink.protocol.frames import (
    ATCommandResponse,
    Frame,
    NodeIdentificationIndicator,
    RemoteATCommandResponse,
    TransmitStatus,
    UnknownFrame,
)
from xbeelink.runtime.addressing import AddressingStateStore
from xbeelink.runtime.events import Observers
from xbeelink.runtime.logging import EventLogger, NullLogger
from xbeelink.runtime.session import SessionManager

NodeDecoder = Callable[[bytes], Any]

NODE_DISCOVERY_COMMAND = b"ND"
RESPONSE_TYPES = (ATCommandResponse, RemoteATCommandResponse, TransmitStatus)


class Dispatcher:
    """
    Decodes candidate frames and routes them.

    AT command responses go to the session (waiter resolution), then to the
    addressing store. Every decoded frame, and every unknown one as an
    ``UnknownFrame``, is then emitted on ``observers`` keyed by its class.
    Framing errors are logged and skipped; they never stop the stream.
    """

    def __init__(
        self,
        session: SessionManager,
        store: AddressingStateStore,
        observers: Observers | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._session = session
        self._store = store
        self._logger = logger or NullLogger()
        self.observers = observers or Observers(self._logger)
        self._node_decoder: NodeDecoder | None = None

    def set_node_decoder(self, decoder: NodeDecoder | None) -> None:
        self._node_decoder = decoder

    def _decode_node(self, data: bytes) -> Any:
        if self._node_decoder is None or not data:
            return None
        try:
            return self._node_decoder(data)
        except Exception as exc:
            self._logger.log_event(
                "node_decoder_failed",
                {"error": type(exc).__name__, "reason": str(exc), "hex": data.hex()},
            )
            return None

    def dispatch(self, candidate: bytes) -> Frame | UnknownFrame | None:
        try:
            frame = decode_frame(candidate)
        except ChecksumMismatch as exc:
            self._logger.log_event(
                "checksum_mismatch",
                {"expected": exc.expected, "actual": exc.actual, "hex": candidate.hex()},
            )
            return None
        except UnknownFrameType as exc:
            self._logger.log_event(
                "unknown_frame_type",
                {"frame_type": exc.frame_type, "hex": exc.payload.hex()},
            )
            unknown = UnknownFrame(frame_type=exc.frame_type, data=exc.payload)
            self.observers.emit(UnknownFrame, unknown)
            return unknown
        except FrameError as exc:
            self._logger.log_event("malformed_frame", {"reason": str(exc), "hex": candidate.hex()})
            return None

        self._logger.log_event(
            "frame_rx",
            {
                "frame": type(frame).__name__,
                "frame_id": getattr(frame, "frame_id", None),
                "hex": candidate.hex(),
            },
        )

        if isinstance(frame, NodeIdentificationIndicator):
            frame = dataclasses.replace(frame, details=self._decode_node(frame.data))

        if isinstance(frame, RESPONSE_TYPES):
            self._session.resolve(frame)

        if isinstance(frame, ATCommandResponse):
            self._route_at_response(frame)

        self.observers.emit(type(frame), frame)
        return frame

    def _route_at_response(self, response: ATCommandResponse) -> None:
        if self._store.apply_response(response):
            return
        if response.command == NODE_DISCOVERY_COMMAND:
            if response.ok:
                details = self._decode_node(response.data)
                if details is not None:
                    self.observers.emit(NODE_DISCOVERY_COMMAND, details)
            return
        name = response.command.decode("ascii", errors="replace")
        if response.ok and name.upper() not in ("AP", "HV") and response.data:
            self._logger.log_event(
                "unhandled_at_command", {"command": name, "hex": response.data.hex()}
            )
