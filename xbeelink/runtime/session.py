from __future__ import annotations

import dataclasses
import threading
from typing import Dict, List

from xbeelink.protocol.errors import (
    ChannelBusy,
    CommandRejected,
    ResponseTimeout,
    TransportUnavailable,
)
from xbeelink.protocol.frames import Frame
from xbeelink.protocol.framing import encode_frame
from xbeelink.runtime.logging import EventLogger, NullLogger
from xbeelink.transport.base import ITransport

MIN_FRAME_ID = 1
MAX_FRAME_ID = 255


class _Waiter:
    def __init__(self) -> None:
        self.event = threading.Event()
        self.response: Frame | None = None


class CorrelationTable:
    """Frame ID -> waiter for synchronous exchanges. Fire-and-forget IDs are never stored."""

    def __init__(self) -> None:
        self._waiters: Dict[int, _Waiter] = {}
        self._lock = threading.Lock()

    def register(self, frame_id: int) -> _Waiter:
        waiter = _Waiter()
        with self._lock:
            self._waiters[frame_id] = waiter
        return waiter

    def discard(self, frame_id: int) -> None:
        with self._lock:
            self._waiters.pop(frame_id, None)

    def resolve(self, frame_id: int, response: Frame) -> bool:
        with self._lock:
            waiter = self._waiters.pop(frame_id, None)
        if waiter is None:
            return False
        waiter.response = response
        waiter.event.set()
        return True

    def pending_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._waiters)


class SessionManager:
    """
    Frame ID allocation and request/response correlation over one transport.

    Only one synchronous exchange may be outstanding. While it is, sends from
    any other thread fail with ChannelBusy; the reader context keeps feeding
    the dispatcher, which resolves the waiter through ``resolve``.
    """

    def __init__(self, logger: EventLogger | None = None) -> None:
        self._logger = logger or NullLogger()
        self._transport: ITransport | None = None
        self._counter = MIN_FRAME_ID
        self._id_lock = threading.Lock()
        self._write_lock = threading.RLock()
        self._sync_lock = threading.Lock()
        self._sync_owner: int | None = None
        self.table = CorrelationTable()

    @property
    def transport(self) -> ITransport | None:
        return self._transport

    def attach(self, transport: ITransport) -> None:
        self._transport = transport

    def detach(self) -> None:
        self._transport = None

    def next_id(self) -> int:
        with self._id_lock:
            frame_id = self._counter
            self._counter = MIN_FRAME_ID if self._counter >= MAX_FRAME_ID else self._counter + 1
        return frame_id

    def _check_channel(self) -> None:
        owner = self._sync_owner
        if owner is not None and owner != threading.get_ident():
            raise ChannelBusy("a synchronous exchange is in progress")

    def _write(self, data: bytes) -> None:
        with self._write_lock:
            transport = self._transport
            if transport is None or not transport.is_open:
                self._logger.log_event("write_refused", {"bytes": len(data)})
                raise TransportUnavailable("no open transport attached")
            transport.write(data)
            transport.flush()

    def _stamp(self, frame: Frame) -> Frame:
        if not frame.correlated:
            return frame
        return dataclasses.replace(frame, frame_id=self.next_id())  # type: ignore[type-var]

    def _send(self, frame: Frame) -> None:
        wire = encode_frame(frame)
        self._write(wire)
        self._logger.log_event(
            "frame_tx",
            {
                "frame": type(frame).__name__,
                "frame_id": getattr(frame, "frame_id", None),
                "hex": wire.hex(),
            },
        )

    def send_async(self, frame: Frame) -> int:
        """Assign an ID, write the frame and return the ID (0 for uncorrelated frames)."""
        self._check_channel()
        if self._transport is None:
            raise TransportUnavailable("no open transport attached")
        stamped = self._stamp(frame)
        self._send(stamped)
        return getattr(stamped, "frame_id", 0)

    def send_sync(self, frame: Frame, timeout_ms: int) -> Frame:
        if not frame.correlated:
            raise ValueError(f"{type(frame).__name__} cannot be correlated with a response")
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        if not self._sync_lock.acquire(blocking=False):
            raise ChannelBusy("a synchronous exchange is already outstanding")
        try:
            self._sync_owner = threading.get_ident()
            if self._transport is None:
                raise TransportUnavailable("no open transport attached")
            stamped = self._stamp(frame)
            frame_id = stamped.frame_id  # type: ignore[attr-defined]
            waiter = self.table.register(frame_id)
            try:
                self._send(stamped)
                if not waiter.event.wait(timeout_ms / 1000.0):
                    raise ResponseTimeout(frame_id, timeout_ms)
            finally:
                self.table.discard(frame_id)
        finally:
            self._sync_owner = None
            self._sync_lock.release()
        response = waiter.response
        assert response is not None
        if getattr(response, "ok", True) is False:
            raise CommandRejected(response)
        return response

    def send_raw(self, data: bytes) -> None:
        self._check_channel()
        self._write(bytes(data))
        self._logger.log_event("raw_tx", {"bytes": len(data)})

    def resolve(self, response: Frame) -> bool:
        frame_id = getattr(response, "frame_id", 0)
        if not frame_id:
            return False
        return self.table.resolve(frame_id, response)

    def pending_ids(self) -> List[int]:
        return self.table.pending_ids()

    def busy(self) -> bool:
        return self._sync_owner is not None
