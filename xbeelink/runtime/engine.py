from __future__ import annotations

import threading
from typing import Any, Callable, List, Type, Union

from xbeelink.config.enginespec import EngineSpec
from xbeelink.protocol.errors import TransportUnavailable
from xbeelink.protocol.frames import (
    ATCommandResponse,
    Frame,
    RemoteATCommandRequest,
    RemoteATCommandResponse,
    TransmitRequest,
    UnknownFrame,
)
from xbeelink.protocol.framing import make_at_command
from xbeelink.runtime.addressing import (
    PARAMETERS,
    AddressingState,
    AddressingStateStore,
    parameter_spec,
)
from xbeelink.runtime.dispatcher import NODE_DISCOVERY_COMMAND, Dispatcher, NodeDecoder
from xbeelink.runtime.events import Observers
from xbeelink.runtime.logging import EventLogger, NullLogger
from xbeelink.runtime.mode import Mode, ModeController, StartupReport, StartupState
from xbeelink.runtime.session import SessionManager
from xbeelink.transport.base import ITransport

RAW_DATA = "raw"

FrameClass = Union[Type[Frame], Type[UnknownFrame]]


def _address64(address: int | bytes) -> int:
    if isinstance(address, (bytes, bytearray)):
        if len(address) != 8:
            raise ValueError("64-bit address must be 8 bytes")
        return int.from_bytes(address, "big")
    return int(address)


class XBeeEngine:
    """
    Protocol engine for one radio module.

    Inbound bytes arrive through ``on_bytes_available`` (registered on the
    transport by ``attach``) and are reassembled, decoded and dispatched on
    that same context. Outbound commands go through the session manager.
    """

    def __init__(
        self,
        spec: EngineSpec | None = None,
        *,
        logger: EventLogger | None = None,
    ) -> None:
        self._spec = spec or EngineSpec(session_id="xbee")
        self._logger = logger or NullLogger()
        self._configured_mode = Mode(self._spec.mode)
        self._observers = Observers(self._logger)
        self._session = SessionManager(self._logger)
        self._store = AddressingStateStore(self._logger)
        self._modes = ModeController(
            self._configured_mode, terminator=self._spec.framing.terminator, logger=self._logger
        )
        self._dispatcher = Dispatcher(self._session, self._store, self._observers, self._logger)
        self._rx_lock = threading.RLock()
        self._transport: ITransport | None = None

    # -- wiring -------------------------------------------------------------

    @property
    def spec(self) -> EngineSpec:
        return self._spec

    @property
    def logger(self) -> EventLogger:
        return self._logger

    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def mode(self) -> Mode:
        return self._modes.mode

    @property
    def startup_state(self) -> StartupState:
        return self._modes.startup_state

    @property
    def transport(self) -> ITransport | None:
        return self._transport

    def set_mode(self, mode: Mode) -> None:
        with self._rx_lock:
            self._modes.set_mode(mode)

    def attach(
        self, transport: ITransport, startup_check: bool | None = None
    ) -> StartupReport | None:
        if not transport.is_open:
            raise TransportUnavailable("transport is not open")
        if self._transport is not None:
            self.detach()
        with self._rx_lock:
            self._modes.reset()
            self._modes.set_mode(self._configured_mode)
        self._transport = transport
        self._session.attach(transport)
        transport.set_bytes_available(self.on_bytes_available)
        transport.start()
        run_check = self._spec.session.startup_check if startup_check is None else startup_check
        if run_check:
            return self.startup_check()
        return None

    def detach(self) -> None:
        transport = self._transport
        if transport is None:
            return
        transport.set_bytes_available(None)
        transport.stop()
        self._session.detach()
        self._transport = None

    def close(self) -> None:
        transport = self._transport
        self.detach()
        if transport is not None:
            transport.close()

    def startup_check(self, timeout_ms: int | None = None) -> StartupReport:
        timeout = timeout_ms or self._spec.session.sync_timeout_ms
        return self._modes.run_startup_check(
            lambda request: self._session.send_sync(request, timeout)
        )

    def on_bytes_available(self) -> None:
        transport = self._transport
        if transport is None:
            return
        data = transport.read_all()
        if not data:
            return
        with self._rx_lock:
            mode, chunks = self._modes.feed(data)
            for chunk in chunks:
                if mode is Mode.API:
                    self._dispatcher.dispatch(chunk)
                else:
                    self._logger.log_event("raw_rx", {"bytes": len(chunk)})
                    self._observers.emit(RAW_DATA, chunk)

    # -- notifications ------------------------------------------------------

    def subscribe(self, frame_type: FrameClass, callback: Callable[[Any], None]) -> None:
        self._observers.subscribe(frame_type, callback)

    def unsubscribe(self, frame_type: FrameClass, callback: Callable[[Any], None]) -> bool:
        return self._observers.unsubscribe(frame_type, callback)

    def subscribe_raw(self, callback: Callable[[bytes], None]) -> None:
        self._observers.subscribe(RAW_DATA, callback)

    def subscribe_node_discovery(self, callback: Callable[[Any], None]) -> None:
        self._observers.subscribe(NODE_DISCOVERY_COMMAND, callback)

    def subscribe_parameter(self, name: str, callback: Callable[[Any], None]) -> None:
        self._store.subscribe(name, callback)

    def unsubscribe_parameter(self, name: str, callback: Callable[[Any], None]) -> bool:
        return self._store.unsubscribe(name, callback)

    def set_node_decoder(self, decoder: NodeDecoder | None) -> None:
        self._dispatcher.set_node_decoder(decoder)

    # -- state --------------------------------------------------------------

    @property
    def state(self) -> AddressingState:
        return self._store.snapshot()

    def parameter(self, name: str) -> int | str:
        return self._store.get(name)

    # -- commands -----------------------------------------------------------

    def send_async(self, frame: Frame) -> int:
        return self._session.send_async(frame)

    def send_sync(self, frame: Frame, timeout_ms: int | None = None) -> Frame:
        return self._session.send_sync(frame, timeout_ms or self._spec.session.sync_timeout_ms)

    def send_at_command_async(
        self, command: str | bytes, parameter: bytes = b"", *, queued: bool = False
    ) -> int:
        return self.send_async(make_at_command(command, parameter, queued=queued))

    def send_at_command_sync(
        self, command: str | bytes, parameter: bytes = b"", timeout_ms: int | None = None
    ) -> ATCommandResponse:
        return self.send_sync(make_at_command(command, parameter), timeout_ms)  # type: ignore[return-value]

    def send_remote_at_command_sync(
        self,
        address: int | bytes,
        command: str | bytes,
        parameter: bytes = b"",
        timeout_ms: int | None = None,
    ) -> RemoteATCommandResponse:
        local = make_at_command(command, parameter)
        request = RemoteATCommandRequest(
            command=local.command, parameter=local.parameter, dest64=_address64(address)
        )
        return self.send_sync(request, timeout_ms)  # type: ignore[return-value]

    def broadcast(self, text: str) -> int:
        return self.send_async(TransmitRequest(data=text.encode("latin-1")))

    def unicast(self, address: int | bytes, text: str) -> int:
        request = TransmitRequest(data=text.encode("latin-1"), dest64=_address64(address))
        return self.send_async(request)

    def send_raw(self, text: str | bytes) -> None:
        data = text.encode("latin-1") if isinstance(text, str) else bytes(text)
        self._session.send_raw(data)

    def load_addressing_properties(self) -> List[int]:
        return [self.send_at_command_async(spec.name) for spec in PARAMETERS]

    def set_parameter(self, name: str, value: int | str) -> int:
        spec = parameter_spec(name)
        return self.send_at_command_async(spec.name, spec.encode(value))

    def set_dh(self, value: int) -> int:
        return self.set_parameter("DH", value)

    def set_dl(self, value: int) -> int:
        return self.set_parameter("DL", value)

    def set_my(self, value: int) -> int:
        return self.set_parameter("MY", value)

    def set_mp(self, value: int) -> int:
        return self.set_parameter("MP", value)

    def set_nc(self, value: int) -> int:
        return self.set_parameter("NC", value)

    def set_sh(self, value: int) -> int:
        return self.set_parameter("SH", value)

    def set_sl(self, value: int) -> int:
        return self.set_parameter("SL", value)

    def set_ni(self, value: str) -> int:
        return self.set_parameter("NI", value)

    def set_se(self, value: int) -> int:
        return self.set_parameter("SE", value)

    def set_de(self, value: int) -> int:
        return self.set_parameter("DE", value)

    def set_ci(self, value: int) -> int:
        return self.set_parameter("CI", value)

    def set_to(self, value: int) -> int:
        return self.set_parameter("TO", value)

    def set_np(self, value: int) -> int:
        return self.set_parameter("NP", value)

    def set_dd(self, value: int) -> int:
        return self.set_parameter("DD", value)

    def set_cr(self, value: int) -> int:
        return self.set_parameter("CR", value)
