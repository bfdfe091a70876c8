import pytest

from xbeelink.config.enginespec import EngineSpec
from xbeelink.protocol.errors import TransportUnavailable
from xbeelink.protocol.frames import (
    BROADCAST_64,
    ModemStatus,
    ReceivePacket,
    RemoteATCommandResponse,
    TransmitRequest,
    TransmitStatus,
)
from xbeelink.protocol.framing import encode_frame
from xbeelink.runtime.engine import XBeeEngine
from xbeelink.runtime.logging import MemoryLogger
from xbeelink.runtime.mode import Mode, StartupState
from xbeelink.transport.mock import (
    DEFAULT_RADIO_PARAMETERS,
    MockTransport,
    create_mock_radio_transport,
)


def _spec(mode: str = "TRANSPARENT", **session) -> EngineSpec:
    return EngineSpec.from_dict(
        {"session_id": "engine_test", "mode": mode, "session": {"sync_timeout_ms": 200, **session}}
    )


def test_attach_runs_startup_check() -> None:
    logger = MemoryLogger()
    engine = XBeeEngine(_spec(), logger=logger)
    transport, radio = create_mock_radio_transport()
    report = engine.attach(transport)
    assert report is not None
    assert report.state is StartupState.VERIFIED
    assert engine.startup_state is StartupState.VERIFIED
    assert engine.mode is Mode.API
    assert [frame.command for frame in radio.received] == [b"AP", b"HV"]
    assert "startup_check" in logger.names()


def test_attach_forces_api_mode() -> None:
    params = dict(DEFAULT_RADIO_PARAMETERS, AP=b"\x00")
    engine = XBeeEngine(_spec())
    transport, radio = create_mock_radio_transport(params)
    report = engine.attach(transport)
    assert report is not None and report.set_issued
    assert radio.parameters["AP"] == b"\x01"


def test_attach_without_response_degrades() -> None:
    engine = XBeeEngine(_spec(sync_timeout_ms=10))
    transport, _ = create_mock_radio_transport(drop_pattern=[True])
    report = engine.attach(transport)
    assert report is not None
    assert report.state is StartupState.DEGRADED_UNVERIFIED
    assert engine.mode is Mode.TRANSPARENT


def test_attach_closed_transport_raises() -> None:
    engine = XBeeEngine(_spec())
    transport, _ = create_mock_radio_transport()
    transport.close()
    with pytest.raises(TransportUnavailable):
        engine.attach(transport)


def test_load_addressing_properties() -> None:
    engine = XBeeEngine(_spec())
    transport, _ = create_mock_radio_transport()
    engine.attach(transport)
    notified: list = []
    engine.subscribe_parameter("NI", notified.append)
    ids = engine.load_addressing_properties()
    assert len(ids) == 15
    assert 0 not in ids
    state = engine.state
    assert state.dh == 0x0013A200
    assert state.dl == 0x40522BAA
    assert state.ni == "MOCK"
    assert state.cr == 3
    assert engine.parameter("ci") == 0x11
    assert notified == ["MOCK"]


def test_setters_write_binary_parameters() -> None:
    engine = XBeeEngine(_spec())
    transport, radio = create_mock_radio_transport()
    engine.attach(transport)
    engine.set_dh(0x1234)
    engine.set_my(0xBEEF)
    engine.set_ni("ROUTER")
    assert radio.parameters["DH"] == b"\x00\x00\x12\x34"
    assert radio.parameters["MY"] == b"\xbe\xef"
    assert radio.parameters["NI"] == b"ROUTER"
    # Set acknowledgements carry no value; state follows only queries.
    assert engine.parameter("DH") == 0
    engine.send_at_command_async("DH")
    assert engine.parameter("DH") == 0x1234


def test_broadcast_and_unicast() -> None:
    engine = XBeeEngine(_spec())
    transport, radio = create_mock_radio_transport()
    engine.attach(transport)
    statuses: list = []
    engine.subscribe(TransmitStatus, statuses.append)
    first = engine.broadcast("hello")
    second = engine.unicast(bytes.fromhex("0013A20040522BAA"), "hi")
    broadcast, unicast = radio.received[-2:]
    assert isinstance(broadcast, TransmitRequest)
    assert broadcast.dest64 == BROADCAST_64
    assert broadcast.data == b"hello"
    assert unicast.dest64 == 0x0013A20040522BAA
    assert [status.frame_id for status in statuses] == [first, second]
    assert all(status.delivered for status in statuses)


def test_remote_at_command_sync() -> None:
    engine = XBeeEngine(_spec())
    transport, _ = create_mock_radio_transport()
    engine.attach(transport)
    response = engine.send_remote_at_command_sync(0x0013A20040522BAA, "NI")
    assert isinstance(response, RemoteATCommandResponse)
    assert response.source64 == 0x0013A20040522BAA
    assert response.data == b"MOCK"


def test_received_packet_reaches_subscriber() -> None:
    engine = XBeeEngine(_spec("API"))
    transport, _ = create_mock_radio_transport()
    engine.attach(transport, startup_check=False)
    seen: list = []
    engine.subscribe(ReceivePacket, seen.append)
    packet = ReceivePacket(source64=1, source16=2, options=0, data=b"ping")
    wire = encode_frame(packet)
    transport.inject(wire[:5])
    transport.inject(wire[5:])
    assert seen == [packet]
    assert engine.unsubscribe(ReceivePacket, seen.append) is True


def test_transparent_mode_delivers_raw_lines() -> None:
    logger = MemoryLogger()
    engine = XBeeEngine(_spec(), logger=logger)
    transport, _ = create_mock_radio_transport()
    engine.attach(transport, startup_check=False)
    assert engine.mode is Mode.TRANSPARENT
    lines: list = []
    engine.subscribe_raw(lines.append)
    transport.inject(b"temp=21")
    transport.inject(b"\r")
    assert lines == [b"temp=21\r"]
    assert ("raw_rx", {"bytes": 8}) in logger.events
    engine.send_raw("hello\r")
    assert transport.writes[-1] == b"hello\r"


def test_close_detaches_and_closes_transport() -> None:
    engine = XBeeEngine(_spec())
    transport, _ = create_mock_radio_transport()
    engine.attach(transport, startup_check=False)
    engine.close()
    assert engine.transport is None
    assert not transport.is_open
    with pytest.raises(TransportUnavailable):
        engine.broadcast("x")


def test_callback_error_does_not_lose_later_frames() -> None:
    logger = MemoryLogger()
    engine = XBeeEngine(_spec("API"), logger=logger)
    transport, _ = create_mock_radio_transport()
    engine.attach(transport, startup_check=False)
    calls: list = []
    seen: list = []

    def _fails_once(frame: ModemStatus) -> None:
        calls.append(frame)
        if len(calls) == 1:
            raise RuntimeError("app bug")

    engine.subscribe(ModemStatus, _fails_once)
    engine.subscribe(ModemStatus, seen.append)
    transport.inject(encode_frame(ModemStatus(status=0)) + encode_frame(ModemStatus(status=2)))
    assert seen == [ModemStatus(status=0), ModemStatus(status=2)]
    assert len(calls) == 2
    assert logger.names().count("callback_failed") == 1


class _FailingWriteTransport(MockTransport):
    def write(self, data: bytes) -> None:
        raise OSError("Write timeout")


def test_startup_write_failure_degrades() -> None:
    engine = XBeeEngine(_spec(sync_timeout_ms=10))
    transport = _FailingWriteTransport()
    report = engine.attach(transport)
    assert report is not None
    assert report.state is StartupState.DEGRADED_UNVERIFIED
    assert engine.startup_state is StartupState.DEGRADED_UNVERIFIED
    assert engine.mode is Mode.TRANSPARENT
    assert report.warnings[0] == "AP failed: OSError: Write timeout"
    assert engine.transport is transport
    assert not engine.session.busy()


class _StopCountingTransport(MockTransport):
    def __init__(self) -> None:
        super().__init__()
        self.stops = 0

    def stop(self) -> None:
        self.stops += 1
        super().stop()


def test_detach_stops_reader_and_keeps_transport_open() -> None:
    engine = XBeeEngine(_spec("API"))
    transport = _StopCountingTransport()
    engine.attach(transport, startup_check=False)
    engine.detach()
    assert transport.stops == 1
    assert transport.is_open
    assert engine.transport is None
    # Reattaching the same transport is allowed after a detach.
    engine.attach(transport, startup_check=False)
    assert engine.transport is transport
