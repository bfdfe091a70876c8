import sys
from types import SimpleNamespace

import pytest

from xbeelink.protocol.framing import encode_frame, make_at_command
from xbeelink.transport.mock import MockRadio, MockTransport
from xbeelink.transport.serial_port import SerialTransport


class _FakeSerial:
    def __init__(self, **kwargs) -> None:  # type: ignore[no-untyped-def]
        self.kwargs = kwargs
        self.is_open = True
        self._read_buffer = bytearray()
        self.max_write: int | None = None
        self.write_returns_zero = False
        self.writes: list[bytes] = []
        self.flush_called = False
        self.closed = False

    @property
    def in_waiting(self) -> int:
        return len(self._read_buffer)

    def read(self, n: int) -> bytes:
        out = bytes(self._read_buffer[:n])
        del self._read_buffer[:n]
        return out

    def write(self, data) -> int:  # type: ignore[no-untyped-def]
        if self.write_returns_zero:
            return 0
        chunk = bytes(data)
        if self.max_write is not None:
            chunk = chunk[: self.max_write]
        self.writes.append(chunk)
        return len(chunk)

    def flush(self) -> None:
        self.flush_called = True

    def close(self) -> None:
        self.closed = True
        self.is_open = False


def _fake_serial_module() -> SimpleNamespace:
    return SimpleNamespace(
        Serial=_FakeSerial, EIGHTBITS=8, PARITY_NONE="N", STOPBITS_ONE=1
    )


def test_serial_transport_requires_pyserial(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", None)
    with pytest.raises(RuntimeError, match="pyserial is required"):
        SerialTransport("COM1")


def test_serial_transport_invalid_poll_ms(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", _fake_serial_module())
    with pytest.raises(ValueError, match="poll_ms must be > 0"):
        SerialTransport("COM1", poll_ms=0)


def test_serial_transport_opens_8n1(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", _fake_serial_module())
    transport = SerialTransport("/dev/ttyUSB0", baudrate=115200, timeout_ms=250)
    kwargs = transport._serial.kwargs
    assert kwargs["port"] == "/dev/ttyUSB0"
    assert kwargs["baudrate"] == 115200
    assert kwargs["bytesize"] == 8
    assert kwargs["parity"] == "N"
    assert kwargs["stopbits"] == 1
    assert kwargs["rtscts"] is False
    assert kwargs["write_timeout"] == 0.25
    assert transport.port == "/dev/ttyUSB0"
    assert transport.is_open


def test_serial_transport_partial_writes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", _fake_serial_module())
    transport = SerialTransport("COM1")
    transport._serial.max_write = 3
    transport.write(b"abcdefg")
    transport.flush()
    assert transport._serial.writes == [b"abc", b"def", b"g"]
    assert transport._serial.flush_called


def test_serial_transport_zero_write_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", _fake_serial_module())
    transport = SerialTransport("COM1")
    transport._serial.write_returns_zero = True
    with pytest.raises(OSError):
        transport.write(b"x")


def test_serial_transport_poll_buffers_and_notifies(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", _fake_serial_module())
    transport = SerialTransport("COM1")
    calls: list[bytes] = []
    transport.set_bytes_available(lambda: calls.append(transport.read_all()))
    assert transport.poll_once() is False
    transport._serial._read_buffer.extend(b"\x7e\x00")
    assert transport.poll_once() is True
    assert calls == [b"\x7e\x00"]
    assert transport.read_all() == b""


def test_serial_transport_close(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", _fake_serial_module())
    transport = SerialTransport("COM1")
    transport.close()
    assert transport._serial.closed
    assert not transport.is_open


def test_mock_transport_drop_pattern() -> None:
    transport = MockTransport(MockRadio(), drop_pattern=[True, False])
    received: list[bytes] = []
    transport.set_bytes_available(lambda: received.append(transport.read_all()))
    transport.write(encode_frame(make_at_command("NI", frame_id=1)))
    transport.write(encode_frame(make_at_command("NI", frame_id=2)))
    assert len(received) == 1
    assert received[0][4] == 2


def test_mock_radio_ignores_frame_id_zero() -> None:
    radio = MockRadio()
    assert radio(encode_frame(make_at_command("NI"))) is None
    assert radio(encode_frame(make_at_command("NI", b"X"))) is None
    assert radio.parameters["NI"] == b"X"


def test_mock_transport_closed_write_raises() -> None:
    transport = MockTransport()
    transport.close()
    with pytest.raises(OSError):
        transport.write(b"x")


def test_serial_transport_stop_and_restart(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "serial", _fake_serial_module())
    transport = SerialTransport("COM1", poll_ms=1)
    transport.start()
    assert transport._thread is not None
    transport._rx.extend(b"\x7e\x00")
    transport.stop()
    assert transport._thread is None
    assert transport.read_all() == b""
    assert transport.is_open
    transport.start()
    assert transport._thread is not None and transport._thread.is_alive()
    transport.close()
    assert transport._thread is None
    assert not transport.is_open
