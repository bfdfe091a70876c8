from __future__ import annotations

import threading
import time

from xbeelink.transport.base import BytesAvailable, ITransport


class SerialTransport(ITransport):
    """
    pyserial-backed transport.

    A daemon reader thread polls ``in_waiting`` every ``poll_ms`` and buffers
    whatever arrived; the bytes-available callback is invoked from that thread,
    which is therefore the engine's single reader context.

    Defaults match the module's factory settings: 9600 baud, 8N1, no flow control.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 9600,
        timeout_ms: int = 1000,
        poll_ms: int = 5,
    ) -> None:
        try:
            import serial  # type: ignore
        except ImportError as exc:
            raise RuntimeError(
                "pyserial is required for serial transport. Install with `pip install -e .`."
            ) from exc

        if poll_ms <= 0:
            raise ValueError("poll_ms must be > 0")

        self._serial = serial.Serial(
            port=port,
            baudrate=baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
            timeout=0,
            write_timeout=max(0.0, timeout_ms / 1000.0),
        )
        self._port = port
        self._poll_s = poll_ms / 1000.0
        self._rx = bytearray()
        self._rx_lock = threading.Lock()
        self._callback: BytesAvailable | None = None
        self._closed = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> str:
        return self._port

    @property
    def is_open(self) -> bool:
        return bool(getattr(self._serial, "is_open", True)) and not self._closed

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._reader_loop, name=f"xbeelink-reader-{self._port}", daemon=True
        )
        self._thread.start()

    def _read_available(self) -> bytes:
        waiting = int(self._serial.in_waiting)
        if waiting <= 0:
            return b""
        return self._serial.read(waiting)

    def poll_once(self) -> bool:
        chunk = self._read_available()
        if not chunk:
            return False
        with self._rx_lock:
            self._rx.extend(chunk)
        callback = self._callback
        if callback is not None:
            callback()
        return True

    def _reader_loop(self) -> None:
        while not self._stop.is_set():
            try:
                got = self.poll_once()
            except OSError:
                self._closed = True
                self._stop.set()
                return
            if not got:
                time.sleep(self._poll_s)

    def write(self, data: bytes) -> None:
        remaining = memoryview(bytes(data))
        while remaining:
            written = self._serial.write(remaining)
            if not written:
                raise OSError("serial write returned no bytes")
            remaining = remaining[written:]

    def flush(self) -> None:
        self._serial.flush()

    def read_all(self) -> bytes:
        with self._rx_lock:
            out = bytes(self._rx)
            self._rx.clear()
        return out

    def set_bytes_available(self, callback: BytesAvailable | None) -> None:
        self._callback = callback

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._thread = None
        with self._rx_lock:
            self._rx.clear()

    def close(self) -> None:
        self._closed = True
        self._callback = None
        self.stop()
        try:
            self._serial.close()
        except OSError:
            return None
