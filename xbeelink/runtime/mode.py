from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Tuple

from xbeelink.protocol.errors import CommandRejected, EngineError, ResponseTimeout
from xbeelink.protocol.frames import ATCommandRequest, ATCommandResponse
from xbeelink.protocol.framing import make_at_command
from xbeelink.protocol.reassembly import CARRIAGE_RETURN, LineAssembler, StreamReassembler
from xbeelink.runtime.logging import EventLogger, NullLogger

AP_API_NO_ESCAPES = 1

# High byte of HV.
HARDWARE_FAMILIES: Dict[int, str] = {
    0x17: "XBee Series 1",
    0x18: "XBee Series 1 Pro",
    0x19: "XBee ZB",
    0x1A: "XBee ZB Pro",
    0x1E: "XBee ZB S2B",
    0x22: "XBee S2C",
}
SUPPORTED_FAMILIES = frozenset({0x17, 0x18})

Exchange = Callable[[ATCommandRequest], ATCommandResponse]


class Mode(Enum):
    TRANSPARENT = "TRANSPARENT"
    API = "API"


class StartupState(Enum):
    UNCHECKED = "UNCHECKED"
    VERIFIED = "VERIFIED"
    DEGRADED_UNVERIFIED = "DEGRADED_UNVERIFIED"


@dataclass
class StartupReport:
    state: StartupState
    ap_mode: int | None = None
    set_issued: bool = False
    hardware_version: int | None = None
    hardware_family: str | None = None
    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "state": self.state.value,
            "ap_mode": self.ap_mode,
            "set_issued": self.set_issued,
            "hardware_version": self.hardware_version,
            "hardware_family": self.hardware_family,
            "warnings": list(self.warnings),
        }


def classify_hardware(hardware_version: int) -> Tuple[str | None, bool]:
    family_id = (hardware_version >> 8) & 0xFF if hardware_version > 0xFF else hardware_version
    return HARDWARE_FAMILIES.get(family_id), family_id in SUPPORTED_FAMILIES


class ModeController:
    """Owns the framing discipline and the startup handshake state machine."""

    def __init__(
        self,
        mode: Mode = Mode.TRANSPARENT,
        terminator: int = CARRIAGE_RETURN,
        logger: EventLogger | None = None,
    ) -> None:
        self._mode = mode
        self._reassembler = StreamReassembler()
        self._lines = LineAssembler(terminator)
        self._logger = logger or NullLogger()
        self._startup_state = StartupState.UNCHECKED
        self._lock = threading.RLock()

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def startup_state(self) -> StartupState:
        return self._startup_state

    @property
    def reassembler(self) -> StreamReassembler:
        return self._reassembler

    def set_mode(self, mode: Mode) -> None:
        with self._lock:
            if mode is self._mode:
                return
            self._mode = mode
            self._reassembler.reset()
            self._lines.reset()
        set_mode = getattr(self._logger, "set_mode", None)
        if set_mode is not None:
            set_mode(mode.value)

    def reset(self) -> None:
        with self._lock:
            self._reassembler.reset()
            self._lines.reset()
            self._startup_state = StartupState.UNCHECKED

    def feed(self, data: bytes) -> Tuple[Mode, List[bytes]]:
        with self._lock:
            if self._mode is Mode.API:
                return Mode.API, self._reassembler.feed(data)
            return Mode.TRANSPARENT, self._lines.feed(data)

    def _query(
        self, exchange: Exchange, report: StartupReport, command: str, parameter: bytes = b""
    ) -> ATCommandResponse | None:
        try:
            return exchange(make_at_command(command, parameter))
        except ResponseTimeout:
            report.warnings.append(f"no response to {command}")
        except CommandRejected as exc:
            report.warnings.append(f"{command} rejected: {exc}")
        except (EngineError, OSError) as exc:
            report.warnings.append(f"{command} failed: {type(exc).__name__}: {exc}")
        return None

    def run_startup_check(self, exchange: Exchange) -> StartupReport:
        """
        Query AP, force AP=1 when needed, then query HV.

        Framing is API for the duration of the exchanges. VERIFIED leaves the
        engine in API mode; DEGRADED_UNVERIFIED restores the previous mode.
        """
        previous = self._mode
        self.set_mode(Mode.API)
        report = StartupReport(state=StartupState.VERIFIED)

        response = self._query(exchange, report, "AP")
        if response is None:
            report.state = StartupState.DEGRADED_UNVERIFIED
        elif not response.data:
            report.warnings.append("AP response carried no value")
            report.state = StartupState.DEGRADED_UNVERIFIED
        else:
            report.ap_mode = int(response.data.hex(), 16)
            if report.ap_mode != AP_API_NO_ESCAPES:
                report.set_issued = True
                if self._query(exchange, report, "AP", bytes([AP_API_NO_ESCAPES])) is None:
                    report.state = StartupState.DEGRADED_UNVERIFIED
                else:
                    report.ap_mode = AP_API_NO_ESCAPES

        response = self._query(exchange, report, "HV")
        if response is None or not response.data:
            if response is not None:
                report.warnings.append("HV response carried no value")
            report.state = StartupState.DEGRADED_UNVERIFIED
        else:
            report.hardware_version = int(response.data.hex(), 16)
            family, supported = classify_hardware(report.hardware_version)
            report.hardware_family = family
            if not supported:
                report.warnings.append(
                    f"unsupported hardware version 0x{report.hardware_version:04X}"
                    + (f" ({family})" if family else "")
                )

        self._startup_state = report.state
        if report.state is StartupState.DEGRADED_UNVERIFIED:
            self.set_mode(previous)
        self._logger.log_event("startup_check", report.as_dict())
        return report
