from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Tuple

from xbeelink.protocol.frames import ATCommandResponse, status_label
from xbeelink.runtime.events import Observers
from xbeelink.runtime.logging import EventLogger, NullLogger


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    bits: int | None  # None: UTF-8 text

    @property
    def is_text(self) -> bool:
        return self.bits is None

    def encode(self, value: int | str) -> bytes:
        """AT parameter bytes for a set command: big-endian, natural width."""
        if self.bits is None:
            if not isinstance(value, str):
                raise TypeError(f"{self.name} expects text")
            return value.encode("utf-8")
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{self.name} expects an integer")
        if not (0 <= value < (1 << self.bits)):
            raise ValueError(f"{self.name} must fit in {self.bits} bits")
        return value.to_bytes(self.bits // 8, "big")


# Query order of load_addressing_properties.
PARAMETERS: Tuple[ParameterSpec, ...] = (
    ParameterSpec("DH", 32),
    ParameterSpec("DL", 32),
    ParameterSpec("MY", 16),
    ParameterSpec("MP", 16),
    ParameterSpec("NC", 8),
    ParameterSpec("SH", 32),
    ParameterSpec("SL", 32),
    ParameterSpec("NI", None),
    ParameterSpec("SE", 8),
    ParameterSpec("DE", 8),
    ParameterSpec("CI", 16),
    ParameterSpec("TO", 8),
    ParameterSpec("NP", 16),
    ParameterSpec("DD", 32),
    ParameterSpec("CR", 8),
)
PARAMETER_BY_NAME: Dict[str, ParameterSpec] = {spec.name: spec for spec in PARAMETERS}


def parameter_spec(name: str) -> ParameterSpec:
    try:
        return PARAMETER_BY_NAME[name.upper()]
    except KeyError:
        raise KeyError(f"unknown addressing parameter: {name}") from None


@dataclass
class AddressingState:
    dh: int = 0
    dl: int = 0
    my: int = 0
    mp: int = 0
    nc: int = 0
    sh: int = 0
    sl: int = 0
    ni: str = ""
    se: int = 0
    de: int = 0
    ci: int = 0
    to: int = 0
    np: int = 0
    dd: int = 0
    cr: int = 0

    def get(self, name: str) -> int | str:
        return getattr(self, parameter_spec(name).name.lower())

    def as_dict(self) -> Dict[str, Any]:
        return {key.upper(): value for key, value in asdict(self).items()}


class AddressingStateStore:
    """
    Radio addressing parameters, written only from decoded AT command responses.

    Response data is the parameter value in big-endian binary, i.e. the hex
    string of the payload read as a base-16 integer; NI is UTF-8 text.
    """

    def __init__(self, logger: EventLogger | None = None) -> None:
        self._logger = logger or NullLogger()
        self._state = AddressingState()
        self._lock = threading.Lock()
        self._observers = Observers(self._logger)

    def subscribe(self, name: str, callback: Callable[[Any], None]) -> None:
        self._observers.subscribe(parameter_spec(name).name, callback)

    def unsubscribe(self, name: str, callback: Callable[[Any], None]) -> bool:
        return self._observers.unsubscribe(parameter_spec(name).name, callback)

    def get(self, name: str) -> int | str:
        with self._lock:
            return self._state.get(name)

    def snapshot(self) -> AddressingState:
        with self._lock:
            return AddressingState(**{k.lower(): v for k, v in self._state.as_dict().items()})

    def apply_response(self, response: ATCommandResponse) -> bool:
        name = response.command.decode("ascii", errors="replace").upper()
        spec = PARAMETER_BY_NAME.get(name)
        if spec is None:
            return False
        if not response.ok:
            self._logger.log_event(
                "command_rejected",
                {
                    "command": name,
                    "frame_id": response.frame_id,
                    "status": status_label(response.status),
                },
            )
            return False
        if not response.data:
            # Acknowledgement of a set command carries no value.
            return False
        value: int | str
        if spec.is_text:
            value = response.data.decode("utf-8", errors="replace")
        else:
            value = int(response.data.hex(), 16)
            if value >= (1 << spec.bits):  # type: ignore[operator]
                self._logger.log_event(
                    "malformed_parameter",
                    {"command": name, "hex": response.data.hex()},
                )
                return False
        with self._lock:
            setattr(self._state, name.lower(), value)
        self._logger.log_event("parameter_changed", {"parameter": name, "value": value})
        self._observers.emit(name, value)
        return True
