from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Literal

ModeName = Literal["API", "TRANSPARENT"]


def _require_keys(data: Dict[str, Any], keys: Iterable[str], context: str) -> None:
    missing = [key for key in keys if key not in data]
    if missing:
        joined = ", ".join(missing)
        raise ValueError(f"missing {context} keys: {joined}")


def _optional_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"", "auto", "none", "null"}:
            return default
        if text in {"1", "true", "on", "yes"}:
            return True
        if text in {"0", "false", "off", "no"}:
            return False
    raise ValueError(f"invalid bool value: {value!r}")


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid int value: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"", "auto", "none", "null"}:
            return None
        return int(text, 0)
    raise ValueError(f"invalid int value: {value!r}")


@dataclass(frozen=True)
class SerialSpec:
    port: str | None = None
    baudrate: int = 9600
    timeout_ms: int = 1000
    poll_ms: int = 5

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SerialSpec":
        port = data.get("port")
        return cls(
            port=str(port) if port is not None else None,
            baudrate=int(data.get("baudrate", 9600)),
            timeout_ms=int(data.get("timeout_ms", 1000)),
            poll_ms=int(data.get("poll_ms", 5)),
        )


@dataclass(frozen=True)
class SessionSpec:
    sync_timeout_ms: int = 1000
    startup_check: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionSpec":
        return cls(
            sync_timeout_ms=int(data.get("sync_timeout_ms", 1000)),
            startup_check=_optional_bool(data.get("startup_check"), True),
        )


@dataclass(frozen=True)
class FramingSpec:
    terminator: int = 0x0D

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FramingSpec":
        terminator = _optional_int(data.get("terminator"))
        return cls(terminator=0x0D if terminator is None else terminator)


@dataclass(frozen=True)
class LoggingSpec:
    out_dir: str | None = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSpec":
        out_dir = data.get("out_dir")
        return cls(out_dir=str(out_dir) if out_dir else None)


@dataclass(frozen=True)
class EngineSpec:
    session_id: str
    mode: ModeName = "TRANSPARENT"
    serial: SerialSpec = field(default_factory=SerialSpec)
    session: SessionSpec = field(default_factory=SessionSpec)
    framing: FramingSpec = field(default_factory=FramingSpec)
    logging: LoggingSpec = field(default_factory=LoggingSpec)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineSpec":
        _require_keys(data, ["session_id"], "enginespec")
        return cls(
            session_id=str(data["session_id"]),
            mode=str(data.get("mode", "TRANSPARENT")).upper(),  # type: ignore[arg-type]
            serial=SerialSpec.from_dict(data.get("serial") or {}),
            session=SessionSpec.from_dict(data.get("session") or {}),
            framing=FramingSpec.from_dict(data.get("framing") or {}),
            logging=LoggingSpec.from_dict(data.get("logging") or {}),
        )

    def validate(self) -> None:
        if not self.session_id:
            raise ValueError("session_id must be non-empty")
        if self.mode not in ("API", "TRANSPARENT"):
            raise ValueError(f"invalid mode: {self.mode}")
        if self.serial.baudrate <= 0:
            raise ValueError("serial baudrate must be > 0")
        if self.serial.timeout_ms < 0:
            raise ValueError("serial timeout_ms must be >= 0")
        if self.serial.poll_ms <= 0:
            raise ValueError("serial poll_ms must be > 0")
        if self.session.sync_timeout_ms <= 0:
            raise ValueError("session sync_timeout_ms must be > 0")
        if not (0 <= self.framing.terminator <= 0xFF):
            raise ValueError("framing terminator must be 0..255")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "mode": self.mode,
            "serial": {
                "port": self.serial.port,
                "baudrate": self.serial.baudrate,
                "timeout_ms": self.serial.timeout_ms,
                "poll_ms": self.serial.poll_ms,
            },
            "session": {
                "sync_timeout_ms": self.session.sync_timeout_ms,
                "startup_check": self.session.startup_check,
            },
            "framing": {"terminator": self.framing.terminator},
            "logging": {"out_dir": self.logging.out_dir},
        }


def _load_json(path: Path) -> Dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        import yaml
    except ImportError as exc:
        raise RuntimeError("PyYAML is required to load YAML enginespecs") from exc
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def load_enginespec(path: str | Path) -> EngineSpec:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    if path.suffix.lower() in {".yaml", ".yml"}:
        data = _load_yaml(path)
    else:
        data = _load_json(path)
    spec = EngineSpec.from_dict(data)
    spec.validate()
    return spec


def save_enginespec(path: str | Path, spec: EngineSpec) -> None:
    path = Path(path)
    data = spec.as_dict()
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:
            raise RuntimeError("PyYAML is required to write YAML enginespecs") from exc
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
