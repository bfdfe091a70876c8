from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Protocol, Tuple

from xbeelink.config.enginespec import EngineSpec
from xbeelink.runtime.clock import Clock, RealClock


class EventLogger(Protocol):
    def log_event(self, event: str, fields: Dict[str, Any]) -> None:
        ...


class NullLogger:
    def log_event(self, event: str, fields: Dict[str, Any]) -> None:
        return None

    def close(self) -> None:
        return None


class MemoryLogger:
    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def log_event(self, event: str, fields: Dict[str, Any]) -> None:
        self.events.append((event, dict(fields)))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def close(self) -> None:
        return None


class JsonlLogger:
    def __init__(
        self,
        out_dir: str | Path,
        session_id: str,
        role: str,
        mode: str,
        port_id: str,
        clock: Clock | None = None,
    ) -> None:
        self._dir = Path(out_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._path = self._dir / f"{session_id}_{role}.jsonl"
        self._clock = clock or RealClock()
        self._session_id = session_id
        self._role = role
        self._mode = mode
        self._port_id = port_id
        # Events arrive from the reader thread and from callers.
        self._lock = threading.Lock()
        self._fh = self._path.open("a", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def set_mode(self, mode: str) -> None:
        self._mode = mode

    def _base_event(self, event: str) -> Dict[str, Any]:
        return {
            "ts_ms": self._clock.now_ms(),
            "session_id": self._session_id,
            "event": event,
            "role": self._role,
            "mode": self._mode,
            "port_id": self._port_id,
        }

    def log_engine_start(self, spec: EngineSpec) -> None:
        payload = self._base_event("engine_start")
        payload["enginespec"] = spec.as_dict()
        self._write(payload)

    def log_event(self, event: str, fields: Dict[str, Any]) -> None:
        payload = self._base_event(event)
        payload.update(fields)
        self._write(payload)

    def _write(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            self._fh.write(json.dumps(payload, ensure_ascii=True) + "\n")
            self._fh.flush()

    def close(self) -> None:
        with self._lock:
            self._fh.close()
