import json
from pathlib import Path

from xbeelink.config.enginespec import EngineSpec
from xbeelink.runtime.clock import FakeClock
from xbeelink.runtime.engine import XBeeEngine
from xbeelink.runtime.logging import JsonlLogger
from xbeelink.transport.mock import create_mock_radio_transport


def _read_events(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_jsonl_logging_schema(tmp_path: Path) -> None:
    spec = EngineSpec.from_dict({"session_id": "log_test", "logging": {"out_dir": str(tmp_path)}})
    clock = FakeClock(start_ms=1000)
    logger = JsonlLogger(tmp_path, spec.session_id, "engine", spec.mode, "mock", clock=clock)
    logger.log_engine_start(spec)
    clock.sleep_ms(5)
    logger.log_event("frame_tx", {"frame": "ATCommandRequest", "frame_id": 1, "hex": "7e"})
    logger.close()

    assert logger.path == tmp_path / "log_test_engine.jsonl"
    events = _read_events(logger.path)
    for event in events:
        for key in ("ts_ms", "session_id", "event", "role", "mode", "port_id"):
            assert key in event
    assert events[0]["event"] == "engine_start"
    assert events[0]["enginespec"]["session_id"] == "log_test"
    assert events[1]["ts_ms"] == 1005
    assert events[1]["frame_id"] == 1


def test_engine_events_track_mode(tmp_path: Path) -> None:
    spec = EngineSpec.from_dict({"session_id": "mode_test"})
    logger = JsonlLogger(tmp_path, spec.session_id, "engine", spec.mode, "mock", clock=FakeClock())
    engine = XBeeEngine(spec, logger=logger)
    transport, _ = create_mock_radio_transport()
    engine.attach(transport)
    logger.close()

    events = _read_events(logger.path)
    names = [event["event"] for event in events]
    assert names.count("frame_tx") == 2
    assert names.count("frame_rx") == 2
    assert names[-1] == "startup_check"
    assert all(event["mode"] == "API" for event in events)
    assert events[-1]["state"] == "VERIFIED"
