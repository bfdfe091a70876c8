import json
from pathlib import Path

import pytest

from xbeelink.config.enginespec import EngineSpec, load_enginespec, save_enginespec


def test_enginespec_defaults() -> None:
    spec = EngineSpec.from_dict({"session_id": "s1"})
    spec.validate()
    assert spec.mode == "TRANSPARENT"
    assert spec.serial.baudrate == 9600
    assert spec.session.sync_timeout_ms == 1000
    assert spec.session.startup_check is True
    assert spec.framing.terminator == 0x0D
    assert spec.logging.out_dir is None


def test_enginespec_parses_strings() -> None:
    spec = EngineSpec.from_dict(
        {
            "session_id": "s1",
            "mode": "api",
            "session": {"startup_check": "off"},
            "framing": {"terminator": "0x0A"},
        }
    )
    assert spec.mode == "API"
    assert spec.session.startup_check is False
    assert spec.framing.terminator == 0x0A


def test_enginespec_requires_session_id() -> None:
    with pytest.raises(ValueError, match="missing enginespec keys: session_id"):
        EngineSpec.from_dict({})


@pytest.mark.parametrize(
    "data, message",
    [
        ({"mode": "AT"}, "invalid mode"),
        ({"serial": {"baudrate": 0}}, "baudrate"),
        ({"serial": {"poll_ms": 0}}, "poll_ms"),
        ({"session": {"sync_timeout_ms": 0}}, "sync_timeout_ms"),
        ({"framing": {"terminator": 300}}, "terminator"),
    ],
)
def test_enginespec_validate_errors(data: dict, message: str) -> None:
    spec = EngineSpec.from_dict({"session_id": "s1", **data})
    with pytest.raises(ValueError, match=message):
        spec.validate()


def test_enginespec_yaml_round_trip(tmp_path: Path) -> None:
    spec = EngineSpec.from_dict(
        {"session_id": "yaml", "mode": "API", "serial": {"port": "/dev/ttyUSB0"}}
    )
    path = tmp_path / "engine.yaml"
    save_enginespec(path, spec)
    assert "session_id: yaml" in path.read_text(encoding="utf-8")
    assert load_enginespec(path) == spec


def test_enginespec_json_load(tmp_path: Path) -> None:
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"session_id": "json", "logging": {"out_dir": "out"}}))
    spec = load_enginespec(path)
    assert spec.logging.out_dir == "out"


def test_enginespec_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_enginespec(tmp_path / "missing.yaml")
