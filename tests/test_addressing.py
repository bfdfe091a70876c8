import pytest

from xbeelink.protocol.frames import ATCommandResponse, CommandStatus
from xbeelink.runtime.addressing import PARAMETERS, AddressingStateStore, parameter_spec
from xbeelink.runtime.logging import MemoryLogger


def test_parameter_table_order() -> None:
    assert [spec.name for spec in PARAMETERS] == [
        "DH", "DL", "MY", "MP", "NC", "SH", "SL", "NI",
        "SE", "DE", "CI", "TO", "NP", "DD", "CR",
    ]


def test_dh_response_updates_state_and_notifies_once() -> None:
    logger = MemoryLogger()
    store = AddressingStateStore(logger)
    seen: list = []
    store.subscribe("dh", seen.append)
    response = ATCommandResponse(command=b"DH", data=b"\x00\x00\x00\x1a", frame_id=1)
    assert store.apply_response(response) is True
    assert store.get("DH") == 26
    assert seen == [26]
    assert logger.events == [("parameter_changed", {"parameter": "DH", "value": 26})]


def test_single_byte_payload_is_read_as_hex() -> None:
    store = AddressingStateStore()
    store.apply_response(ATCommandResponse(command=b"DH", data=b"\x1a"))
    assert store.get("DH") == 26


def test_ni_is_text() -> None:
    store = AddressingStateStore()
    store.apply_response(ATCommandResponse(command=b"NI", data=b"ROUTER 1"))
    assert store.snapshot().ni == "ROUTER 1"


def test_rejected_response_leaves_state_untouched() -> None:
    logger = MemoryLogger()
    store = AddressingStateStore(logger)
    seen: list = []
    store.subscribe("DL", seen.append)
    response = ATCommandResponse(
        command=b"DL", status=CommandStatus.INVALID_PARAMETER, data=b"\x01", frame_id=4
    )
    assert store.apply_response(response) is False
    assert store.get("DL") == 0
    assert seen == []
    assert logger.events == [
        ("command_rejected", {"command": "DL", "frame_id": 4, "status": "INVALID_PARAMETER"})
    ]


def test_empty_ok_response_is_ignored() -> None:
    store = AddressingStateStore()
    store.apply_response(ATCommandResponse(command=b"MY", data=b"\x12\x34"))
    assert store.apply_response(ATCommandResponse(command=b"MY")) is False
    assert store.get("MY") == 0x1234


def test_unknown_command_is_not_consumed() -> None:
    store = AddressingStateStore()
    assert store.apply_response(ATCommandResponse(command=b"VR", data=b"\x10\x00")) is False


def test_oversized_value_is_logged() -> None:
    logger = MemoryLogger()
    store = AddressingStateStore(logger)
    assert store.apply_response(ATCommandResponse(command=b"NC", data=b"\x01\x00")) is False
    assert logger.names() == ["malformed_parameter"]


def test_snapshot_is_a_copy() -> None:
    store = AddressingStateStore()
    store.apply_response(ATCommandResponse(command=b"CR", data=b"\x03"))
    snapshot = store.snapshot()
    store.apply_response(ATCommandResponse(command=b"CR", data=b"\x05"))
    assert snapshot.cr == 3
    assert store.snapshot().as_dict()["CR"] == 5


def test_unsubscribe_stops_notifications() -> None:
    store = AddressingStateStore()
    seen: list = []
    store.subscribe("SE", seen.append)
    assert store.unsubscribe("SE", seen.append) is True
    store.apply_response(ATCommandResponse(command=b"SE", data=b"\xe8"))
    assert seen == []
    assert store.unsubscribe("SE", seen.append) is False


def test_parameter_encoding() -> None:
    assert parameter_spec("dh").encode(0x1234) == b"\x00\x00\x12\x34"
    assert parameter_spec("MY").encode(0xFFFE) == b"\xff\xfe"
    assert parameter_spec("NC").encode(7) == b"\x07"
    assert parameter_spec("NI").encode("node") == b"node"
    with pytest.raises(ValueError):
        parameter_spec("NC").encode(256)
    with pytest.raises(TypeError):
        parameter_spec("NI").encode(1)
    with pytest.raises(TypeError):
        parameter_spec("DH").encode("1")
    with pytest.raises(KeyError):
        parameter_spec("ZZ")
