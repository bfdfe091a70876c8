from __future__ import annotations

import argparse
import dataclasses
import json
from typing import Any, Dict

from xbeelink.config import EngineSpec, load_enginespec
from xbeelink.protocol.decoder import decode_frame
from xbeelink.protocol.errors import EngineError, FrameError
from xbeelink.protocol.frames import INBOUND_TYPES, UnknownFrame
from xbeelink.protocol.framing import encode_frame, make_at_command
from xbeelink.runtime.clock import RealClock
from xbeelink.runtime.engine import XBeeEngine
from xbeelink.runtime.logging import JsonlLogger, NullLogger
from xbeelink.transport.mock import create_mock_radio_transport
from xbeelink.transport.serial_port import SerialTransport


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def frame_to_dict(frame: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"frame": type(frame).__name__}
    for item in dataclasses.fields(frame):
        value = getattr(frame, item.name)
        if item.name == "command":
            payload["command"] = value.decode("ascii", errors="replace")
        else:
            payload[item.name] = _jsonable(value)
    return payload


def _parse_hex(text: str | None) -> bytes:
    if not text:
        return b""
    return bytes.fromhex(text.replace(" ", "").replace(":", ""))


def _engine_spec(args: argparse.Namespace) -> EngineSpec:
    if args.config:
        spec = load_enginespec(args.config)
    else:
        spec = EngineSpec.from_dict(
            {
                "session_id": args.session_id,
                "mode": args.mode,
                "serial": {"port": args.port, "baudrate": args.baud},
                "session": {"sync_timeout_ms": args.timeout_ms},
                "logging": {"out_dir": args.out_dir},
            }
        )
        spec.validate()
    return spec


def _open_engine(args: argparse.Namespace) -> XBeeEngine:
    spec = _engine_spec(args)
    if spec.logging.out_dir:
        port_id = spec.serial.port or args.transport
        logger = JsonlLogger(
            spec.logging.out_dir, spec.session_id, "engine", spec.mode, port_id, clock=RealClock()
        )
        logger.log_engine_start(spec)
    else:
        logger = NullLogger()
    engine = XBeeEngine(spec, logger=logger)
    if args.transport == "mock":
        transport, _ = create_mock_radio_transport()
    else:
        if not spec.serial.port:
            raise ValueError("--port is required for --transport serial")
        transport = SerialTransport(
            spec.serial.port,
            baudrate=spec.serial.baudrate,
            timeout_ms=spec.serial.timeout_ms,
            poll_ms=spec.serial.poll_ms,
        )
    startup = None if not args.skip_startup_check else False
    report = engine.attach(transport, startup_check=startup)
    if report is not None:
        print(json.dumps({"startup_check": report.as_dict()}))
    return engine


def _close_engine(engine: XBeeEngine) -> None:
    engine.close()
    close = getattr(engine.logger, "close", None)
    if close is not None:
        close()


def _run_monitor(args: argparse.Namespace) -> int:
    engine = _open_engine(args)

    def _print(frame: Any) -> None:
        print(json.dumps(frame_to_dict(frame)), flush=True)

    for frame_type in (*INBOUND_TYPES, UnknownFrame):
        engine.subscribe(frame_type, _print)
    engine.subscribe_raw(lambda line: print(json.dumps({"raw": line.hex()}), flush=True))
    clock = RealClock()
    deadline = None if args.max_seconds is None else clock.now_ms() + int(args.max_seconds * 1000)
    try:
        while deadline is None or clock.now_ms() < deadline:
            clock.sleep_ms(args.step_ms)
    except KeyboardInterrupt:
        pass
    finally:
        _close_engine(engine)
    return 0


def _run_at(args: argparse.Namespace) -> int:
    engine = _open_engine(args)
    try:
        response = engine.send_at_command_sync(args.command, _parse_hex(args.param))
        print(json.dumps(frame_to_dict(response)))
    except EngineError as exc:
        print(json.dumps({"error": type(exc).__name__, "reason": str(exc)}))
        return 1
    finally:
        _close_engine(engine)
    return 0


def _run_load(args: argparse.Namespace) -> int:
    engine = _open_engine(args)
    try:
        engine.load_addressing_properties()
        RealClock().sleep_ms(args.wait_ms)
        print(json.dumps(engine.state.as_dict()))
    finally:
        _close_engine(engine)
    return 0


def _run_broadcast(args: argparse.Namespace) -> int:
    engine = _open_engine(args)
    try:
        frame_id = engine.broadcast(args.text)
        print(json.dumps({"frame_id": frame_id}))
    finally:
        _close_engine(engine)
    return 0


def _parse_address(text: str) -> int:
    try:
        address = int(text, 16)
    except ValueError:
        raise ValueError(f"invalid 64-bit address: {text!r}") from None
    if not (0 <= address <= 0xFFFFFFFFFFFFFFFF):
        raise ValueError(f"address {text!r} does not fit in 64 bits")
    return address


def _run_unicast(args: argparse.Namespace) -> int:
    try:
        address = _parse_address(args.address)
    except ValueError as exc:
        print(json.dumps({"error": type(exc).__name__, "reason": str(exc)}))
        return 1
    engine = _open_engine(args)
    try:
        frame_id = engine.unicast(address, args.text)
        print(json.dumps({"frame_id": frame_id}))
    except (EngineError, ValueError) as exc:
        print(json.dumps({"error": type(exc).__name__, "reason": str(exc)}))
        return 1
    finally:
        _close_engine(engine)
    return 0


def _run_encode_at(args: argparse.Namespace) -> int:
    frame = make_at_command(args.command, _parse_hex(args.param), frame_id=args.frame_id)
    print(encode_frame(frame).hex(" ").upper())
    return 0


def _run_decode(args: argparse.Namespace) -> int:
    status = 0
    for text in args.frames:
        try:
            frame = decode_frame(_parse_hex(text))
            print(json.dumps(frame_to_dict(frame)))
        except FrameError as exc:
            print(json.dumps({"error": type(exc).__name__, "reason": str(exc)}))
            status = 1
    return status


def _add_engine_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="enginespec YAML/JSON; overrides the options below")
    parser.add_argument("--transport", choices=["mock", "serial"], default="mock")
    parser.add_argument("--port")
    parser.add_argument("--baud", type=int, default=9600)
    parser.add_argument("--mode", choices=["API", "TRANSPARENT"], default="API")
    parser.add_argument("--session-id", default="xbeelink")
    parser.add_argument("--timeout-ms", type=int, default=1000)
    parser.add_argument("--out-dir", help="directory for the JSONL event log")
    parser.add_argument("--skip-startup-check", action="store_true")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="xbeelink")
    sub = parser.add_subparsers(dest="cmd", required=True)

    monitor = sub.add_parser("monitor", help="print decoded frames as JSON lines")
    _add_engine_args(monitor)
    monitor.add_argument("--max-seconds", type=float)
    monitor.add_argument("--step-ms", type=int, default=50)
    monitor.set_defaults(func=_run_monitor)

    at = sub.add_parser("at", help="send one AT command and wait for the response")
    _add_engine_args(at)
    at.add_argument("command")
    at.add_argument("--param", help="parameter bytes as hex")
    at.set_defaults(func=_run_at)

    load = sub.add_parser("load", help="query all addressing parameters")
    _add_engine_args(load)
    load.add_argument("--wait-ms", type=int, default=500)
    load.set_defaults(func=_run_load)

    broadcast = sub.add_parser("broadcast", help="broadcast text to the network")
    _add_engine_args(broadcast)
    broadcast.add_argument("text")
    broadcast.set_defaults(func=_run_broadcast)

    unicast = sub.add_parser("unicast", help="send text to a 64-bit address")
    _add_engine_args(unicast)
    unicast.add_argument("address", help="64-bit destination address as hex")
    unicast.add_argument("text")
    unicast.set_defaults(func=_run_unicast)

    encode_at = sub.add_parser("encode-at", help="print the API frame for an AT command")
    encode_at.add_argument("command")
    encode_at.add_argument("--param", help="parameter bytes as hex")
    encode_at.add_argument("--frame-id", type=int, default=1)
    encode_at.set_defaults(func=_run_encode_at)

    decode = sub.add_parser("decode", help="decode hex API frames")
    decode.add_argument("frames", nargs="+")
    decode.set_defaults(func=_run_decode)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
