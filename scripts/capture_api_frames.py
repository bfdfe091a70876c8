from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

from xbeelink.cli import frame_to_dict
from xbeelink.protocol.decoder import decode_frame
from xbeelink.protocol.errors import FrameError, UnknownFrameType
from xbeelink.protocol.reassembly import StreamReassembler


def _require_pyserial():
    try:
        import serial  # type: ignore
    except ImportError as exc:
        raise SystemExit(
            "pyserial is required. Install with `python -m pip install -e .`."
        ) from exc
    return serial


def _record(candidate: bytes) -> dict:
    try:
        payload = frame_to_dict(decode_frame(candidate))
    except UnknownFrameType as exc:
        payload = {"frame": "UnknownFrame", "frame_type": exc.frame_type, "data": exc.payload.hex()}
    except FrameError as exc:
        payload = {"error": type(exc).__name__, "reason": str(exc)}
    payload["hex"] = candidate.hex()
    payload["ts_ms"] = int(time.time() * 1000)
    return payload


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Capture API frames from a serial port and write them as JSONL."
    )
    parser.add_argument("--port", required=True)
    parser.add_argument("--baud", type=int, default=9600)
    parser.add_argument("--out", required=True, help="output JSONL path")
    parser.add_argument("--duration-s", type=float, default=0.0, help="0 means no limit")
    parser.add_argument("--max-frames", type=int, default=0, help="0 means no limit")
    parser.add_argument("--timeout-s", type=float, default=0.1)
    args = parser.parse_args()

    serial = _require_pyserial()
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    reassembler = StreamReassembler()

    with serial.Serial(args.port, args.baud, timeout=args.timeout_s) as ser:
        with out_path.open("a", encoding="utf-8") as fh:
            start = time.time()
            written = 0
            while True:
                if args.duration_s > 0 and time.time() - start >= args.duration_s:
                    break
                if args.max_frames > 0 and written >= args.max_frames:
                    break
                chunk = ser.read(max(1, ser.in_waiting))
                if not chunk:
                    continue
                for candidate in reassembler.feed(chunk):
                    fh.write(json.dumps(_record(candidate), ensure_ascii=True) + "\n")
                    fh.flush()
                    written += 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
