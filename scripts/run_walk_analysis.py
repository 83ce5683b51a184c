from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from gaitlab.config.settings import configure_logging  # noqa: E402
from gaitlab.pipeline.io_utils import read_samples_bytes, to_json_safe  # noqa: E402
from gaitlab.pipeline.pipeline import analyze_recording  # noqa: E402

logger = logging.getLogger("run_walk_analysis")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Gait metrics from thigh IMU CSV recordings")
    ap.add_argument("--local", required=True, type=Path, help="CSV of the local thigh sensor")
    ap.add_argument("--leg", default="LEFT", help="side of the local sensor (LEFT/RIGHT)")
    ap.add_argument("--remote", type=Path, help="optional CSV of the other thigh")
    ap.add_argument("--remote-leg", help="side of the remote sensor (default: opposite of --leg)")
    ap.add_argument("--no-raw", action="store_true", help="drop raw series from the output")
    ap.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING ...")
    args = ap.parse_args(argv)

    configure_logging(args.log_level)
    try:
        local = read_samples_bytes(args.local.read_bytes())
        remote = read_samples_bytes(args.remote.read_bytes()) if args.remote else None
        result = analyze_recording(local, args.leg, remote, args.remote_leg)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    if result is None:
        logger.error("insufficient walking in the recording(s)")
        return 3

    out = result.to_dict()
    if args.no_raw:
        out.pop("raw", None)
    print(json.dumps(to_json_safe(out), separators=(",", ":")))
    return 0


if __name__ == "__main__":
    sys.exit(main())
