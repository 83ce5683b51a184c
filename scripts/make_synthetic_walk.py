from __future__ import annotations
import argparse
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from gaitlab.pipeline.io_utils import samples_to_frame  # noqa: E402
from gaitlab.pipeline.synthetic import synthetic_walk  # noqa: E402


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Write a synthetic thigh IMU walk as CSV")
    ap.add_argument("out", type=Path)
    ap.add_argument("--duration", type=float, default=10.0, help="walking seconds")
    ap.add_argument("--fs", type=float, default=100.0)
    ap.add_argument("--step-hz", type=float, default=1.8)
    ap.add_argument("--rest", type=float, default=1.0, help="still seconds before and after")
    ap.add_argument("--noise", type=float, default=0.05)
    ap.add_argument("--altitude", type=float, default=None, help="start altitude [m]; enables pressure")
    ap.add_argument("--climb", type=float, default=0.0)
    ap.add_argument("--seed", type=int, default=0)
    args = ap.parse_args(argv)

    samples = synthetic_walk(
        duration_s=args.duration,
        fs=args.fs,
        step_hz=args.step_hz,
        rest_s=args.rest,
        noise_std=args.noise,
        start_alt_m=args.altitude,
        climb_m=args.climb,
        seed=args.seed,
    )
    samples_to_frame(samples).to_csv(args.out, index=False)
    print(f"wrote {len(samples)} samples to {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
