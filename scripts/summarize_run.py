#!/usr/bin/env python3
import json
import sys
from pathlib import Path
from statistics import mean, median

STAGES = ("mask", "reconstruct", "cluster", "refine")


def safe_mean(xs):
    xs = [x for x in xs if x is not None]
    return mean(xs) if xs else None


def pct(n, d):
    return (100.0 * n / d) if d else 0.0


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/summarize_run.py results/run_YYYYMMDD_HHMMSS")
        sys.exit(1)

    run_dir = Path(sys.argv[1])
    lanes_path = run_dir / "lanes.json"
    if not lanes_path.exists():
        raise FileNotFoundError(f"Missing: {lanes_path}")

    records = json.loads(lanes_path.read_text())
    n = len(records)
    if n == 0:
        print("No inputs found in lanes.json")
        return

    decoded = [r for r in records if "lanes" in r]
    failed = n - len(decoded)
    lane_counts = [len(r["lanes"]) for r in decoded]
    points = [len(lane) for r in decoded for lane in r["lanes"]]

    print("\n============= pinet-lanes RUN SUMMARY =============")
    print(f"Run dir: {run_dir}")
    print(f"Inputs: {n}  decoded={len(decoded)}  failed={failed} ({pct(failed, n):.1f}%)")
    if lane_counts:
        print(f"Lanes per input  avg={mean(lane_counts):.2f}  med={median(lane_counts):.1f}  max={max(lane_counts)}")
    if points:
        print(f"Points per lane  avg={mean(points):.1f}  min={min(points)}  max={max(points)}")

    print("\nLatency (ms) (avg):")
    for stage in STAGES:
        sm = safe_mean([r["stats"]["stages_ms"].get(stage) for r in decoded])
        print(f"  {stage:12s} {sm:.3f}" if sm is not None else f"  {stage:12s} (missing)")

    print("\nDiscarded cells (total):")
    for key in ("out_of_bounds", "capacity_discarded", "outliers_removed"):
        print(f"  {key:20s} {sum(r['stats'][key] for r in decoded)}")
    empty = sum(1 for c in lane_counts if c == 0)
    print(f"\nInputs without lanes: {empty}/{len(decoded)} ({pct(empty, len(decoded)):.1f}%)")
    print("===================================================\n")


if __name__ == "__main__":
    main()
