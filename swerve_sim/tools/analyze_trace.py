#!/usr/bin/env python3
from __future__ import annotations

import argparse
import csv
import json
import math
from pathlib import Path
from typing import Optional, Sequence


def summarize(rows: list[dict[str, str]]) -> dict[str, object]:
    final = rows[-1]
    heading_err = [
        abs(math.remainder(float(r["gyro_heading_rad"]) - float(r["true_heading_rad"]), 2.0 * math.pi))
        for r in rows
    ]
    modules = sorted({k[: -len("_drive_pos_rad")] for k in rows[0] if k.endswith("_drive_pos_rad")})
    return {
        "samples": len(rows),
        "final_time_s": float(final["time_s"]),
        "max_heading_error_rad": max(heading_err),
        "final_drift_bias_rad_s": float(final["gyro_drift_bias_rad_s"]),
        "min_battery_v": min(float(r["battery_v"]) for r in rows),
        "max_drive_current_a": {
            m: max(abs(float(r[f"{m}_drive_current_a"])) for r in rows) for m in modules
        },
    }


def main(argv: Optional[Sequence[str]] = None) -> None:
    p = argparse.ArgumentParser(description="Analyze swerve simulator trace")
    p.add_argument("trace", type=str)
    p.add_argument("--report", type=str, default=None, help="Optional report.json path")
    args = p.parse_args(argv)

    path = Path(args.trace)
    with path.open("r", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    if not rows:
        print("Empty trace")
        return

    summary = summarize(rows)
    print(f"samples: {summary['samples']}")
    print(f"final time: {summary['final_time_s']:.3f} s")
    print(f"max gyro heading error: {summary['max_heading_error_rad']:.4f} rad")
    print(f"final drift bias: {summary['final_drift_bias_rad_s']:.6f} rad/s")
    print(f"min battery: {summary['min_battery_v']:.3f} V")
    for name, amps in summary["max_drive_current_a"].items():
        print(f"  {name}: peak drive current {amps:.1f} A")

    if args.report:
        report_path = Path(args.report)
        if report_path.exists():
            report = json.loads(report_path.read_text(encoding="utf-8"))
            print(f"report max heading error: {report.get('max_heading_error_rad', 0.0):.4f} rad")


if __name__ == "__main__":
    main()
