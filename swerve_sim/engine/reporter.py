from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Sequence

from .angles import wrap_angle
from .types import SimStepOutput

_MODULE_COLUMNS = (
    "drive_pos_rad",
    "drive_vel_rad_s",
    "drive_current_a",
    "steer_pos_rad",
    "steer_facing_rad",
    "steer_current_a",
)


class TraceWriter:
    def __init__(self, out_dir: Path, module_names: Sequence[str]):
        self.out_dir = out_dir
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.module_names = list(module_names)

        self.trace_path = out_dir / "trace.csv"
        self.events_path = out_dir / "events.csv"

        self._trace_f = self.trace_path.open("w", newline="", encoding="utf-8")
        self._events_f = self.events_path.open("w", newline="", encoding="utf-8")
        self._trace = csv.writer(self._trace_f)
        self._events = csv.writer(self._events_f)

        header = ["time_s", "label"]
        for name in self.module_names:
            header.extend(f"{name}_{col}" for col in _MODULE_COLUMNS)
        header.extend(
            [
                "true_omega_rad_s",
                "true_heading_rad",
                "gyro_heading_rad",
                "gyro_omega_rad_s",
                "gyro_drift_bias_rad_s",
                "battery_v",
                "total_current_a",
            ]
        )
        self._trace.writerow(header)
        self._events.writerow(["time_s", "event", "details"])

        self.max_heading_error_rad = 0.0
        self.max_wheel_speed_mps = 0.0
        self.min_battery_v = float("inf")
        self.last: SimStepOutput | None = None

    def write(self, out: SimStepOutput, label: str = "") -> None:
        heading_err = abs(wrap_angle(out.gyro.estimated_heading_rad - out.gyro.true_heading_rad))
        self.max_heading_error_rad = max(self.max_heading_error_rad, heading_err)
        for m in out.modules:
            self.max_wheel_speed_mps = max(self.max_wheel_speed_mps, abs(m.wheel_velocity_mps))
        self.min_battery_v = min(self.min_battery_v, out.battery_v)
        self.last = out

        row = [f"{out.time_s:.6f}", label]
        for m in out.modules:
            row.extend(
                [
                    f"{m.drive.position_rad:.6f}",
                    f"{m.drive.velocity_rad_s:.6f}",
                    f"{m.drive.current_a:.4f}",
                    f"{m.steer.position_rad:.6f}",
                    f"{m.steer_facing_rad:.6f}",
                    f"{m.steer.current_a:.4f}",
                ]
            )
        row.extend(
            [
                f"{out.true_omega_rad_s:.6f}",
                f"{out.gyro.true_heading_rad:.6f}",
                f"{wrap_angle(out.gyro.estimated_heading_rad):.6f}",
                f"{out.gyro.estimated_velocity_rad_s:.6f}",
                f"{out.gyro.drift_bias_rad_s:.8f}",
                f"{out.battery_v:.4f}",
                f"{out.total_current_a:.4f}",
            ]
        )
        self._trace.writerow(row)

    def event(self, time_s: float, event: str, details: str) -> None:
        self._events.writerow([f"{time_s:.6f}", event, details])

    def close(self) -> None:
        self._trace_f.close()
        self._events_f.close()

    def write_report(self, out_dir: Path, duration_s: float) -> Path:
        report_path = out_dir / "report.json"
        last = self.last
        summary = {
            "duration_s": duration_s,
            "max_heading_error_rad": self.max_heading_error_rad,
            "max_wheel_speed_mps": self.max_wheel_speed_mps,
            "min_battery_v": self.min_battery_v if last else None,
            "final_state": {
                "gyro_heading_rad": wrap_angle(last.gyro.estimated_heading_rad) if last else 0.0,
                "true_heading_rad": last.gyro.true_heading_rad if last else 0.0,
                "modules": {
                    name: {
                        "wheel_position_m": m.wheel_position_m,
                        "wheel_velocity_mps": m.wheel_velocity_mps,
                        "steer_facing_rad": m.steer_facing_rad,
                    }
                    for name, m in zip(self.module_names, last.modules if last else [])
                },
            },
        }
        report_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        return report_path
