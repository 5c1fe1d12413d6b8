from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .config import ODOMETRY_CACHE_SIZE, ConfigManager
from .drivetrain import DrivetrainSim
from .reporter import TraceWriter
from .scenario import ScriptedScenario
from .types import VoltageOut

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[1]


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Headless swerve module and gyro simulator")
    p.add_argument("--config-dir", default=str(ROOT / "config"), type=str)
    p.add_argument("--scenario", default=str(ROOT / "scenarios" / "default.yaml"), type=str)
    p.add_argument("--out", default="output/run", type=str)
    p.add_argument("--duration", default=None, type=float)
    p.add_argument("--seed", default=None, type=int, help="Override the gyro noise seed")
    p.add_argument("--realtime", action="store_true", help="Pace the loop to wall-clock time")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _build_arg_parser().parse_args(argv)
    setup_logging(args.verbose)

    cfg = ConfigManager(Path(args.config_dir).resolve())
    module, gyro, battery, run = cfg.load_all()
    if args.duration is not None:
        run.duration_s = args.duration
    if args.seed is not None:
        gyro = replace(gyro, seed=args.seed)

    drivetrain = DrivetrainSim(
        module,
        gyro,
        battery,
        module_count=run.module_count,
        cache_size=max(ODOMETRY_CACHE_SIZE, run.sub_ticks),
    )
    scenario = ScriptedScenario.from_yaml(Path(args.scenario).resolve())
    logger.info(
        "running %d segments for %.2fs at %.1f Hz control, %d sub-ticks",
        scenario.segment_count(),
        run.duration_s,
        1.0 / run.dt_s,
        run.sub_ticks,
    )

    out_dir = Path(args.out).resolve()
    writer = TraceWriter(out_dir, [m.name for m in drivetrain.modules])

    t = 0.0
    omega = 0.0
    stopped = False
    sim_start = time.perf_counter()
    try:
        while t < run.duration_s - 1e-9:
            wall_loop_start = time.perf_counter()

            seg, entered = scenario.command(run.dt_s)
            if seg is not None:
                omega = seg.chassis_omega_rad_s
                if entered:
                    for m in drivetrain.modules:
                        m.request_drive_control(seg.drive)
                        m.request_steer_control(seg.steer)
                    writer.event(t, "segment", scenario.current_label())
                    if seg.collision_impulse_rad_s:
                        drivetrain.apply_collision_impulse(seg.collision_impulse_rad_s)
                        writer.event(
                            t,
                            "collision",
                            json.dumps({"impulse_rad_s": seg.collision_impulse_rad_s}),
                        )
            elif not stopped:
                stopped = True
                omega = 0.0
                for m in drivetrain.modules:
                    m.request_drive_control(VoltageOut(0.0))
                    m.request_steer_control(VoltageOut(0.0))
                writer.event(t, "scenario_done", "")

            out = drivetrain.simulation_period(omega, run.dt_s, run.sub_ticks)
            writer.write(out, scenario.current_label())

            t += run.dt_s
            if args.realtime:
                sleep_s = run.dt_s - (time.perf_counter() - wall_loop_start)
                if sleep_s > 0:
                    time.sleep(sleep_s)
    finally:
        writer.close()

    report_path = writer.write_report(out_dir, t)
    sim_elapsed = time.perf_counter() - sim_start

    print(f"Simulation complete in {sim_elapsed:.3f}s (sim time {t:.3f}s)")
    print(f"Trace: {writer.trace_path}")
    print(f"Events: {writer.events_path}")
    print(f"Report: {report_path}")


if __name__ == "__main__":
    main()
