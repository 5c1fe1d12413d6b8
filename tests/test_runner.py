import csv
import json
import textwrap

import pytest

from conftest import BUNDLED_CONFIG, BUNDLED_SCENARIO
from swerve_sim.engine import runner
from swerve_sim.engine.errors import ConfigurationError
from swerve_sim.engine.scenario import ScriptedScenario, request_from_dict
from swerve_sim.engine.types import PositionCurrent, VelocityVoltage, VoltageOut
from swerve_sim.tools import analyze_trace


def test_request_from_dict():
    assert request_from_dict({"voltage": 3}) == VoltageOut(3.0)
    assert request_from_dict({"velocity": -2.5}) == VelocityVoltage(-2.5)
    assert request_from_dict({"position": 1.0}) == PositionCurrent(1.0)
    with pytest.raises(ConfigurationError):
        request_from_dict({"duty": 0.5})
    with pytest.raises(ConfigurationError):
        request_from_dict({"voltage": 1.0, "velocity": 2.0})


def test_scenario_walks_segments(tmp_path):
    path = tmp_path / "scn.yaml"
    path.write_text(
        textwrap.dedent(
            """
            segments:
              - duration_s: 0.04
                label: A
                drive: {voltage: 2.0}
              - duration_s: 0.02
                steer: {position: 1.0}
                collision_impulse_rad_s: 0.5
            """
        ),
        encoding="utf-8",
    )
    scn = ScriptedScenario.from_yaml(path)
    assert scn.segment_count() == 2

    seg, entered = scn.command(0.02)
    assert entered and seg.label == "A" and seg.drive == VoltageOut(2.0)
    seg, entered = scn.command(0.02)
    assert not entered and seg.label == "A"
    seg, entered = scn.command(0.02)
    assert entered and seg.steer == PositionCurrent(1.0) and seg.collision_impulse_rad_s == 0.5
    assert scn.current_label() == "SEGMENT_2"
    assert scn.command(0.02) == (None, False)
    assert scn.current_label() == "DONE"


def test_scenario_file_must_have_segments(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("steps: []\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ScriptedScenario.from_yaml(path)


def test_cli_writes_trace_events_and_report(tmp_path, capsys):
    out_dir = tmp_path / "run"
    runner.main(
        [
            "--config-dir",
            str(BUNDLED_CONFIG),
            "--scenario",
            str(BUNDLED_SCENARIO),
            "--out",
            str(out_dir),
            "--duration",
            "0.5",
        ]
    )
    assert "Simulation complete" in capsys.readouterr().out

    with (out_dir / "trace.csv").open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 25
    assert rows[0]["label"] == "ALIGN"
    assert "front_left_drive_pos_rad" in rows[0]
    assert "gyro_drift_bias_rad_s" in rows[0]

    events = (out_dir / "events.csv").read_text(encoding="utf-8")
    assert "segment" in events

    report = json.loads((out_dir / "report.json").read_text(encoding="utf-8"))
    assert report["duration_s"] == pytest.approx(0.5)
    assert set(report["final_state"]["modules"]) == {"front_left", "front_right", "back_left", "back_right"}

    analyze_trace.main([str(out_dir / "trace.csv"), "--report", str(out_dir / "report.json")])
    printed = capsys.readouterr().out
    assert "samples: 25" in printed
    assert "front_left: peak drive current" in printed


def test_cli_seed_override_is_reproducible(tmp_path):
    def trace(name):
        out_dir = tmp_path / name
        runner.main(
            [
                "--config-dir",
                str(BUNDLED_CONFIG),
                "--scenario",
                str(BUNDLED_SCENARIO),
                "--out",
                str(out_dir),
                "--duration",
                "0.3",
                "--seed",
                "7",
            ]
        )
        return (out_dir / "trace.csv").read_text(encoding="utf-8")

    assert trace("a") == trace("b")
