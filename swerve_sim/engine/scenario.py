from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigurationError
from .types import ControlRequest, PositionCurrent, VelocityVoltage, VoltageOut

_REQUEST_KEYS = {
    "voltage": VoltageOut,
    "velocity": VelocityVoltage,
    "position": PositionCurrent,
}


def request_from_dict(raw: Any) -> ControlRequest:
    """Parse `{voltage: v}`, `{velocity: w}` or `{position: a}`."""
    if not isinstance(raw, dict) or len(raw) != 1:
        raise ConfigurationError(f"control request must be a single-key mapping, got {raw!r}")
    (key, value), = raw.items()
    cls = _REQUEST_KEYS.get(key)
    if cls is None:
        raise ConfigurationError(f"unknown control request {key!r}, expected one of {sorted(_REQUEST_KEYS)}")
    return cls(float(value))


@dataclass
class Segment:
    duration_s: float
    drive: ControlRequest
    steer: ControlRequest
    chassis_omega_rad_s: float = 0.0
    collision_impulse_rad_s: float = 0.0
    label: str = ""


class ScriptedScenario:
    """Timed sequence of drive/steer requests applied to every module."""

    def __init__(self, segments: list[Segment]):
        self.segments = segments
        self._seg_i = 0
        self._seg_t = 0.0
        self._last_label = "IDLE"

    @classmethod
    def from_yaml(cls, path: Path) -> "ScriptedScenario":
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        if not isinstance(raw, dict) or "segments" not in raw:
            raise ConfigurationError(f"Invalid scenario file: {path}")

        segs: list[Segment] = []
        for item in raw["segments"]:
            if not isinstance(item, dict):
                raise ConfigurationError(f"scenario segment must be a mapping: {item!r}")
            duration = float(item["duration_s"])
            if duration <= 0:
                raise ConfigurationError(f"segment duration_s must be > 0, got {duration}")
            segs.append(
                Segment(
                    duration_s=duration,
                    drive=request_from_dict(item.get("drive", {"voltage": 0.0})),
                    steer=request_from_dict(item.get("steer", {"voltage": 0.0})),
                    chassis_omega_rad_s=float(item.get("chassis_omega_rad_s", 0.0)),
                    collision_impulse_rad_s=float(item.get("collision_impulse_rad_s", 0.0)),
                    label=str(item.get("label", "")),
                )
            )
        return cls(segs)

    def command(self, dt_s: float) -> tuple[Optional[Segment], bool]:
        """Return the active segment and whether this call entered it."""
        if self._seg_i >= len(self.segments):
            self._last_label = "DONE"
            return None, False

        seg = self.segments[self._seg_i]
        entered = self._seg_t == 0.0
        self._last_label = seg.label or f"SEGMENT_{self._seg_i + 1}"
        self._seg_t += dt_s
        if self._seg_t >= seg.duration_s - 1e-9:
            self._seg_i += 1
            self._seg_t = 0.0
        return seg, entered

    def segment_count(self) -> int:
        return len(self.segments)

    def current_label(self) -> str:
        return self._last_label
