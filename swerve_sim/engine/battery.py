from __future__ import annotations

from .config import BatteryParams


class BatterySim:
    def __init__(self, params: BatteryParams):
        self.params = params
        self.voltage_v = params.nominal_v
        self.current_a = 0.0

    def update(self, total_current_a: float) -> float:
        p = self.params
        self.current_a = total_current_a
        self.voltage_v = max(p.min_v, p.nominal_v - p.internal_r_ohm * total_current_a)
        return self.voltage_v

    def reset(self) -> None:
        self.voltage_v = self.params.nominal_v
        self.current_a = 0.0
