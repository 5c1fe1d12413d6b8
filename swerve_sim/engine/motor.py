from __future__ import annotations

from typing import Optional

from .config import MotorConfig
from .types import OUTPUT_CURRENT, OUTPUT_VOLTAGE, MotorOutput


def _clamp(x: float, limit: Optional[float]) -> float:
    if limit is None:
        return x
    return max(-limit, min(limit, x))


def _sign(x: float) -> float:
    if x > 0:
        return 1.0
    if x < 0:
        return -1.0
    return 0.0


class MotorModel:
    """DC motor behind a gearbox. Stateless; every value is mechanism-referenced
    except the electrical quantities."""

    def __init__(self, config: MotorConfig):
        self.config = config
        self.gear_ratio = config.gear_ratio
        self.resistance_ohm = config.resistance_ohm
        self.kt = config.kt_nm_per_a
        self.ke = config.ke_v_per_rad_s

    def compute_torque(
        self,
        output: float,
        kind: str,
        mechanism_velocity_rad_s: float,
        supply_voltage_v: Optional[float] = None,
    ) -> MotorOutput:
        cfg = self.config
        rotor_rad_s = mechanism_velocity_rad_s * self.gear_ratio
        back_emf = self.ke * rotor_rad_s

        if kind == OUTPUT_VOLTAGE:
            voltage = _clamp(output, cfg.voltage_limit_v)
            voltage = _clamp(voltage, supply_voltage_v)
            current = (voltage - back_emf) / self.resistance_ohm
            current = _clamp(current, cfg.current_limit_a)
        elif kind == OUTPUT_CURRENT:
            current = _clamp(output, cfg.current_limit_a)
            voltage = current * self.resistance_ohm + back_emf
        else:
            raise ValueError(f"unknown control output kind {kind!r}")

        torque = self.kt * current * self.gear_ratio
        torque -= cfg.friction_torque_nm * _sign(mechanism_velocity_rad_s)
        return MotorOutput(torque_nm=torque, current_a=current, voltage_v=voltage)
