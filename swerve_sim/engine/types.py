from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class VoltageOut:
    voltage: float = 0.0


@dataclass(frozen=True)
class VelocityVoltage:
    velocity: float


@dataclass(frozen=True)
class PositionCurrent:
    position: float


ControlRequest = Union[VoltageOut, VelocityVoltage, PositionCurrent]

OUTPUT_VOLTAGE = "voltage"
OUTPUT_CURRENT = "current"


@dataclass(frozen=True)
class ControlOutput:
    value: float
    kind: str = OUTPUT_VOLTAGE


@dataclass(frozen=True)
class MotorOutput:
    torque_nm: float = 0.0
    current_a: float = 0.0
    voltage_v: float = 0.0


@dataclass(frozen=True)
class MechanismState:
    position_rad: float = 0.0
    velocity_rad_s: float = 0.0
    torque_nm: float = 0.0
    current_a: float = 0.0
    voltage_v: float = 0.0


@dataclass(frozen=True)
class ModuleState:
    drive: MechanismState
    steer: MechanismState
    wheel_position_m: float
    wheel_velocity_mps: float
    steer_facing_rad: float


@dataclass(frozen=True)
class GyroState:
    true_heading_rad: float = 0.0
    estimated_heading_rad: float = 0.0
    estimated_velocity_rad_s: float = 0.0
    drift_bias_rad_s: float = 0.0
    disturbance_rad_s: float = 0.0
    disturbance_ticks_left: int = 0


@dataclass
class SimStepOutput:
    time_s: float
    modules: list[ModuleState]
    gyro: GyroState
    true_omega_rad_s: float
    battery_v: float
    total_current_a: float
