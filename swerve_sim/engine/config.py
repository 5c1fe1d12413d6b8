from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .errors import ConfigurationError

# Sub-tick samples kept per odometry cache between begin_period() calls.
ODOMETRY_CACHE_SIZE = 50


def _check(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigurationError(msg)


def _finite(v: float) -> bool:
    return isinstance(v, (int, float)) and math.isfinite(v)


@dataclass(frozen=True)
class MotorConfig:
    """Gearbox, DC motor constants and saturation for one actuator.

    Defaults describe a brushless FRC motor (stall 7.09 Nm / 366 A, 6000 rpm
    free speed at 12 V). Friction compensation is in volts for voltage laws and
    amps for current laws.
    """

    gear_ratio: float
    stall_torque_nm: float = 7.09
    stall_current_a: float = 366.0
    free_speed_rpm: float = 6000.0
    nominal_voltage_v: float = 12.0
    friction_compensation: float = 0.0
    friction_torque_nm: float = 0.0
    current_limit_a: Optional[float] = None
    voltage_limit_v: Optional[float] = None

    def __post_init__(self) -> None:
        _check(_finite(self.gear_ratio) and self.gear_ratio > 0, f"gear_ratio must be > 0, got {self.gear_ratio!r}")
        for name in ("stall_torque_nm", "stall_current_a", "free_speed_rpm", "nominal_voltage_v"):
            v = getattr(self, name)
            _check(_finite(v) and v > 0, f"{name} must be > 0, got {v!r}")
        for name in ("friction_compensation", "friction_torque_nm"):
            v = getattr(self, name)
            _check(_finite(v) and v >= 0, f"{name} must be >= 0, got {v!r}")
        for name in ("current_limit_a", "voltage_limit_v"):
            v = getattr(self, name)
            if v is not None:
                _check(_finite(v) and v > 0, f"{name} must be > 0 when set, got {v!r}")

    @property
    def free_speed_rad_s(self) -> float:
        return self.free_speed_rpm * 2.0 * math.pi / 60.0

    @property
    def resistance_ohm(self) -> float:
        return self.nominal_voltage_v / self.stall_current_a

    @property
    def kt_nm_per_a(self) -> float:
        return self.stall_torque_nm / self.stall_current_a

    @property
    def ke_v_per_rad_s(self) -> float:
        return self.nominal_voltage_v / self.free_speed_rad_s


def _check_gain(name: str, v: float) -> None:
    _check(_finite(v) and v >= 0, f"{name} must be a finite non-negative gain, got {v!r}")


@dataclass(frozen=True)
class VoltageOutConfig:
    pass


@dataclass(frozen=True)
class VelocityVoltageConfig:
    gain_p: float
    gain_at_rotor: bool = False

    def __post_init__(self) -> None:
        _check_gain("gain_p", self.gain_p)


@dataclass(frozen=True)
class PositionCurrentConfig:
    gain_p: float
    gain_d: float = 0.0
    gain_at_rotor: bool = False

    def __post_init__(self) -> None:
        _check_gain("gain_p", self.gain_p)
        _check_gain("gain_d", self.gain_d)


ControllerConfig = Union[VoltageOutConfig, VelocityVoltageConfig, PositionCurrentConfig]


@dataclass(frozen=True)
class ModuleParams:
    wheel_radius_m: float
    drive_motor: MotorConfig
    steer_motor: MotorConfig
    drive_controller: ControllerConfig = field(default_factory=VoltageOutConfig)
    steer_controller: ControllerConfig = field(default_factory=VoltageOutConfig)
    drive_inertia_kgm2: float = 0.025
    steer_inertia_kgm2: float = 0.004
    couple_steer_to_drive: bool = False
    couple_ratio: float = 0.0

    def __post_init__(self) -> None:
        _check(
            _finite(self.wheel_radius_m) and self.wheel_radius_m > 0,
            f"wheel_radius_m must be > 0, got {self.wheel_radius_m!r}",
        )
        for name in ("drive_inertia_kgm2", "steer_inertia_kgm2"):
            v = getattr(self, name)
            _check(_finite(v) and v > 0, f"{name} must be > 0, got {v!r}")
        _check(_finite(self.couple_ratio), f"couple_ratio must be finite, got {self.couple_ratio!r}")


@dataclass(frozen=True)
class GyroParams:
    seed: int = 0
    velocity_sigma_rad_s: float = 0.0
    drift_sigma_rad_s_per_sqrt_s: float = 0.0
    drift_bias_init_rad_s: float = 0.0
    collision_decay: float = 0.8
    collision_decay_ticks: int = 10

    def __post_init__(self) -> None:
        for name in ("velocity_sigma_rad_s", "drift_sigma_rad_s_per_sqrt_s"):
            v = getattr(self, name)
            _check(_finite(v) and v >= 0, f"{name} must be >= 0, got {v!r}")
        _check(_finite(self.drift_bias_init_rad_s), "drift_bias_init_rad_s must be finite")
        _check(
            _finite(self.collision_decay) and 0.0 <= self.collision_decay < 1.0,
            f"collision_decay must be in [0, 1), got {self.collision_decay!r}",
        )
        _check(
            isinstance(self.collision_decay_ticks, int) and self.collision_decay_ticks >= 1,
            f"collision_decay_ticks must be an integer >= 1, got {self.collision_decay_ticks!r}",
        )


@dataclass(frozen=True)
class BatteryParams:
    nominal_v: float = 12.0
    internal_r_ohm: float = 0.02
    min_v: float = 7.0

    def __post_init__(self) -> None:
        _check(_finite(self.nominal_v) and self.nominal_v > 0, "nominal_v must be > 0")
        _check(_finite(self.internal_r_ohm) and self.internal_r_ohm >= 0, "internal_r_ohm must be >= 0")
        _check(
            _finite(self.min_v) and 0 < self.min_v <= self.nominal_v,
            "min_v must be in (0, nominal_v]",
        )


@dataclass
class RunParams:
    dt_s: float = 0.02
    sub_ticks: int = 5
    duration_s: float = 5.0
    module_count: int = 4

    def __post_init__(self) -> None:
        _check(_finite(self.dt_s) and self.dt_s > 0, f"dt_s must be > 0, got {self.dt_s!r}")
        _check(isinstance(self.sub_ticks, int) and self.sub_ticks >= 1, "sub_ticks must be an integer >= 1")
        _check(_finite(self.duration_s) and self.duration_s >= 0, "duration_s must be >= 0")
        _check(isinstance(self.module_count, int) and self.module_count >= 1, "module_count must be >= 1")

    @property
    def physics_dt_s(self) -> float:
        return self.dt_s / self.sub_ticks


_CONTROLLER_LAWS = {
    "voltage_out": VoltageOutConfig,
    "velocity_voltage": VelocityVoltageConfig,
    "position_current": PositionCurrentConfig,
}


def _build(cls, raw: Any, what: str):
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{what} must be a mapping")
    try:
        return cls(**raw)
    except TypeError as exc:
        raise ConfigurationError(f"invalid {what}: {exc}") from exc


def controller_config_from_dict(raw: Any) -> ControllerConfig:
    if raw is None:
        return VoltageOutConfig()
    if not isinstance(raw, dict):
        raise ConfigurationError("controller config must be a mapping")
    body = dict(raw)
    law = body.pop("law", "voltage_out")
    cls = _CONTROLLER_LAWS.get(law)
    if cls is None:
        raise ConfigurationError(f"unknown control law {law!r}, expected one of {sorted(_CONTROLLER_LAWS)}")
    return _build(cls, body, f"{law} controller")


def module_params_from_dict(raw: Any) -> ModuleParams:
    if not isinstance(raw, dict):
        raise ConfigurationError("module config must be a mapping")
    body = dict(raw)
    for key in ("drive_motor", "steer_motor"):
        if key not in body:
            raise ConfigurationError(f"module config is missing {key}")
        body[key] = _build(MotorConfig, body[key], key)
    body["drive_controller"] = controller_config_from_dict(body.get("drive_controller"))
    body["steer_controller"] = controller_config_from_dict(body.get("steer_controller"))
    return _build(ModuleParams, body, "module config")


class ConfigManager:
    def __init__(self, config_dir: Path):
        self.config_dir = config_dir
        self.paths = {
            "module": config_dir / "module.yaml",
            "gyro": config_dir / "gyro.yaml",
            "battery": config_dir / "battery.yaml",
            "run": config_dir / "run.yaml",
        }

    def load_all(self) -> tuple[ModuleParams, GyroParams, BatteryParams, RunParams]:
        return (
            module_params_from_dict(self._load_yaml("module")),
            _build(GyroParams, self._load_yaml("gyro"), "gyro config"),
            _build(BatteryParams, self._load_yaml("battery"), "battery config"),
            _build(RunParams, self._load_yaml("run"), "run config"),
        )

    def _load_yaml(self, name: str) -> dict[str, Any]:
        path = self.paths[name]
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {path} is not a mapping")
        return data
