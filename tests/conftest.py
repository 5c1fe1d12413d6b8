from __future__ import annotations

from pathlib import Path

import pytest

from swerve_sim.engine.config import (
    GyroParams,
    ModuleParams,
    MotorConfig,
    PositionCurrentConfig,
    VelocityVoltageConfig,
)

BUNDLED_CONFIG = Path(__file__).resolve().parents[1] / "swerve_sim" / "config"
BUNDLED_SCENARIO = Path(__file__).resolve().parents[1] / "swerve_sim" / "scenarios" / "default.yaml"

PHYSICS_DT = 0.004


def make_module_params(**overrides) -> ModuleParams:
    base = dict(
        wheel_radius_m=0.05,
        drive_motor=MotorConfig(gear_ratio=6.75, current_limit_a=60.0, voltage_limit_v=12.0),
        steer_motor=MotorConfig(gear_ratio=21.43, current_limit_a=40.0),
        drive_controller=VelocityVoltageConfig(gain_p=0.5),
        steer_controller=PositionCurrentConfig(gain_p=20.0, gain_d=0.5),
        drive_inertia_kgm2=0.025,
        steer_inertia_kgm2=0.004,
    )
    base.update(overrides)
    return ModuleParams(**base)


@pytest.fixture
def module_params() -> ModuleParams:
    return make_module_params()


@pytest.fixture
def quiet_gyro() -> GyroParams:
    return GyroParams(seed=1)


@pytest.fixture
def noisy_gyro() -> GyroParams:
    return GyroParams(
        seed=42,
        velocity_sigma_rad_s=0.01,
        drift_sigma_rad_s_per_sqrt_s=0.002,
        drift_bias_init_rad_s=0.001,
    )
