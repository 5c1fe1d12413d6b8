from __future__ import annotations

import logging
import math
from random import Random
from typing import Optional, Sequence

from .battery import BatterySim
from .config import ODOMETRY_CACHE_SIZE, BatteryParams, GyroParams, ModuleParams
from .errors import ConfigurationError, NumericalInstabilityError, require_positive_dt
from .gyro import GyroSim
from .module import SwerveModuleSim
from .types import SimStepOutput

logger = logging.getLogger(__name__)

MODULE_NAMES = ("front_left", "front_right", "back_left", "back_right")


class DrivetrainSim:
    """Owns the gyro, the battery and every swerve module of one chassis.

    All cross-module ordering goes through here: modules tick in a fixed order
    against the supply voltage left by the previous tick, then the gyro ticks,
    then the battery sees the new total current. A tick that fails in any
    module leaves every module as it was before the tick.
    """

    def __init__(
        self,
        module_params: ModuleParams,
        gyro_params: GyroParams,
        battery_params: Optional[BatteryParams] = None,
        module_count: int = 4,
        cache_size: int = ODOMETRY_CACHE_SIZE,
    ):
        if module_count < 1:
            raise ConfigurationError(f"module_count must be >= 1, got {module_count!r}")
        self.gyro_params = gyro_params
        self.cache_size = cache_size
        self.rng = Random(gyro_params.seed)
        names = MODULE_NAMES if module_count == len(MODULE_NAMES) else [f"module_{i}" for i in range(module_count)]
        self.modules = [SwerveModuleSim(module_params, name=n, cache_size=cache_size) for n in names]
        self.gyro = GyroSim(gyro_params, self.rng, cache_size=cache_size)
        self.battery = BatterySim(battery_params or BatteryParams())
        self.time_s = 0.0
        self.true_omega_rad_s = 0.0
        logger.info("drivetrain ready: %d modules, gyro seed %d", module_count, gyro_params.seed)

    def tick(
        self,
        true_angular_velocity_rad_s: float,
        dt_s: float,
        drive_external_torques_nm: Optional[Sequence[float]] = None,
    ) -> SimStepOutput:
        require_positive_dt(dt_s)
        if drive_external_torques_nm is None:
            drive_external_torques_nm = [0.0] * len(self.modules)
        elif len(drive_external_torques_nm) != len(self.modules):
            raise ValueError(
                f"expected {len(self.modules)} external torques, got {len(drive_external_torques_nm)}"
            )

        if not math.isfinite(true_angular_velocity_rad_s):
            raise NumericalInstabilityError(f"true angular velocity is not finite: {true_angular_velocity_rad_s!r}")

        supply_v = self.battery.voltage_v
        checkpoints = [m.checkpoint() for m in self.modules]
        try:
            for module, ext in zip(self.modules, drive_external_torques_nm):
                module.tick(dt_s, ext, supply_v)
        except Exception:
            for module, cp in zip(self.modules, checkpoints):
                module.restore(cp)
            raise
        self.gyro.tick(true_angular_velocity_rad_s, dt_s)
        self.battery.update(sum(m.total_current_a() for m in self.modules))

        self.time_s += dt_s
        self.true_omega_rad_s = true_angular_velocity_rad_s
        return self.snapshot()

    def simulation_period(
        self,
        true_angular_velocity_rad_s: float,
        control_dt_s: float,
        sub_ticks: int = 1,
    ) -> SimStepOutput:
        """Run one control period as `sub_ticks` physics ticks.

        Odometry caches are cleared first so they hold exactly this period's
        sub-tick samples afterwards.
        """
        require_positive_dt(control_dt_s)
        if sub_ticks < 1:
            raise ConfigurationError(f"sub_ticks must be >= 1, got {sub_ticks!r}")
        if sub_ticks > self.cache_size:
            raise ConfigurationError(f"sub_ticks {sub_ticks} exceeds the odometry cache size {self.cache_size}")
        for module in self.modules:
            module.begin_period()
        self.gyro.begin_period()

        dt_s = control_dt_s / sub_ticks
        out = None
        for _ in range(sub_ticks):
            out = self.tick(true_angular_velocity_rad_s, dt_s)
        return out

    def apply_collision_impulse(self, magnitude_rad_s: float) -> None:
        self.gyro.apply_collision_impulse(magnitude_rad_s)

    def snapshot(self) -> SimStepOutput:
        return SimStepOutput(
            time_s=self.time_s,
            modules=[m.get_state() for m in self.modules],
            gyro=self.gyro.state,
            true_omega_rad_s=self.true_omega_rad_s,
            battery_v=self.battery.voltage_v,
            total_current_a=self.battery.current_a,
        )

    def reset(self) -> None:
        """Return to the freshly constructed state, noise stream included."""
        for module in self.modules:
            module.reset()
        self.rng.seed(self.gyro_params.seed)
        self.gyro.reset()
        self.battery.reset()
        self.time_s = 0.0
        self.true_omega_rad_s = 0.0
        logger.debug("drivetrain reset")
