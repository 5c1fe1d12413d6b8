from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import replace
from random import Random

from .angles import wrap_angle
from .config import ODOMETRY_CACHE_SIZE, GyroParams
from .errors import ConfigurationError, NumericalInstabilityError, require_positive_dt
from .types import GyroState

logger = logging.getLogger(__name__)


class GyroSim:
    """Chassis gyro: integrates the true yaw rate into a noisy, drifting heading.

    Velocity noise is white; the drift bias is a random walk that is only
    cleared by reset(). Collision impulses add a yaw-rate disturbance that
    decays geometrically over a fixed number of ticks.
    """

    def __init__(self, params: GyroParams, rng: Random, cache_size: int = ODOMETRY_CACHE_SIZE):
        if cache_size < 1:
            raise ConfigurationError(f"cache_size must be >= 1, got {cache_size!r}")
        self.params = params
        self.rng = rng
        self.state = self._initial_state()
        self._cached_rotations: deque[float] = deque(maxlen=cache_size)

    def _initial_state(self) -> GyroState:
        return GyroState(drift_bias_rad_s=self.params.drift_bias_init_rad_s)

    def tick(self, true_angular_velocity_rad_s: float, dt_s: float) -> GyroState:
        require_positive_dt(dt_s)
        if not math.isfinite(true_angular_velocity_rad_s):
            raise NumericalInstabilityError(f"true angular velocity is not finite: {true_angular_velocity_rad_s!r}")

        p = self.params
        s = self.state

        disturbance = s.disturbance_rad_s
        ticks_left = s.disturbance_ticks_left
        if ticks_left > 0:
            next_disturbance = disturbance * p.collision_decay
            ticks_left -= 1
            if ticks_left == 0:
                next_disturbance = 0.0
        else:
            disturbance = 0.0
            next_disturbance = 0.0

        noise = self.rng.gauss(0.0, p.velocity_sigma_rad_s)
        drift_step = self.rng.gauss(0.0, p.drift_sigma_rad_s_per_sqrt_s) * math.sqrt(dt_s)

        est_velocity = true_angular_velocity_rad_s + noise + disturbance
        drift_bias = s.drift_bias_rad_s + drift_step

        self.state = GyroState(
            true_heading_rad=s.true_heading_rad + true_angular_velocity_rad_s * dt_s,
            estimated_heading_rad=s.estimated_heading_rad + est_velocity * dt_s + drift_bias * dt_s,
            estimated_velocity_rad_s=est_velocity,
            drift_bias_rad_s=drift_bias,
            disturbance_rad_s=next_disturbance,
            disturbance_ticks_left=ticks_left,
        )
        self._cached_rotations.append(wrap_angle(self.state.estimated_heading_rad))
        return self.state

    def apply_collision_impulse(self, magnitude_rad_s: float) -> None:
        if not math.isfinite(magnitude_rad_s):
            raise NumericalInstabilityError(f"collision impulse must be finite, got {magnitude_rad_s!r}")
        self.state = replace(
            self.state,
            disturbance_rad_s=magnitude_rad_s,
            disturbance_ticks_left=self.params.collision_decay_ticks,
        )
        logger.debug("collision impulse %.4f rad/s over %d ticks", magnitude_rad_s, self.params.collision_decay_ticks)

    def set_rotation(self, heading_rad: float) -> None:
        """Re-zero the reported heading, e.g. for a field-centric reset."""
        self.state = replace(self.state, estimated_heading_rad=heading_rad)

    def reset(self) -> None:
        self.state = self._initial_state()
        self._cached_rotations.clear()

    def begin_period(self) -> None:
        self._cached_rotations.clear()

    def get_gyro_rotation(self) -> float:
        return wrap_angle(self.state.estimated_heading_rad)

    def get_gyro_angular_velocity(self) -> float:
        return self.state.estimated_velocity_rad_s

    def get_true_heading(self) -> float:
        return self.state.true_heading_rad

    def cached_gyro_rotations(self) -> list[float]:
        return list(self._cached_rotations)
