from __future__ import annotations

import math

from .errors import ConfigurationError, NumericalInstabilityError, require_positive_dt
from .types import MechanismState


class MechanismIntegrator:
    """Advances one rotating mechanism under applied and external torque.

    Knows nothing about control laws; it integrates whatever torque it is given.
    """

    def __init__(self, state: MechanismState | None = None):
        self.state = state or MechanismState()

    def reset(self) -> None:
        self.state = MechanismState()

    def advance(
        self,
        torque_nm: float,
        load_inertia_kgm2: float,
        external_torque_nm: float,
        dt_s: float,
        current_a: float = 0.0,
        voltage_v: float = 0.0,
    ) -> MechanismState:
        require_positive_dt(dt_s)
        if not load_inertia_kgm2 > 0:
            raise ConfigurationError(f"load inertia must be > 0, got {load_inertia_kgm2!r}")

        s = self.state
        alpha = (torque_nm + external_torque_nm) / load_inertia_kgm2

        # Semi-implicit: velocity first, then position from the average
        # velocity over the step (exact under constant torque).
        velocity = s.velocity_rad_s + alpha * dt_s
        position = s.position_rad + 0.5 * (s.velocity_rad_s + velocity) * dt_s

        if not (math.isfinite(velocity) and math.isfinite(position)):
            raise NumericalInstabilityError(
                f"integration diverged: position={position!r} velocity={velocity!r} "
                f"(torque={torque_nm!r}, external={external_torque_nm!r}, dt={dt_s!r})"
            )

        self.state = MechanismState(
            position_rad=position,
            velocity_rad_s=velocity,
            torque_nm=torque_nm + external_torque_nm,
            current_a=current_a,
            voltage_v=voltage_v,
        )
        return self.state
