from __future__ import annotations

from typing import Optional

from .angles import wrap_angle
from .config import (
    ControllerConfig,
    MotorConfig,
    PositionCurrentConfig,
    VelocityVoltageConfig,
    VoltageOutConfig,
)
from .errors import ConfigurationError, UnsupportedControlRequestError, require_positive_dt
from .types import (
    OUTPUT_CURRENT,
    OUTPUT_VOLTAGE,
    ControlOutput,
    ControlRequest,
    MechanismState,
    PositionCurrent,
    VelocityVoltage,
    VoltageOut,
)


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


def max_monotonic_velocity_gain(motor: MotorConfig, inertia_kgm2: float, dt_s: float) -> float:
    """Largest mechanism-referenced VelocityVoltage gain that brakes to zero
    without overshoot for a frictionless load.

    One tick scales velocity by 1 - dt*kt*G*(kp + ke*G)/(R*J); the bound keeps
    that factor in [0, 1).
    """
    require_positive_dt(dt_s)
    if not inertia_kgm2 > 0:
        raise ConfigurationError(f"load inertia must be > 0, got {inertia_kgm2!r}")
    g = motor.gear_ratio
    bound = motor.resistance_ohm * inertia_kgm2 / (dt_s * motor.kt_nm_per_a * g) - motor.ke_v_per_rad_s * g
    return max(0.0, bound)


class ClosedLoopController:
    """Evaluates one actuator's control law each tick.

    Gains are stored mechanism-referenced; a rotor-referenced gain is scaled
    by the gear ratio here, once.
    """

    def __init__(self, config: ControllerConfig, motor: MotorConfig, continuous: bool = False):
        if not isinstance(config, (VoltageOutConfig, VelocityVoltageConfig, PositionCurrentConfig)):
            raise ConfigurationError(f"unsupported controller config {config!r}")
        self.config = config
        self.continuous = continuous
        self.friction_ff = motor.friction_compensation
        self.voltage_limit_v = motor.voltage_limit_v
        self.current_limit_a = motor.current_limit_a

        scale = motor.gear_ratio if getattr(config, "gain_at_rotor", False) else 1.0
        self.kp = getattr(config, "gain_p", 0.0) * scale
        self.kd = getattr(config, "gain_d", 0.0) * scale

        self.previous_error = 0.0
        self.last_request_type: type = VoltageOut

    def accepts(self, request: ControlRequest) -> bool:
        if isinstance(request, VoltageOut):
            return True
        if isinstance(request, VelocityVoltage):
            return isinstance(self.config, VelocityVoltageConfig)
        if isinstance(request, PositionCurrent):
            return isinstance(self.config, PositionCurrentConfig)
        return False

    def check(self, request: ControlRequest) -> None:
        if not self.accepts(request):
            raise UnsupportedControlRequestError(
                f"{type(request).__name__} is not supported by a {type(self.config).__name__} actuator"
            )

    def reset(self) -> None:
        self.previous_error = 0.0
        self.last_request_type = VoltageOut

    def step(self, request: ControlRequest, state: MechanismState, dt_s: float) -> ControlOutput:
        require_positive_dt(dt_s)
        self.check(request)

        if type(request) is not self.last_request_type:
            self.previous_error = 0.0
            self.last_request_type = type(request)

        if isinstance(request, VoltageOut):
            return ControlOutput(request.voltage, OUTPUT_VOLTAGE)

        if isinstance(request, VelocityVoltage):
            error = request.velocity - state.velocity_rad_s
            out = self.kp * error + self.friction_ff * _sign(request.velocity)
            return ControlOutput(_clamp(out, self.voltage_limit_v), OUTPUT_VOLTAGE)

        error = request.position - state.position_rad
        if self.continuous:
            # Shortest path; decides which way the steer turns near 180 deg.
            error = wrap_angle(error)
            delta = wrap_angle(error - self.previous_error)
        else:
            delta = error - self.previous_error
        derivative = delta / dt_s
        self.previous_error = error

        out = self.kp * error + self.kd * derivative + self.friction_ff * _sign(error)
        return ControlOutput(_clamp(out, self.current_limit_a), OUTPUT_CURRENT)
