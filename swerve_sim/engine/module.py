from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from .angles import wrap_facing
from .config import ODOMETRY_CACHE_SIZE, ControllerConfig, ModuleParams, MotorConfig
from .controller import ClosedLoopController
from .errors import ConfigurationError, UnsupportedControlRequestError, require_positive_dt
from .integrator import MechanismIntegrator
from .motor import MotorModel
from .types import ControlRequest, MechanismState, ModuleState, VoltageOut

logger = logging.getLogger(__name__)


class ActuatorSim:
    """Controller -> motor -> integrator chain for one drive or steer axis."""

    def __init__(
        self,
        name: str,
        motor: MotorConfig,
        controller: ControllerConfig,
        inertia_kgm2: float,
        continuous: bool = False,
    ):
        self.name = name
        self.motor = MotorModel(motor)
        self.controller = ClosedLoopController(controller, motor, continuous=continuous)
        self.integrator = MechanismIntegrator()
        self.inertia_kgm2 = inertia_kgm2
        self.active: ControlRequest = VoltageOut(0.0)
        self._pending: ControlRequest = self.active

    @property
    def state(self) -> MechanismState:
        return self.integrator.state

    @property
    def gear_ratio(self) -> float:
        return self.motor.gear_ratio

    def request(self, request: ControlRequest) -> None:
        try:
            self.controller.check(request)
        except UnsupportedControlRequestError:
            logger.warning("%s rejected %r; keeping %r", self.name, request, self._pending)
            raise
        self._pending = request

    def latch(self) -> None:
        self.active = self._pending

    def step(self, dt_s: float, external_torque_nm: float, supply_voltage_v: Optional[float]) -> MechanismState:
        s = self.integrator.state
        out = self.controller.step(self.active, s, dt_s)
        m = self.motor.compute_torque(out.value, out.kind, s.velocity_rad_s, supply_voltage_v)
        return self.integrator.advance(
            m.torque_nm,
            self.inertia_kgm2,
            external_torque_nm,
            dt_s,
            current_a=m.current_a,
            voltage_v=m.voltage_v,
        )

    def snapshot(self) -> tuple:
        c = self.controller
        return self.integrator.state, c.previous_error, c.last_request_type, self.active

    def restore(self, snap: tuple) -> None:
        c = self.controller
        self.integrator.state, c.previous_error, c.last_request_type, self.active = snap

    def reset(self) -> None:
        self.integrator.reset()
        self.controller.reset()
        self.active = VoltageOut(0.0)
        self._pending = self.active


class SwerveModuleSim:
    """One swerve module: a drive actuator and a continuous steer actuator.

    Requests are buffered and latched at the start of the next tick. Reads
    return the snapshot published by the last completed tick.
    """

    def __init__(self, params: ModuleParams, name: str = "module", cache_size: int = ODOMETRY_CACHE_SIZE):
        if cache_size < 1:
            raise ConfigurationError(f"cache_size must be >= 1, got {cache_size!r}")
        self.params = params
        self.name = name
        self.cache_size = cache_size
        self.wheel_radius_m = params.wheel_radius_m
        self.drive = ActuatorSim(
            f"{name}.drive",
            params.drive_motor,
            params.drive_controller,
            params.drive_inertia_kgm2,
        )
        self.steer = ActuatorSim(
            f"{name}.steer",
            params.steer_motor,
            params.steer_controller,
            params.steer_inertia_kgm2,
            continuous=True,
        )
        self._cached_wheel_positions: deque[float] = deque(maxlen=cache_size)
        self._cached_facings: deque[float] = deque(maxlen=cache_size)
        self._published = self._compose()
        logger.debug(
            "%s: drive ratio %.3f, steer ratio %.3f, wheel radius %.4f m, coupled=%s",
            name,
            self.drive.gear_ratio,
            self.steer.gear_ratio,
            self.wheel_radius_m,
            params.couple_steer_to_drive,
        )

    def request_drive_control(self, request: ControlRequest) -> None:
        self.drive.request(request)

    def request_steer_control(self, request: ControlRequest) -> None:
        self.steer.request(request)

    def tick(
        self,
        dt_s: float,
        drive_external_torque_nm: float = 0.0,
        supply_voltage_v: Optional[float] = None,
    ) -> ModuleState:
        require_positive_dt(dt_s)
        drive_snap = self.drive.snapshot()
        steer_snap = self.steer.snapshot()
        try:
            self.drive.latch()
            self.steer.latch()

            steer = self.steer.step(dt_s, 0.0, supply_voltage_v)
            external = drive_external_torque_nm
            if self.params.couple_steer_to_drive:
                external -= self.params.couple_ratio * steer.torque_nm
            self.drive.step(dt_s, external, supply_voltage_v)
        except Exception:
            self.drive.restore(drive_snap)
            self.steer.restore(steer_snap)
            raise

        self._published = self._compose()
        self._cached_wheel_positions.append(self._published.drive.position_rad)
        self._cached_facings.append(self._published.steer_facing_rad)
        return self._published

    def _compose(self) -> ModuleState:
        drive = self.drive.state
        steer = self.steer.state
        return ModuleState(
            drive=drive,
            steer=steer,
            wheel_position_m=drive.position_rad * self.wheel_radius_m,
            wheel_velocity_mps=drive.velocity_rad_s * self.wheel_radius_m,
            steer_facing_rad=wrap_facing(steer.position_rad),
        )

    def checkpoint(self) -> tuple:
        """Capture everything a tick mutates so a caller can undo it."""
        return (
            self.drive.snapshot(),
            self.steer.snapshot(),
            self._published,
            tuple(self._cached_wheel_positions),
            tuple(self._cached_facings),
        )

    def restore(self, checkpoint: tuple) -> None:
        drive, steer, published, wheel_positions, facings = checkpoint
        self.drive.restore(drive)
        self.steer.restore(steer)
        self._published = published
        self._cached_wheel_positions = deque(wheel_positions, maxlen=self.cache_size)
        self._cached_facings = deque(facings, maxlen=self.cache_size)

    def reset(self) -> None:
        self.drive.reset()
        self.steer.reset()
        self._cached_wheel_positions.clear()
        self._cached_facings.clear()
        self._published = self._compose()
        logger.debug("%s reset", self.name)

    def begin_period(self) -> None:
        self._cached_wheel_positions.clear()
        self._cached_facings.clear()

    def get_state(self) -> ModuleState:
        return self._published

    def get_steer_absolute_facing(self) -> float:
        return self._published.steer_facing_rad

    def get_steer_relative_encoder_position(self) -> float:
        return self._published.steer.position_rad

    def get_steer_velocity(self) -> float:
        return self._published.steer.velocity_rad_s

    def get_drive_wheel_final_position(self) -> float:
        return self._published.drive.position_rad

    def get_drive_wheel_final_velocity(self) -> float:
        return self._published.drive.velocity_rad_s

    def get_drive_wheel_distance(self) -> float:
        return self._published.wheel_position_m

    def get_drive_wheel_velocity(self) -> float:
        return self._published.wheel_velocity_mps

    def get_drive_rotor_position(self) -> float:
        return self._published.drive.position_rad * self.drive.gear_ratio

    def get_steer_rotor_position(self) -> float:
        return self._published.steer.position_rad * self.steer.gear_ratio

    def get_drive_current(self) -> float:
        return self._published.drive.current_a

    def get_steer_current(self) -> float:
        return self._published.steer.current_a

    def get_drive_applied_voltage(self) -> float:
        return self._published.drive.voltage_v

    def get_steer_applied_voltage(self) -> float:
        return self._published.steer.voltage_v

    def total_current_a(self) -> float:
        return abs(self._published.drive.current_a) + abs(self._published.steer.current_a)

    def cached_drive_wheel_positions(self) -> list[float]:
        return list(self._cached_wheel_positions)

    def cached_steer_facings(self) -> list[float]:
        return list(self._cached_facings)
