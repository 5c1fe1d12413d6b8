from __future__ import annotations


class SwerveSimError(ValueError):
    """Base class for every error raised by the simulation core."""


class ConfigurationError(SwerveSimError):
    """Invalid construction-time value. The simulation must not start."""


class InvalidTimestepError(SwerveSimError):
    def __init__(self, dt_s: float):
        super().__init__(f"timestep must be positive, got dt={dt_s!r}")
        self.dt_s = dt_s


class NumericalInstabilityError(SwerveSimError):
    """Integration produced a NaN or infinite value."""


class UnsupportedControlRequestError(SwerveSimError):
    """The actuator's controller is not configured for the requested law."""


def require_positive_dt(dt_s: float) -> None:
    # NaN fails this comparison too.
    if not dt_s > 0.0:
        raise InvalidTimestepError(dt_s)
