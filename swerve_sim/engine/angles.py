from __future__ import annotations

import math

TWO_PI = 2.0 * math.pi


def wrap_angle(a: float) -> float:
    """Wrap to (-pi, pi]."""
    r = math.fmod(a + math.pi, TWO_PI)
    if r <= 0.0:
        r += TWO_PI
    return r - math.pi


def wrap_facing(a: float) -> float:
    """Wrap to [-pi, pi)."""
    r = math.fmod(a + math.pi, TWO_PI)
    if r < 0.0:
        r += TWO_PI
    r -= math.pi
    # fmod can land exactly on pi after the shift for tiny negative inputs.
    if r >= math.pi:
        r -= TWO_PI
    return r
