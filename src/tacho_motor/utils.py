"""
Numeric mapping utilities.

Every numeric input of a motor command is normalized here before it is
packed into a command buffer. Out-of-range values are clamped, never
rejected. NaN maps to 0 and infinities to the nearest bound.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


SPEED_MIN = -100
SPEED_MAX = 100
DEFAULT_SPEED = 100

DURATION_MIN = 0
DURATION_MAX = 0xFFFF  # uint16, milliseconds

ANGLE_MIN = -(2 ** 31)
ANGLE_MAX = 2 ** 31 - 1  # int32, degrees


def _clip(value: float, low: int, high: int) -> int:
    if isinstance(value, float):
        value = np.nan_to_num(value, nan=0.0, posinf=high, neginf=low)
    # int() truncates toward zero before clamping
    return int(np.clip(int(value), low, high))


def map_speed(speed: Optional[float]) -> int:
    """
    Map a requested speed onto the signed speed byte range.

    Args:
        speed: Requested speed, 100 is full forward, -100 full reverse and
            0 stops the motor. ``None`` selects the default (full forward).

    Returns:
        Integer in [-100, 100]. Values outside the range are clamped to the
        nearest boundary.
    """
    if speed is None:
        return DEFAULT_SPEED
    return _clip(speed, SPEED_MIN, SPEED_MAX)


def clamp_duration(duration_ms: float) -> int:
    """Clamp a duration in milliseconds to the uint16 range."""
    return _clip(duration_ms, DURATION_MIN, DURATION_MAX)


def clamp_angle(angle: float) -> int:
    """Clamp an angle in degrees to the int32 range."""
    return _clip(angle, ANGLE_MIN, ANGLE_MAX)
