"""Planar angle helpers shared by the blender and the controller."""

import math

__all__ = ["wrap_angle", "shortest_angular_difference"]


def wrap_angle(angle: float) -> float:
    """Wrap *angle* (radians) into the half-open interval (-pi, pi]."""
    if -math.pi < angle <= math.pi:
        return angle
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped < 0.0:
        wrapped += 2.0 * math.pi
    wrapped -= math.pi
    # fmod maps odd multiples of pi onto -pi; the interval excludes it
    if wrapped <= -math.pi:
        wrapped = math.pi
    return wrapped


def shortest_angular_difference(target: float, current: float) -> float:
    """Signed smallest rotation (radians) that takes *current* to *target*."""
    return wrap_angle(target - current)
