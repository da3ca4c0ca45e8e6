"""Pose broadcast codec.

Wire format (one line of text per broadcast)::

    <identity> (<x>,<y>,<theta>)

The identity is everything before the first space.  On decode, alphabetic
characters, parentheses and spaces are stripped from the remainder and the
rest is split on commas, so ``"rover2 (1.5, -0.25, 3.1)"`` decodes the same
as the canonical ``"rover2 (1.500000000,-0.250000000,3.100000000)"``.
"""

from __future__ import annotations

import math
import re
from typing import Tuple

from flockpilot.errors import MalformedMessage
from flockpilot.swarm.pose import AgentPose

__all__ = ["encode", "decode", "decode_pose"]

# Fixed-point keeps exponent letters ("1e-07") out of the payload; the
# decoder strips every alphabetic character.
_PRECISION = 9

_STRIP_RE = re.compile(r"[A-Za-z() ]")


def encode(identity: str, pose: AgentPose) -> str:
    """Encode *pose* as a broadcast line for *identity*."""
    if not identity or any(ch.isspace() for ch in identity):
        raise ValueError(f"Identity must be non-empty without whitespace: {identity!r}")
    values = (pose.x, pose.y, pose.theta)
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"Cannot encode non-finite pose for '{identity}': {values}")
    body = ",".join(f"{v:.{_PRECISION}f}" for v in values)
    return f"{identity} ({body})"


def decode(text: str) -> Tuple[str, float, float, float]:
    """Decode a broadcast line into ``(identity, x, y, theta)``.

    Raises:
        MalformedMessage: no identity, or fewer than three numeric fields.
    """
    identity, sep, remainder = text.strip().partition(" ")
    if not identity or not sep:
        raise MalformedMessage(text, "missing identity or pose fields")

    fields = _STRIP_RE.sub("", remainder).split(",")
    numbers = []
    for field in fields:
        try:
            value = float(field)
        except ValueError:
            continue
        if math.isfinite(value):
            numbers.append(value)

    if len(numbers) < 3:
        raise MalformedMessage(text, f"expected 3 numeric fields, found {len(numbers)}")
    x, y, theta = numbers[:3]
    return identity, x, y, theta


def decode_pose(text: str, now: float | None = None) -> AgentPose:
    """Decode straight into an :class:`AgentPose`."""
    identity, x, y, theta = decode(text)
    if now is None:
        return AgentPose(identity, x, y, theta)
    return AgentPose(identity, x, y, theta, last_seen=now)
