"""AgentPose — the latest known pose of one rover in the fleet."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from flockpilot.geometry import wrap_angle


@dataclass(frozen=True)
class AgentPose:
    """Position and heading of a single agent in the shared world frame."""

    identity: str
    x: float  # metres
    y: float  # metres
    theta: float  # radians, (-pi, pi]
    last_seen: float = field(default_factory=time.monotonic, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "theta", wrap_angle(float(self.theta)))

    def age(self, now: float | None = None) -> float:
        """Seconds since this pose was recorded."""
        if now is None:
            now = time.monotonic()
        return now - self.last_seen

    def is_stale(self, max_age_s: float, now: float | None = None) -> bool:
        """True if older than *max_age_s* seconds."""
        return self.age(now) > max_age_s

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "x": self.x,
            "y": self.y,
            "theta": self.theta,
        }
