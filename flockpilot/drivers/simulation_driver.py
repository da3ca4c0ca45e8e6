"""Kinematic simulation driver.

Integrates a unicycle model so a fleet can be exercised without hardware::

    x'     = v cos(theta)
    y'     = v sin(theta)
    theta' = omega

Config::

    drivers:
      - protocol: simulation
        max_linear_vel: 1.0
        max_angular_vel: 1.5
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional, Tuple

from flockpilot.drivers.base import DriverBase
from flockpilot.geometry import wrap_angle

logger = logging.getLogger("FlockPilot.Driver.Simulation")


class SimulationDriver(DriverBase):
    """Holds the simulated rover's true pose and current velocity."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        start: Tuple[float, float, float] = (0.0, 0.0, 0.0),
    ):
        cfg = config or {}
        self._max_linear = float(cfg.get("max_linear_vel", 1.0))
        self._max_angular = float(cfg.get("max_angular_vel", 1.5))
        self.x, self.y, theta = (float(v) for v in start)
        self.theta = wrap_angle(theta)
        self.linear = 0.0
        self.angular = 0.0
        self.command_count = 0
        self.closed = False

    @property
    def pose(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.theta

    def move(self, linear: float = 0.0, angular: float = 0.0) -> None:
        self.linear = max(-self._max_linear, min(self._max_linear, float(linear)))
        self.angular = max(-self._max_angular, min(self._max_angular, float(angular)))
        self.command_count += 1

    def stop(self) -> None:
        self.move(0.0, 0.0)

    def step(self, dt: float) -> None:
        """Advance the rover by *dt* seconds at the current velocity."""
        self.x += self.linear * math.cos(self.theta) * dt
        self.y += self.linear * math.sin(self.theta) * dt
        self.theta = wrap_angle(self.theta + self.angular * dt)

    def close(self) -> None:
        self.closed = True

    def health_check(self) -> Dict:
        return {"ok": not self.closed, "mode": "simulation", "error": None}
