"""
flockpilot/drivers/bus_driver.py — publish velocity commands on the bus.

Sends ``{"linear": .., "angular": ..}`` to ``<identity>/velocity`` for a
motor bridge on the other side of the transport to execute.

Config example::

    drivers:
    - protocol: bus
      max_linear_vel: 1.0
      max_angular_vel: 1.5
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flockpilot.drivers.base import DriverBase
from flockpilot.transport import topics
from flockpilot.transport.base import BusBase

logger = logging.getLogger("FlockPilot.Driver.Bus")


class BusDriver(DriverBase):
    """Velocity publisher with per-axis clamping."""

    def __init__(self, bus: BusBase, identity: str, config: Optional[Dict[str, Any]] = None):
        cfg = config or {}
        self._bus = bus
        self._topic = topics.agent_topic(identity, "velocity")
        self._max_linear: float = float(cfg.get("max_linear_vel", 1.0))
        self._max_angular: float = float(cfg.get("max_angular_vel", 1.5))
        self._closed = False
        self.last_command: Optional[Dict[str, float]] = None

    def move(self, linear: float = 0.0, angular: float = 0.0) -> None:
        if self._closed:
            logger.warning("Velocity command after close ignored")
            return
        linear = max(-self._max_linear, min(self._max_linear, linear))
        angular = max(-self._max_angular, min(self._max_angular, angular))
        self._bus.publish(self._topic, topics.encode_twist(linear, angular))
        self.last_command = {"linear": linear, "angular": angular}

    def stop(self) -> None:
        self.move(0.0, 0.0)

    def close(self) -> None:
        self._closed = True
        logger.info("Bus driver closed (%s)", self._topic)

    def health_check(self) -> Dict:
        if self._closed:
            return {"ok": False, "mode": "bus", "error": "driver closed"}
        return {"ok": True, "mode": "bus", "error": None}
