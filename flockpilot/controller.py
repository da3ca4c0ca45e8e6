"""
FlockPilot Mode Controller -- manual passthrough or autonomous heading tracking.

In manual mode externally supplied velocities pass through untouched.  In
autonomous mode they are ignored and every control tick steers toward the
commanded heading with a proportional gain at a fixed cruise speed.

Config format::

    control:
      k_p: 0.1              # rad/s per rad of heading error
      cruise_speed: 0.05    # forward speed while autonomous
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Dict, Optional

from flockpilot.geometry import shortest_angular_difference

logger = logging.getLogger("FlockPilot.Controller")

__all__ = [
    "ControllerState",
    "Maneuver",
    "ModeSignal",
    "VelocityCommand",
    "ModeController",
]


class ControllerState(Enum):
    MANUAL = "manual"
    AUTONOMOUS_ENGAGING = "autonomous_engaging"
    AUTONOMOUS = "autonomous"


class Maneuver(Enum):
    """Operating sub-state while autonomous.  Value is the status label."""

    TRANSLATE = "TRANSLATING"


class ModeSignal(IntEnum):
    """Mode values published upstream.  Both autonomous variants behave the same."""

    IDLE = 0
    MANUAL = 1
    AUTONOMOUS = 2
    AUTONOMOUS_ALT = 3

    @classmethod
    def is_autonomous(cls, value: int) -> bool:
        return value in (cls.AUTONOMOUS, cls.AUTONOMOUS_ALT)


@dataclass(frozen=True)
class VelocityCommand:
    """One actuation command: forward speed and signed turn rate."""

    linear: float = 0.0
    angular: float = 0.0

    @classmethod
    def zero(cls) -> "VelocityCommand":
        return cls(0.0, 0.0)

    @property
    def is_zero(self) -> bool:
        return self.linear == 0.0 and self.angular == 0.0

    def to_dict(self) -> dict:
        return {"linear": self.linear, "angular": self.angular}


class ModeController:
    """Turns mode signals, manual commands and a commanded heading into velocities."""

    def __init__(self, config: dict):
        ctl_cfg = config.get("control", {})
        self.k_p = float(ctl_cfg.get("k_p", 0.1))
        self.cruise_speed = float(ctl_cfg.get("cruise_speed", 0.05))

        self.state = ControllerState.MANUAL
        self.maneuver = Maneuver.TRANSLATE
        self.mode_value: int = int(ModeSignal.IDLE)
        self.transitions_to_auto = 0
        self.auto_engaged_at: Optional[float] = None

        self._maneuvers: Dict[Maneuver, Callable[[float, float], VelocityCommand]] = {
            Maneuver.TRANSLATE: self._translate,
        }

    @property
    def is_autonomous(self) -> bool:
        return self.state is not ControllerState.MANUAL

    # ------------------------------------------------------------------
    # External events
    # ------------------------------------------------------------------

    def on_mode(self, value: int) -> VelocityCommand:
        """Apply a mode signal.  Always returns a zero command (mode changes stop the rover)."""
        value = int(value)
        if value not in {m.value for m in ModeSignal}:
            logger.warning(f"Unknown mode value {value}; treating as manual")
        self.mode_value = value

        if ModeSignal.is_autonomous(value):
            if self.state is ControllerState.MANUAL:
                self.state = ControllerState.AUTONOMOUS_ENGAGING
                logger.info(f"Mode {value}: engaging autonomous control")
        elif self.state is not ControllerState.MANUAL:
            self.state = ControllerState.MANUAL
            logger.info(f"Mode {value}: manual control")
        return VelocityCommand.zero()

    def on_manual(self, linear: float, angular: float) -> Optional[VelocityCommand]:
        """Pass a manual command through, or ``None`` while autonomous."""
        if self.state is not ControllerState.MANUAL:
            return None
        return VelocityCommand(float(linear), float(angular))

    def tick(
        self,
        commanded_heading: float,
        current_heading: float,
        now: Optional[float] = None,
    ) -> Optional[VelocityCommand]:
        """Run one control step.  Returns ``None`` in manual mode."""
        if self.state is ControllerState.MANUAL:
            return None

        if self.state is ControllerState.AUTONOMOUS_ENGAGING:
            if self.transitions_to_auto == 0:
                self.auto_engaged_at = now if now is not None else time.time()
            self.transitions_to_auto += 1
            self.state = ControllerState.AUTONOMOUS

        handler = self._maneuvers.get(self.maneuver)
        if handler is None:
            logger.error(f"No handler for maneuver {self.maneuver}")
            return None
        return handler(commanded_heading, current_heading)

    # ------------------------------------------------------------------
    # Maneuvers
    # ------------------------------------------------------------------

    def _translate(self, commanded_heading: float, current_heading: float) -> VelocityCommand:
        error = shortest_angular_difference(commanded_heading, current_heading)
        return VelocityCommand(self.cruise_speed, self.k_p * error)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status_text(self) -> str:
        """Operator-facing status line for the state machine topic."""
        if self.is_autonomous:
            return self.maneuver.value
        return f"WAITING, CURRENT MODE: {self.mode_value}"

    def get_status(self) -> dict:
        return {
            "state": self.state.value,
            "maneuver": self.maneuver.name,
            "mode": self.mode_value,
            "transitions_to_auto": self.transitions_to_auto,
            "auto_engaged_at": self.auto_engaged_at,
        }
