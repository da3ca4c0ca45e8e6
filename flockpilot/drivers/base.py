from abc import ABC, abstractmethod
from typing import Dict

__all__ = ["DriverBase"]


class DriverBase(ABC):
    """Abstract base class for actuation drivers.

    Subclasses must implement ``move()``, ``stop()``, and ``close()``.
    """

    def health_check(self) -> Dict:
        """Check whether the actuation interface is usable.

        Returns a dict with keys:
            ``ok``    — True if commands can be delivered.
            ``mode``  — "bus", "simulation", ... depending on the driver.
            ``error`` — Error message string, or None on success.
        """
        return {"ok": True, "mode": "mock", "error": None}

    @abstractmethod
    def move(self, linear: float = 0.0, angular: float = 0.0) -> None:
        """Send a velocity command to the rover.

        Args:
            linear: Forward speed (m/s); rovers only drive forward autonomously.
            angular: Turn rate (rad/s), positive = counter-clockwise.
        """

    @abstractmethod
    def stop(self) -> None:
        """Immediately halt all motors."""

    @abstractmethod
    def close(self) -> None:
        """Release the actuation interface."""
