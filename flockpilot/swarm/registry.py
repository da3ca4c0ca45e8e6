"""PeerPoseRegistry — fixed-capacity table of the fleet's latest poses.

Each distinct identity claims the first empty slot the first time it is
seen and keeps that slot for the lifetime of the process.  The capacity is
the configured fleet size; observing more identities than that raises
:class:`~flockpilot.errors.RosterFull` rather than evicting anyone.
"""

from __future__ import annotations

import logging
import time
from typing import Iterator, List, Optional, Tuple

from flockpilot.errors import RosterFull
from flockpilot.swarm.pose import AgentPose

logger = logging.getLogger("FlockPilot.Registry")


class PeerPoseRegistry:
    """Slot table mapping agent identity to its most recent pose."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Fleet size must be at least 1, got {capacity}")
        self._slots: List[Optional[AgentPose]] = [None] * capacity
        self._index: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def upsert(
        self,
        identity: str,
        x: float,
        y: float,
        theta: float,
        now: float | None = None,
    ) -> int:
        """Store a pose for *identity* and return its slot index.

        Raises:
            RosterFull: *identity* is new and every slot is already claimed.
        """
        if now is None:
            now = time.monotonic()
        # A claimed slot is never empty
        pose = AgentPose(identity, x, y, theta, last_seen=now)
        index = self._index.get(identity)
        if index is None:
            index = self._claim(identity)
        self._slots[index] = pose
        return index

    def get(self, index: int) -> Optional[AgentPose]:
        if 0 <= index < len(self._slots):
            return self._slots[index]
        return None

    def index_of(self, identity: str) -> Optional[int]:
        return self._index.get(identity)

    def size(self) -> int:
        """Configured fleet size (number of slots, filled or not)."""
        return len(self._slots)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def occupied(self) -> Iterator[Tuple[int, AgentPose]]:
        """Yield ``(index, pose)`` for every filled slot in slot order."""
        for index, pose in enumerate(self._slots):
            if pose is not None:
                yield index, pose

    def identities(self) -> List[str]:
        return [pose.identity for _, pose in self.occupied()]

    def is_full(self) -> bool:
        return len(self._index) == len(self._slots)

    def to_dict(self) -> dict:
        return {
            "size": self.size(),
            "occupied": len(self._index),
            "slots": [pose.to_dict() if pose else None for pose in self._slots],
        }

    def _claim(self, identity: str) -> int:
        if self.is_full():
            raise RosterFull(identity, len(self._slots))
        index = self._slots.index(None)
        self._index[identity] = index
        logger.info(f"Registered '{identity}' in slot {index}")
        return index

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return f"PeerPoseRegistry(size={self.size()}, occupied={len(self._index)})"
