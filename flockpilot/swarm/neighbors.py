"""Neighbor graph builder: which peers are within interaction range."""

from __future__ import annotations

import math
import time
from typing import List, NamedTuple, Optional

from flockpilot.swarm.registry import PeerPoseRegistry

__all__ = ["Neighbor", "neighbors_of", "DEFAULT_INTERACTION_RADIUS"]

DEFAULT_INTERACTION_RADIUS = 2.0


class Neighbor(NamedTuple):
    """One edge of the proximity graph, seen from the querying agent."""

    index: int
    distance: float
    dx: float  # peer.x - self.x
    dy: float  # peer.y - self.y


def neighbors_of(
    self_index: int,
    registry: PeerPoseRegistry,
    interaction_radius: float = DEFAULT_INTERACTION_RADIUS,
    max_age_s: Optional[float] = None,
    now: Optional[float] = None,
) -> List[Neighbor]:
    """Return every other occupied slot within *interaction_radius* of *self_index*.

    Results are in slot order.  If *max_age_s* is given, peers whose pose is
    older than that are left out; by default staleness is ignored.
    """
    me = registry.get(self_index)
    if me is None:
        return []
    if max_age_s is not None and now is None:
        now = time.monotonic()

    result = []
    for index, peer in registry.occupied():
        if index == self_index:
            continue
        if max_age_s is not None and peer.is_stale(max_age_s, now):
            continue
        dx = peer.x - me.x
        dy = peer.y - me.y
        distance = math.hypot(dx, dy)
        if distance <= interaction_radius:
            result.append(Neighbor(index, distance, dx, dy))
    return result
