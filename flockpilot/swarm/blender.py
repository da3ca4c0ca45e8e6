"""Flocking force blender.  Folds alignment, cohesion and separation into one heading.

For the agent in slot ``self_index``:

- **alignment** is the mean unit heading over self and its neighbors,
- **cohesion** sums ``self - peer`` over neighbors and is negated, so it
  points toward the local group,
- **separation** sums ``peer - self`` over neighbors closer than
  ``separation_distance`` and is negated, so it points away from them.

Each term is normalised and scaled by its weight; a zero-length term is
skipped.  The commanded heading is the direction of the sum, or the agent's
own heading when the sum vanishes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Optional, Sequence

import numpy as np

from flockpilot.geometry import wrap_angle
from flockpilot.swarm.neighbors import Neighbor
from flockpilot.swarm.registry import PeerPoseRegistry

logger = logging.getLogger("FlockPilot.Blender")

__all__ = ["FlockingWeights", "BlendResult", "blend_heading", "global_average_heading"]


@dataclass(frozen=True)
class FlockingWeights:
    """Blend weights and the separation radius."""

    separation_distance: float = 1.0
    separation_weight: float = 0.5
    cohesion_weight: float = 0.0
    alignment_weight: float = 0.0

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    @classmethod
    def from_config(cls, flock_cfg: dict) -> "FlockingWeights":
        """Build from the ``flock`` config section, falling back to defaults."""
        defaults = cls()
        return cls(
            separation_distance=float(
                flock_cfg.get("separation_distance", defaults.separation_distance)
            ),
            separation_weight=float(flock_cfg.get("separation_weight", defaults.separation_weight)),
            cohesion_weight=float(flock_cfg.get("cohesion_weight", defaults.cohesion_weight)),
            alignment_weight=float(flock_cfg.get("alignment_weight", defaults.alignment_weight)),
        )


@dataclass
class BlendResult:
    """Output of one blend.  Only ``commanded_heading`` feeds control."""

    commanded_heading: float
    neighbor_count: int
    degenerate: bool
    local_average_heading: float
    alignment: np.ndarray = field(repr=False)
    cohesion: np.ndarray = field(repr=False)
    separation: np.ndarray = field(repr=False)

    def to_dict(self) -> dict:
        return {
            "commanded_heading": self.commanded_heading,
            "neighbor_count": self.neighbor_count,
            "degenerate": self.degenerate,
            "local_average_heading": self.local_average_heading,
        }


def _scaled(vector: np.ndarray, weight: float) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return np.zeros(2)
    return vector / norm * weight


def blend_heading(
    self_index: int,
    registry: PeerPoseRegistry,
    neighbors: Sequence[Neighbor],
    weights: FlockingWeights,
) -> Optional[BlendResult]:
    """Blend the three flocking terms for the agent in *self_index*.

    Returns ``None`` if that slot is empty.
    """
    me = registry.get(self_index)
    if me is None:
        return None

    thetas = [me.theta]
    for n in neighbors:
        peer = registry.get(n.index)
        if peer is not None:
            thetas.append(peer.theta)
    thetas = np.asarray(thetas)
    alignment = np.array([np.cos(thetas).mean(), np.sin(thetas).mean()])

    if neighbors:
        offsets = np.array([[n.dx, n.dy] for n in neighbors])
        distances = np.array([n.distance for n in neighbors])
        cohesion = (-offsets).sum(axis=0)
        separation = offsets[distances <= weights.separation_distance].sum(axis=0)
    else:
        cohesion = np.zeros(2)
        separation = np.zeros(2)

    total = (
        _scaled(alignment, weights.alignment_weight)
        - _scaled(cohesion, weights.cohesion_weight)
        - _scaled(separation, weights.separation_weight)
    )

    degenerate = not np.any(total)
    if degenerate:
        commanded = me.theta
    else:
        commanded = wrap_angle(math.atan2(total[1], total[0]))

    local_average = (
        wrap_angle(math.atan2(alignment[1], alignment[0])) if np.any(alignment) else me.theta
    )

    logger.debug(
        f"{me.identity}: {len(neighbors)} neighbor(s), commanded={commanded:.4f}"
        + (" (fallback)" if degenerate else "")
    )
    return BlendResult(
        commanded_heading=commanded,
        neighbor_count=len(neighbors),
        degenerate=degenerate,
        local_average_heading=local_average,
        alignment=alignment,
        cohesion=cohesion,
        separation=separation,
    )


def global_average_heading(registry: PeerPoseRegistry) -> Optional[float]:
    """Mean heading over every occupied slot (diagnostic only)."""
    thetas = np.array([pose.theta for _, pose in registry.occupied()])
    if thetas.size == 0:
        return None
    c, s = np.cos(thetas).mean(), np.sin(thetas).mean()
    if c == 0.0 and s == 0.0:
        return None
    return wrap_angle(math.atan2(s, c))
