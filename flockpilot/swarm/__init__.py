"""flockpilot.swarm — peer poses and the flocking blend.

Key pieces:

- :class:`AgentPose` — latest pose of one agent.
- :class:`PeerPoseRegistry` — fixed-capacity, first-seen slot table.
- :func:`encode` / :func:`decode` — ``"<id> (<x>,<y>,<theta>)"`` codec.
- :func:`neighbors_of` — proximity graph for one slot.
- :func:`blend_heading` — alignment/cohesion/separation blend.

Configuration (``flock`` section)::

    flock:
      fleet_size: 3
      interaction_radius: 2.0
      separation_distance: 1.0
      separation_weight: 0.5
      cohesion_weight: 0.0
      alignment_weight: 0.0
      stale_after_s: null   # seconds; null keeps peers forever
"""

from flockpilot.swarm.blender import BlendResult, FlockingWeights, blend_heading
from flockpilot.swarm.codec import decode, encode
from flockpilot.swarm.neighbors import Neighbor, neighbors_of
from flockpilot.swarm.pose import AgentPose
from flockpilot.swarm.registry import PeerPoseRegistry

__all__ = [
    "AgentPose",
    "PeerPoseRegistry",
    "encode",
    "decode",
    "Neighbor",
    "neighbors_of",
    "FlockingWeights",
    "BlendResult",
    "blend_heading",
]
