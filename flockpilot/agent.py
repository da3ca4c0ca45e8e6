"""
FlockPilot Agent -- one rover's controller instance.

Ties the peer registry, pose codec, neighbor graph, flocking blend, mode
controller and kill-switch watchdog to a transport bus and an actuation
driver.

All inbound handlers and :meth:`FlockAgent.tick` take the same lock, so
transport callbacks never interleave with a control step.  Bus publications
are collected under the lock and sent after it is released.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Tuple

from flockpilot.controller import ModeController, VelocityCommand
from flockpilot.drivers.base import DriverBase
from flockpilot.errors import MalformedMessage, RosterFull
from flockpilot.swarm import codec
from flockpilot.swarm.blender import (
    BlendResult,
    FlockingWeights,
    blend_heading,
    global_average_heading,
)
from flockpilot.swarm.neighbors import neighbors_of
from flockpilot.swarm.pose import AgentPose
from flockpilot.swarm.registry import PeerPoseRegistry
from flockpilot.transport import topics
from flockpilot.transport.base import BusBase
from flockpilot.watchdog import KillSwitchWatchdog

logger = logging.getLogger("FlockPilot.Agent")


class FlockAgent:
    """Per-rover heading-consensus controller."""

    def __init__(
        self,
        identity: str,
        config: dict,
        bus: BusBase,
        driver: Optional[DriverBase] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        flock_cfg = config.get("flock", {})
        ctl_cfg = config.get("control", {})

        self.identity = identity
        self.bus = bus
        self.driver = driver

        self.registry = PeerPoseRegistry(int(flock_cfg.get("fleet_size", 3)))
        self.weights = FlockingWeights.from_config(flock_cfg)
        self.interaction_radius = float(flock_cfg.get("interaction_radius", 2.0))
        stale = flock_cfg.get("stale_after_s")
        self.stale_after_s: Optional[float] = float(stale) if stale is not None else None

        self.linear_scale = float(ctl_cfg.get("linear_scale", 1.0))
        self.angular_scale = float(ctl_cfg.get("angular_scale", 1.0))

        self.controller = ModeController(config)
        self.watchdog = KillSwitchWatchdog(config, stop_fn=self._on_kill_switch, clock=clock)

        self.current_pose = AgentPose(identity, 0.0, 0.0, 0.0)
        self.last_blend: Optional[BlendResult] = None
        self.last_command: Optional[VelocityCommand] = None

        self._lock = threading.RLock()
        self._announced = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def attach(self) -> None:
        """Subscribe every inbound handler on the bus."""
        me = self.identity
        self.bus.subscribe(topics.POSES, self.handle_pose_message)
        self.bus.subscribe(topics.agent_topic(me, "odom"), self.handle_odometry_message)
        self.bus.subscribe(topics.agent_topic(me, "mode"), self.handle_mode_message)
        self.bus.subscribe(topics.agent_topic(me, "joystick"), self.handle_joystick_message)
        self.bus.subscribe(topics.agent_topic(me, "obstacle"), self.handle_obstacle_message)
        self.bus.subscribe(topics.agent_topic(me, "targets"), self.handle_target_message)

    def start(self) -> None:
        self.attach()
        self.watchdog.start()
        logger.info(f"Agent '{self.identity}' online (fleet size {self.registry.size()})")

    def shutdown(self) -> None:
        """Emit one final zero command, then release the driver."""
        self.watchdog.stop()
        with self._lock:
            if self._closed:
                return
            self._emit(VelocityCommand.zero(), arm=False)
            self._closed = True
            if self.driver is not None:
                self.driver.close()
        logger.info(f"Agent '{self.identity}' shut down")

    # ------------------------------------------------------------------
    # Inbound handlers
    # ------------------------------------------------------------------

    def handle_pose_message(self, text: str) -> None:
        """Record a peer's (or our own echoed) pose broadcast."""
        try:
            pose = codec.decode_pose(text)
        except MalformedMessage as exc:
            logger.warning(f"Discarding pose broadcast: {exc}")
            return
        with self._lock:
            try:
                self.registry.upsert(pose.identity, pose.x, pose.y, pose.theta, now=pose.last_seen)
            except RosterFull as exc:
                logger.error(f"{exc}; check flock.fleet_size")

    def handle_odometry_message(self, text: str) -> None:
        try:
            x, y, theta = topics.parse_odometry(text)
        except ValueError as exc:
            logger.warning(f"Discarding odometry: {exc}")
            return
        self.handle_localization(x, y, theta)

    def handle_localization(self, x: float, y: float, theta: float) -> None:
        with self._lock:
            self.current_pose = AgentPose(self.identity, x, y, theta)

    def handle_mode_message(self, text: str) -> None:
        try:
            value = topics.parse_int(text)
        except ValueError as exc:
            logger.warning(f"Discarding mode signal: {exc}")
            return
        self.handle_mode(value)

    def handle_mode(self, value: int) -> None:
        with self._lock:
            self._emit(self.controller.on_mode(value))

    def handle_joystick_message(self, text: str) -> None:
        try:
            linear, angular = topics.parse_twist(text)
        except ValueError as exc:
            logger.warning(f"Discarding manual command: {exc}")
            return
        self.handle_manual_command(linear, angular)

    def handle_manual_command(self, linear: float, angular: float) -> None:
        with self._lock:
            command = self.controller.on_manual(linear, angular)
            if command is not None:
                self._emit(command)

    def handle_obstacle_message(self, text: str) -> None:
        # Hook only: obstacle avoidance is not implemented
        try:
            code = topics.parse_int(text)
        except ValueError:
            return
        if code == 1:
            logger.debug("Obstacle reported on the right")
        elif code > 1:
            logger.debug("Obstacle reported in front or on the left")

    def handle_target_message(self, text: str) -> None:
        logger.debug(f"Target report ignored: {text[:80]}")

    # ------------------------------------------------------------------
    # Periodic work
    # ------------------------------------------------------------------

    def tick(self) -> Optional[VelocityCommand]:
        """One control step: blend, command, broadcast.  Returns the emitted command."""
        outbox: List[Tuple[str, str]] = []
        with self._lock:
            if self._closed:
                return None
            pose = self.current_pose
            blend = self._blend(pose)
            self.last_blend = blend
            commanded = blend.commanded_heading if blend else pose.theta

            command = self.controller.tick(commanded, pose.theta)
            if command is not None:
                self._emit(command)

            outbox.append((topics.POSES, codec.encode(self.identity, pose)))
            outbox.append(
                (topics.agent_topic(self.identity, "state_machine"), self.controller.status_text())
            )
            if blend is not None:
                outbox.append(
                    (
                        topics.LOCAL_AVERAGE_HEADING,
                        f"{self.identity} with {blend.neighbor_count} neighbors "
                        f"with Combined Theta = {commanded:.4f}",
                    )
                )
            avg = global_average_heading(self.registry)
            if avg is not None:
                outbox.append((topics.GLOBAL_AVERAGE_HEADING, f"Global Average Theta = {avg:.4f}"))

        self._publish(outbox)
        return command

    def publish_status(self) -> None:
        """Liveness: announce the name once, then report ``online``."""
        outbox = []
        with self._lock:
            if not self._announced:
                outbox.append((topics.MESSAGES, f"I {self.identity}"))
                self._announced = True
        outbox.append((topics.agent_topic(self.identity, "status"), "online"))
        self._publish(outbox)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _blend(self, pose: AgentPose) -> Optional[BlendResult]:
        try:
            self_index = self.registry.upsert(self.identity, pose.x, pose.y, pose.theta)
        except RosterFull as exc:
            logger.error(f"{exc}; cannot place this agent in its own roster")
            return None
        neighbors = neighbors_of(
            self_index,
            self.registry,
            self.interaction_radius,
            max_age_s=self.stale_after_s,
        )
        return blend_heading(self_index, self.registry, neighbors, self.weights)

    def _emit(self, command: VelocityCommand, arm: bool = True) -> None:
        """Send *command* to the driver.  Caller holds the lock."""
        if self._closed:
            return
        if arm:
            self.watchdog.arm_or_retrigger()
        if self.driver is not None:
            self.driver.move(
                linear=command.linear * self.linear_scale,
                angular=command.angular * self.angular_scale,
            )
        self.last_command = command

    def _on_kill_switch(self) -> None:
        with self._lock:
            # A command may have re-armed the watchdog after it decided to fire
            if not self.watchdog.is_expired:
                logger.info("Kill switch cancelled: velocity command arrived in time")
                return
            self._emit(VelocityCommand.zero(), arm=False)

    def _publish(self, outbox: List[Tuple[str, str]]) -> None:
        for topic, payload in outbox:
            try:
                self.bus.publish(topic, payload)
            except Exception as exc:
                logger.warning(f"Publish to {topic!r} failed: {exc}")

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def get_status(self) -> dict:
        with self._lock:
            return {
                "identity": self.identity,
                "pose": self.current_pose.to_dict(),
                "controller": self.controller.get_status(),
                "blend": self.last_blend.to_dict() if self.last_blend else None,
                "last_command": self.last_command.to_dict() if self.last_command else None,
                "registry": self.registry.to_dict(),
                "watchdog": self.watchdog.get_status(),
            }
