"""
FlockPilot Fleet Simulation -- N agents on a loopback bus, no hardware.

Each agent gets a :class:`SimulationDriver` that integrates its velocity
commands; the resulting pose is fed back as odometry on the next step.
Stepping is deterministic and single-threaded.

Usage::

    flockpilot simulate --agents 6 --steps 600 --alignment-weight 1.0
"""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from rich.console import Console
from rich.table import Table

from flockpilot.agent import FlockAgent
from flockpilot.config import merge_defaults
from flockpilot.controller import ModeSignal
from flockpilot.drivers.simulation_driver import SimulationDriver
from flockpilot.transport import topics
from flockpilot.transport.loopback import LoopbackBus

logger = logging.getLogger("FlockPilot.Sim")

StartPose = Tuple[str, float, float, float]


def random_starts(count: int, seed: int = 0, spread: float = 3.0) -> List[StartPose]:
    """Scatter *count* rovers in a ``spread`` x ``spread`` box with random headings."""
    rng = random.Random(seed)
    return [
        (
            f"rover{i}",
            rng.uniform(0.0, spread),
            rng.uniform(0.0, spread),
            rng.uniform(-math.pi, math.pi),
        )
        for i in range(count)
    ]


class FleetSimulation:
    """A whole fleet stepping in lock-step over an in-process bus."""

    def __init__(self, config: Optional[dict], starts: Sequence[StartPose]):
        self.config = merge_defaults(config)
        sim_cfg = self.config["simulation"]
        ctl_cfg = self.config["control"]

        self.bus = LoopbackBus(
            loss_prob=float(sim_cfg.get("loss_prob", 0.0)),
            seed=sim_cfg.get("seed"),
        )
        self.dt = 1.0 / float(ctl_cfg["tick_hz"])
        self.status_interval = float(ctl_cfg["status_interval_s"])
        self.time = 0.0
        self._next_status = 0.0

        driver_cfg = (self.config.get("drivers") or [{}])[0]
        self.agents: Dict[str, FlockAgent] = {}
        self.drivers: Dict[str, SimulationDriver] = {}
        for name, x, y, theta in starts:
            driver = SimulationDriver(driver_cfg, start=(x, y, theta))
            # The kill switch runs on simulated time
            agent = FlockAgent(name, self.config, self.bus, driver, clock=self._sim_clock)
            agent.attach()
            agent.handle_localization(x, y, theta)
            self.agents[name] = agent
            self.drivers[name] = driver
        logger.info(f"Simulating {len(self.agents)} agent(s) at {1.0 / self.dt:g} Hz")

    def _sim_clock(self) -> float:
        return self.time

    def set_mode(self, value: int, names: Optional[Sequence[str]] = None) -> None:
        """Publish a mode signal to the named agents (default: all)."""
        for name in names or list(self.agents):
            self.bus.publish(topics.agent_topic(name, "mode"), str(int(value)))

    def engage(self) -> None:
        self.set_mode(ModeSignal.AUTONOMOUS)

    def step(self) -> None:
        """Integrate motion, deliver odometry, then tick every agent once."""
        for name, driver in self.drivers.items():
            driver.step(self.dt)
            self.bus.publish(topics.agent_topic(name, "odom"), topics.encode_odometry(*driver.pose))

        if self.time >= self._next_status:
            for agent in self.agents.values():
                agent.publish_status()
            self._next_status += self.status_interval

        for agent in self.agents.values():
            agent.tick()
            agent.watchdog.check()
        self.time += self.dt

    def run(self, steps: int) -> float:
        """Advance *steps* ticks and return the final heading consensus."""
        for _ in range(steps):
            self.step()
        return self.heading_consensus()

    def heading_consensus(self) -> float:
        """Norm of the mean unit heading: 1.0 when every rover points the same way."""
        thetas = np.array([d.theta for d in self.drivers.values()])
        if thetas.size == 0:
            return 0.0
        return float(np.hypot(np.cos(thetas).mean(), np.sin(thetas).mean()))

    def snapshot(self) -> List[dict]:
        rows = []
        for name, agent in self.agents.items():
            driver = self.drivers[name]
            blend = agent.last_blend
            rows.append(
                {
                    "name": name,
                    "x": driver.x,
                    "y": driver.y,
                    "heading_deg": math.degrees(driver.theta),
                    "commanded_deg": math.degrees(blend.commanded_heading) if blend else None,
                    "neighbors": blend.neighbor_count if blend else 0,
                    "state": agent.controller.state.value,
                }
            )
        return rows

    def close(self) -> None:
        for agent in self.agents.values():
            agent.shutdown()
        self.bus.close()


def render_table(sim: FleetSimulation, console: Optional[Console] = None) -> None:
    """Print the fleet state as a rich table."""
    console = console or Console()
    table = Table(title=f"Fleet after {sim.time:.1f}s")
    table.add_column("Agent", style="bold")
    table.add_column("x (m)", justify="right")
    table.add_column("y (m)", justify="right")
    table.add_column("Heading", justify="right")
    table.add_column("Commanded", justify="right")
    table.add_column("Neighbors", justify="right")
    table.add_column("State")
    for row in sim.snapshot():
        commanded = row["commanded_deg"]
        table.add_row(
            row["name"],
            f"{row['x']:.2f}",
            f"{row['y']:.2f}",
            f"{row['heading_deg']:.1f}°",
            f"{commanded:.1f}°" if commanded is not None else "—",
            str(row["neighbors"]),
            row["state"],
        )
    console.print(table)
    console.print(f"Heading consensus: [bold]{sim.heading_consensus():.3f}[/bold]")
