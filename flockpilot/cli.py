"""
FlockPilot CLI entry point.

Usage:
    flockpilot run      --config rover.yaml [--name rover1]   # Run one rover
    flockpilot simulate --agents 6 --steps 600                # Offline fleet run
    flockpilot lint     --config rover.yaml                   # Validate a config
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.markup import escape

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def cmd_run(args) -> int:
    """Run the live control loop."""
    from flockpilot.main import run

    return run(args.config, name=args.name)


def cmd_simulate(args) -> int:
    """Run an in-process fleet and print the result."""
    from flockpilot.config import load_config, merge_defaults, validate_config
    from flockpilot.sim import FleetSimulation, random_starts, render_table

    config = load_config(args.config) if args.config else merge_defaults(None)
    flock = config["flock"]
    flock["fleet_size"] = max(int(flock.get("fleet_size", 0)), args.agents)
    for key in ("alignment_weight", "cohesion_weight", "separation_weight"):
        value = getattr(args, key)
        if value is not None:
            flock[key] = value
    if args.loss is not None:
        config["simulation"]["loss_prob"] = args.loss

    ok, errors = validate_config(config)
    if not ok:
        for msg in errors:
            print(f"  config error: {msg}", file=sys.stderr)
        return 1

    console = Console()
    sim = FleetSimulation(config, random_starts(args.agents, seed=args.seed, spread=args.spread))
    try:
        start = sim.heading_consensus()
        sim.engage()
        steps = args.steps if args.steps is not None else int(config["simulation"]["steps"])
        end = sim.run(steps)
        render_table(sim, console)
        console.print(f"Consensus {start:.3f} → {end:.3f} over {steps} steps")
    finally:
        sim.close()
    return 0


def cmd_lint(args) -> int:
    """Validate a config file and report every problem."""
    from flockpilot.config import load_config, validate_config

    console = Console()
    config = load_config(args.config)
    ok, errors = validate_config(config)
    if ok:
        console.print(f"[green]✓[/green] {args.config} is valid")
        return 0
    for msg in errors:
        console.print(f"[red]✗[/red] {escape(msg)}")
    return 1


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flockpilot",
        description="Distributed heading-consensus controller for rover fleets",
    )
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING, ...")
    sub = parser.add_subparsers(dest="command", required=True)

    p_run = sub.add_parser("run", help="Run one rover's controller")
    p_run.add_argument("--config", default="rover.yaml", help="Path to YAML config")
    p_run.add_argument("--name", default=None, help="Agent identity (default: host name)")
    p_run.set_defaults(func=cmd_run)

    p_sim = sub.add_parser("simulate", help="Simulate a fleet over an in-process bus")
    p_sim.add_argument("--config", default=None, help="Optional YAML config")
    p_sim.add_argument("--agents", type=int, default=3)
    p_sim.add_argument("--steps", type=int, default=None)
    p_sim.add_argument("--seed", type=int, default=0)
    p_sim.add_argument("--spread", type=float, default=3.0, help="Start box side (m)")
    p_sim.add_argument("--loss", type=float, default=None, help="Broadcast loss probability")
    p_sim.add_argument("--alignment-weight", dest="alignment_weight", type=float)
    p_sim.add_argument("--cohesion-weight", dest="cohesion_weight", type=float)
    p_sim.add_argument("--separation-weight", dest="separation_weight", type=float)
    p_sim.set_defaults(func=cmd_simulate)

    p_lint = sub.add_parser("lint", help="Validate a config file")
    p_lint.add_argument("--config", required=True)
    p_lint.set_defaults(func=cmd_lint)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
