"""
FlockPilot Runtime - the live control loop for one rover.

Builds the transport, driver and agent from config, then runs a fixed-rate
tick with a slower liveness ticker until SIGINT/SIGTERM.
"""

import logging
import signal
import threading
import time

from flockpilot.agent import FlockAgent
from flockpilot.config import load_config, log_validation_result, resolve_identity
from flockpilot.drivers import get_driver
from flockpilot.transport import get_bus

logger = logging.getLogger("FlockPilot")


def build_agent(config: dict, identity: str) -> FlockAgent:
    """Construct the bus, driver and agent for *identity*."""
    bus = get_bus(config, identity=identity)
    driver = get_driver(config, bus=bus, identity=identity)
    if driver is None:
        logger.warning("No actuation driver configured; commands will not reach the motors")
    return FlockAgent(identity, config, bus, driver)


def run_agent(agent: FlockAgent, config: dict, stop_event: threading.Event) -> None:
    """Tick *agent* at ``control.tick_hz`` until *stop_event* is set.

    The agent is always shut down on exit, which emits the final zero command.
    """
    ctl_cfg = config.get("control", {})
    period = 1.0 / float(ctl_cfg.get("tick_hz", 10.0))
    status_interval = float(ctl_cfg.get("status_interval_s", 5.0))

    agent.start()
    next_tick = time.monotonic()
    next_status = next_tick + status_interval
    try:
        while not stop_event.is_set():
            if time.monotonic() >= next_status:
                agent.publish_status()
                next_status += status_interval
            agent.tick()
            next_tick += period
            delay = next_tick - time.monotonic()
            if delay < 0:
                # Overran; resynchronise rather than bursting to catch up
                logger.debug(f"Tick overran by {-delay * 1000:.0f} ms")
                next_tick = time.monotonic()
                delay = 0.0
            stop_event.wait(delay)
    finally:
        agent.shutdown()
        agent.bus.close()


def run(config_path: str, name: str | None = None) -> int:
    """Load config, validate, and run until a shutdown signal arrives."""
    logger.info("Booting FlockPilot...")
    config = load_config(config_path)
    if not log_validation_result(config):
        return 1
    identity = resolve_identity(config, name)
    logger.info(f"Mobility controller started for '{identity}'")

    agent = build_agent(config, identity)
    stop_event = threading.Event()

    def _graceful_shutdown(signum, frame):
        sig_name = signal.Signals(signum).name
        if stop_event.is_set():
            logger.warning(f"Received {sig_name} again — forcing exit.")
            raise SystemExit(1)
        logger.info(f"Received {sig_name}. Shutting down gracefully...")
        stop_event.set()

    signal.signal(signal.SIGTERM, _graceful_shutdown)
    signal.signal(signal.SIGINT, _graceful_shutdown)

    run_agent(agent, config, stop_event)
    return 0
