import logging

from .base import DriverBase as DriverBase

logger = logging.getLogger("FlockPilot.Drivers")


def get_driver(config: dict, bus=None, identity: str | None = None):
    """Initialize the actuation driver named by ``drivers[0].protocol``.

    Returns ``None`` (and logs a warning) for unknown protocols.
    """
    if not config.get("drivers"):
        return None

    driver_config = config["drivers"][0]
    protocol = driver_config.get("protocol", "")

    if protocol == "bus":
        if bus is None or not identity:
            raise ValueError("bus driver requires a transport and an identity")
        from flockpilot.drivers.bus_driver import BusDriver

        return BusDriver(bus, identity, driver_config)
    elif protocol == "simulation":
        from flockpilot.drivers.simulation_driver import SimulationDriver

        return SimulationDriver(driver_config)
    else:
        logger.warning(f"Unknown driver protocol: {protocol}. Running without actuation.")
        return None
