import logging

from .base import BusBase as BusBase

logger = logging.getLogger("FlockPilot.Transport")


def get_bus(config: dict, identity: str | None = None) -> BusBase:
    """Build the transport named by ``transport.type`` in *config*.

    MQTT buses are returned already connected.
    """
    transport_cfg = config.get("transport", {})
    kind = transport_cfg.get("type", "loopback")

    if kind == "mqtt":
        from flockpilot.transport.mqtt_bus import MQTTBus

        bus = MQTTBus(transport_cfg, identity=identity)
        bus.connect()
        return bus
    elif kind == "loopback":
        from flockpilot.transport.loopback import LoopbackBus

        return LoopbackBus(
            loss_prob=float(transport_cfg.get("loss_prob", 0.0)),
            seed=transport_cfg.get("seed"),
        )
    else:
        raise ValueError(f"Unknown transport type: {kind}")
