"""FlockPilot configuration loading and validation.

Configs are YAML files deep-merged over :data:`DEFAULT_CONFIG`, so a file
only needs the keys it changes::

    metadata:
      robot_name: rover1
    flock:
      fleet_size: 6
    transport:
      type: mqtt
      broker_host: 10.0.0.2

Call :func:`validate_config` early in startup to fail fast with a helpful
message rather than a cryptic error deep inside the control loop.
"""

from __future__ import annotations

import copy
import logging
import socket
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger("FlockPilot.Config")

DEFAULT_CONFIG: Dict[str, Any] = {
    "metadata": {
        "robot_name": None,  # falls back to the host name
    },
    "flock": {
        "fleet_size": 3,
        "interaction_radius": 2.0,
        "separation_distance": 1.0,
        "separation_weight": 0.5,
        "cohesion_weight": 0.0,
        "alignment_weight": 0.0,
        "stale_after_s": None,
    },
    "control": {
        "tick_hz": 10.0,
        "k_p": 0.1,
        "cruise_speed": 0.05,
        "status_interval_s": 5.0,
        "linear_scale": 1.0,
        "angular_scale": 1.0,
    },
    "watchdog": {
        "enabled": True,
        "timeout_s": 10.0,
        "poll_interval_s": 0.1,
    },
    "drivers": [
        {"protocol": "bus", "max_linear_vel": 1.0, "max_angular_vel": 1.5},
    ],
    "transport": {
        "type": "loopback",
    },
    "simulation": {
        "loss_prob": 0.0,
        "seed": 0,
        "steps": 300,
    },
}

# (section, key) pairs that must be strictly positive numbers
_POSITIVE: List[Tuple[str, str]] = [
    ("flock", "interaction_radius"),
    ("flock", "separation_distance"),
    ("control", "tick_hz"),
    ("control", "status_interval_s"),
    ("watchdog", "timeout_s"),
    ("watchdog", "poll_interval_s"),
]

_NON_NEGATIVE: List[Tuple[str, str]] = [
    ("flock", "separation_weight"),
    ("flock", "cohesion_weight"),
    ("flock", "alignment_weight"),
    ("control", "k_p"),
    ("control", "cruise_speed"),
]


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge_defaults(config: Optional[dict]) -> dict:
    """Return *config* layered over :data:`DEFAULT_CONFIG`."""
    return _deep_merge(DEFAULT_CONFIG, config or {})


def load_config(path: str) -> dict:
    """Load a YAML config file and merge it over the defaults."""
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        logger.error(f"Config file not found: {path}")
        raise SystemExit(1) from exc
    if not isinstance(raw, dict):
        logger.error(f"Config file {path} must contain a mapping")
        raise SystemExit(1)
    config = merge_defaults(raw)
    logger.info(f"Loaded configuration from {path}")
    return config


def resolve_identity(config: dict, override: Optional[str] = None) -> str:
    """Agent identity: explicit override, then ``metadata.robot_name``, then host name."""
    if override:
        return override
    name = (config.get("metadata") or {}).get("robot_name")
    if name:
        return str(name)
    host = socket.gethostname()
    logger.info(f"No robot name configured. Default is: {host}")
    return host


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: dict) -> Tuple[bool, List[str]]:
    """Validate a merged config dict.

    Returns:
        A ``(is_valid, errors)`` tuple.  ``is_valid`` is ``True`` only when
        ``errors`` is empty.
    """
    if not isinstance(config, dict):
        return False, ["Config must be a dict (check YAML syntax)"]

    errors: List[str] = []

    for section in ("flock", "control", "watchdog", "transport"):
        if not isinstance(config.get(section), dict):
            errors.append(f"'{section}' must be a mapping (dict)")
    if errors:
        return False, errors

    # ── fleet ─────────────────────────────────────────────────────────────────
    fleet_size = config["flock"].get("fleet_size")
    if not isinstance(fleet_size, int) or isinstance(fleet_size, bool) or fleet_size < 1:
        errors.append(f"'flock.fleet_size' must be a positive integer, got {fleet_size!r}")

    for section, key in _POSITIVE:
        value = config[section].get(key)
        if not _is_number(value) or value <= 0:
            errors.append(f"'{section}.{key}' must be a positive number, got {value!r}")

    for section, key in _NON_NEGATIVE:
        value = config[section].get(key)
        if not _is_number(value) or value < 0:
            errors.append(f"'{section}.{key}' must be a non-negative number, got {value!r}")

    radius = config["flock"].get("interaction_radius")
    sep = config["flock"].get("separation_distance")
    if _is_number(radius) and _is_number(sep) and sep > radius:
        errors.append(
            f"'flock.separation_distance' ({sep}) must not exceed "
            f"'flock.interaction_radius' ({radius})"
        )

    stale = config["flock"].get("stale_after_s")
    if stale is not None and (not _is_number(stale) or stale <= 0):
        errors.append(f"'flock.stale_after_s' must be null or a positive number, got {stale!r}")

    # ── drivers / transport ───────────────────────────────────────────────────
    drivers = config.get("drivers")
    if not isinstance(drivers, list) or not drivers:
        errors.append("'drivers' must be a non-empty list")

    transport_type = config["transport"].get("type")
    if transport_type not in ("loopback", "mqtt"):
        errors.append(f"'transport.type' must be 'loopback' or 'mqtt', got {transport_type!r}")

    # ── simulation ────────────────────────────────────────────────────────────
    sim_cfg = config.get("simulation")
    if sim_cfg is not None:
        if not isinstance(sim_cfg, dict):
            errors.append("'simulation' must be a mapping (dict)")
        else:
            loss = sim_cfg.get("loss_prob", 0.0)
            if not _is_number(loss) or not 0.0 <= loss < 1.0:
                errors.append(f"'simulation.loss_prob' must be in [0, 1), got {loss!r}")

    return len(errors) == 0, errors


def log_validation_result(config: dict, label: str = "FlockPilot config") -> bool:
    """Validate *config* and log each error.  Returns True if valid."""
    ok, errors = validate_config(config)
    if ok:
        logger.debug("%s validation passed", label)
    else:
        for msg in errors:
            logger.error("%s validation error: %s", label, msg)
    return ok
