"""Topic names and the small JSON payloads exchanged with collaborators."""

from __future__ import annotations

import json
import math
from typing import Tuple

# Shared fleet-wide topics
POSES = "poses"
MESSAGES = "messages"
GLOBAL_AVERAGE_HEADING = "global_average_heading"
LOCAL_AVERAGE_HEADING = "local_average_heading"


def agent_topic(identity: str, name: str) -> str:
    """Per-agent topic, e.g. ``agent_topic("rover1", "mode") -> "rover1/mode"``."""
    return f"{identity}/{name}"


def _finite(payload: dict, key: str) -> float:
    try:
        value = float(payload[key])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"missing or non-numeric '{key}'") from exc
    if not math.isfinite(value):
        raise ValueError(f"'{key}' is not finite")
    return value


def _load(text: str) -> dict:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("payload must be a JSON object")
    return payload


def parse_odometry(text: str) -> Tuple[float, float, float]:
    """``{"x": .., "y": .., "theta": ..}`` -> ``(x, y, theta)``."""
    payload = _load(text)
    return _finite(payload, "x"), _finite(payload, "y"), _finite(payload, "theta")


def encode_odometry(x: float, y: float, theta: float) -> str:
    return json.dumps({"x": x, "y": y, "theta": theta})


def parse_twist(text: str) -> Tuple[float, float]:
    """``{"linear": .., "angular": ..}`` -> ``(linear, angular)``."""
    payload = _load(text)
    return _finite(payload, "linear"), _finite(payload, "angular")


def encode_twist(linear: float, angular: float) -> str:
    return json.dumps({"linear": linear, "angular": angular})


def parse_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError as exc:
        raise ValueError(f"expected an integer, got {text!r}") from exc
