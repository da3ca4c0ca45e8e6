"""Exceptions raised by the flocking core."""

from __future__ import annotations


class FlockError(Exception):
    """Base class for all FlockPilot domain errors."""


class RosterFull(FlockError):
    """More distinct identities were observed than the configured fleet size."""

    def __init__(self, identity: str, capacity: int):
        self.identity = identity
        self.capacity = capacity
        super().__init__(
            f"Roster full: cannot register '{identity}' (fleet size {capacity})"
        )


class MalformedMessage(FlockError):
    """A pose broadcast could not be decoded into three numeric fields."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Malformed pose message {text!r}: {reason}")
