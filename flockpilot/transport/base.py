from abc import ABC, abstractmethod
from typing import Callable

__all__ = ["BusBase", "MessageCallback"]

MessageCallback = Callable[[str], None]


class BusBase(ABC):
    """Abstract publish/subscribe transport carrying text payloads.

    Callbacks may run on a transport thread; receivers are responsible for
    serialising them against their own control loop.
    """

    @abstractmethod
    def publish(self, topic: str, payload: str) -> None:
        """Send *payload* to every subscriber of *topic*."""

    @abstractmethod
    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        """Register *callback* for messages on *topic*."""

    @abstractmethod
    def close(self) -> None:
        """Release network resources."""
