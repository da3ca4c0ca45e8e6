"""In-process broadcast bus for simulations and tests.

Delivery is synchronous: ``publish`` invokes every subscriber before it
returns.  An optional per-delivery loss probability models lossy radio
links; the random source is seeded so runs are reproducible.
"""

from __future__ import annotations

import logging
import random
import threading
from collections import defaultdict
from typing import Dict, List, Optional

from flockpilot.transport.base import BusBase, MessageCallback

logger = logging.getLogger("FlockPilot.Transport.Loopback")


class LoopbackBus(BusBase):
    """Synchronous, optionally lossy, in-memory pub/sub."""

    def __init__(self, loss_prob: float = 0.0, seed: Optional[int] = None):
        if not 0.0 <= loss_prob < 1.0:
            raise ValueError(f"loss_prob must be in [0, 1), got {loss_prob}")
        self.loss_prob = loss_prob
        self._rng = random.Random(seed)
        self._subscribers: Dict[str, List[MessageCallback]] = defaultdict(list)
        self._lock = threading.Lock()
        self.published: List[tuple] = []
        self.dropped = 0

    def publish(self, topic: str, payload: str) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))
            self.published.append((topic, payload))
        for cb in callbacks:
            if self.loss_prob and self._rng.random() < self.loss_prob:
                self.dropped += 1
                continue
            try:
                cb(payload)
            except Exception as exc:
                logger.warning(f"Subscriber on {topic!r} raised: {exc}")

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        with self._lock:
            self._subscribers[topic].append(callback)

    def close(self) -> None:
        with self._lock:
            self._subscribers.clear()

    def messages_on(self, topic: str) -> List[str]:
        """Every payload published on *topic* so far, in order."""
        with self._lock:
            return [p for t, p in self.published if t == topic]
