"""
flockpilot/transport/mqtt_bus.py — MQTT transport for pose gossip.

All agents publish and subscribe on a shared broker.  Topic names are
prefixed with ``topic_prefix`` so several fleets can share one broker.

Config (``transport`` section)::

    transport:
      type: mqtt
      broker_host: localhost     # or env MQTT_BROKER_HOST
      broker_port: 1883          # or env MQTT_BROKER_PORT
      topic_prefix: flock/
      username: ""               # or env MQTT_USERNAME
      password: ""               # or env MQTT_PASSWORD
      client_id: flockpilot-<identity>
      keepalive: 60
      qos: 0
      tls: false
      connect_timeout_s: 10
"""

from __future__ import annotations

import logging
import os
import threading
from collections import defaultdict
from typing import Dict, List, Optional

import paho.mqtt.client as mqtt

from flockpilot.transport.base import BusBase, MessageCallback

logger = logging.getLogger("FlockPilot.Transport.MQTT")


class MQTTBus(BusBase):
    """paho-mqtt backed bus.  Callbacks run on paho's network thread."""

    def __init__(self, config: dict, identity: Optional[str] = None):
        self._broker_host = config.get("broker_host", os.getenv("MQTT_BROKER_HOST", "localhost"))
        self._broker_port = int(config.get("broker_port", os.getenv("MQTT_BROKER_PORT", "1883")))
        self._prefix = config.get("topic_prefix", "flock/")
        self._username = config.get("username", os.getenv("MQTT_USERNAME", ""))
        self._password = config.get("password", os.getenv("MQTT_PASSWORD", ""))
        self._keepalive = int(config.get("keepalive", 60))
        self._qos = int(config.get("qos", 0))
        self._tls = bool(config.get("tls", False))
        self._connect_timeout = float(config.get("connect_timeout_s", 10.0))
        self._client_id = config.get(
            "client_id", f"flockpilot-{identity}" if identity else f"flockpilot-{os.getpid()}"
        )

        self._subscribers: Dict[str, List[MessageCallback]] = defaultdict(list)
        self._lock = threading.Lock()
        self._connected = threading.Event()
        self._client = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def connect(self) -> None:
        """Connect to the broker and start paho's background network loop."""
        self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self._client_id)
        if self._username:
            self._client.username_pw_set(self._username, self._password)
        if self._tls:
            self._client.tls_set()

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        self._client.connect(self._broker_host, self._broker_port, self._keepalive)
        self._client.loop_start()

        if not self._connected.wait(self._connect_timeout):
            raise ConnectionError(
                f"MQTT: Could not connect to {self._broker_host}:{self._broker_port} "
                f"within {self._connect_timeout:g} s"
            )
        logger.info(
            "MQTT bus connected to %s:%d (prefix=%r)",
            self._broker_host,
            self._broker_port,
            self._prefix,
        )

    def close(self) -> None:
        if self._client:
            self._client.disconnect()
            self._client.loop_stop()
            self._client = None
        self._connected.clear()
        logger.info("MQTT bus disconnected")

    # ── BusBase ───────────────────────────────────────────────────────────────

    def publish(self, topic: str, payload: str) -> None:
        if self._client and self._connected.is_set():
            self._client.publish(self._prefix + topic, payload.encode(), qos=self._qos)
        else:
            logger.debug("MQTT not connected; dropped message on %r", topic)

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        with self._lock:
            first = topic not in self._subscribers
            self._subscribers[topic].append(callback)
        if first and self._client and self._connected.is_set():
            self._client.subscribe(self._prefix + topic, qos=self._qos)

    # ── paho callbacks (execute in paho's network thread) ─────────────────────

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error("MQTT connect failed: %s", reason_code)
            return
        with self._lock:
            topics = list(self._subscribers)
        # (Re)subscribe everything; paho drops subscriptions on reconnect
        for topic in topics:
            client.subscribe(self._prefix + topic, qos=self._qos)
        self._connected.set()
        logger.debug("MQTT connected, subscribed to %d topic(s)", len(topics))

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.warning("MQTT unexpected disconnect (%s), will auto-reconnect", reason_code)
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        topic = msg.topic
        if topic.startswith(self._prefix):
            topic = topic[len(self._prefix):]
        payload = msg.payload.decode("utf-8", errors="replace").strip()
        logger.debug("MQTT message on %r: %.80s", topic, payload)

        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))
        for cb in callbacks:
            try:
                cb(payload)
            except Exception as exc:
                logger.warning("MQTT message handling error on %r: %s", topic, exc)
