"""Tests for flockpilot/transport/mqtt_bus.py — paho-mqtt backed bus."""

from unittest.mock import MagicMock, patch

import pytest

from flockpilot.transport.mqtt_bus import MQTTBus


def _reason(failure=False):
    rc = MagicMock()
    rc.is_failure = failure
    return rc


def _connected_bus(config=None):
    bus = MQTTBus(config or {"broker_host": "localhost"}, identity="rover1")
    bus._client = MagicMock()
    bus._connected.set()
    return bus


# ── Construction ──────────────────────────────────────────────────────────────

def test_mqtt_bus_defaults():
    bus = MQTTBus({"broker_host": "localhost"}, identity="rover1")
    assert bus._broker_host == "localhost"
    assert bus._broker_port == 1883
    assert bus._prefix == "flock/"
    assert bus._client_id == "flockpilot-rover1"
    assert bus._qos == 0


def test_mqtt_bus_custom_config():
    bus = MQTTBus({
        "broker_host": "broker.example.com",
        "broker_port": 8883,
        "topic_prefix": "lab/",
        "tls": True,
        "qos": 1,
        "client_id": "custom",
    })
    assert bus._broker_port == 8883
    assert bus._prefix == "lab/"
    assert bus._tls is True
    assert bus._qos == 1
    assert bus._client_id == "custom"


def test_env_var_defaults(monkeypatch):
    monkeypatch.setenv("MQTT_BROKER_HOST", "env-broker")
    monkeypatch.setenv("MQTT_USERNAME", "user1")
    bus = MQTTBus({})
    assert bus._broker_host == "env-broker"
    assert bus._username == "user1"


# ── connect ───────────────────────────────────────────────────────────────────

def test_connect_starts_loop_and_waits():
    with patch("flockpilot.transport.mqtt_bus.mqtt") as mock_mqtt:
        client = MagicMock()
        mock_mqtt.Client.return_value = client
        bus = MQTTBus({"broker_host": "h", "username": "u", "password": "p"}, identity="r1")
        client.loop_start.side_effect = lambda: bus._connected.set()
        bus.connect()

    mock_mqtt.Client.assert_called_once_with(
        mock_mqtt.CallbackAPIVersion.VERSION2, client_id="flockpilot-r1"
    )
    client.username_pw_set.assert_called_once_with("u", "p")
    client.connect.assert_called_once_with("h", 1883, 60)
    client.loop_start.assert_called_once()


def test_connect_timeout_raises():
    with patch("flockpilot.transport.mqtt_bus.mqtt") as mock_mqtt:
        mock_mqtt.Client.return_value = MagicMock()
        bus = MQTTBus({"broker_host": "h", "connect_timeout_s": 0.01})
        with pytest.raises(ConnectionError):
            bus.connect()


def test_close_stops_client():
    bus = _connected_bus()
    client = bus._client
    bus.close()
    client.loop_stop.assert_called_once()
    client.disconnect.assert_called_once()
    assert bus._client is None
    assert not bus._connected.is_set()


def test_close_disconnects_before_stopping_loop():
    bus = _connected_bus()
    client = bus._client
    bus.close()
    names = [c[0] for c in client.mock_calls]
    assert names.index("disconnect") < names.index("loop_stop")


# ── publish / subscribe ───────────────────────────────────────────────────────

def test_publish_prefixes_topic():
    bus = _connected_bus()
    bus.publish("poses", "rover1 (0.0,0.0,0.0)")
    bus._client.publish.assert_called_once_with(
        "flock/poses", b"rover1 (0.0,0.0,0.0)", qos=0
    )


def test_publish_when_disconnected_is_dropped():
    bus = MQTTBus({"broker_host": "localhost"})
    bus.publish("poses", "x")  # no client, no exception


def test_subscribe_once_per_topic():
    bus = _connected_bus()
    bus.subscribe("poses", MagicMock())
    bus.subscribe("poses", MagicMock())
    bus._client.subscribe.assert_called_once_with("flock/poses", qos=0)


def test_subscribe_before_connect_is_deferred():
    bus = MQTTBus({"broker_host": "localhost"})
    bus.subscribe("poses", MagicMock())
    client = MagicMock()
    bus._on_connect(client, None, {}, _reason())
    client.subscribe.assert_called_once_with("flock/poses", qos=0)
    assert bus._connected.is_set()


# ── paho callbacks ────────────────────────────────────────────────────────────

def test_on_connect_failure_stays_disconnected():
    bus = MQTTBus({"broker_host": "localhost"})
    bus._on_connect(MagicMock(), None, {}, _reason(failure=True))
    assert not bus._connected.is_set()


def test_on_disconnect_clears_flag():
    bus = _connected_bus()
    bus._on_disconnect(bus._client, None, {}, _reason(failure=True))
    assert not bus._connected.is_set()


def test_on_message_strips_prefix_and_dispatches():
    bus = _connected_bus()
    cb = MagicMock()
    bus.subscribe("rover1/mode", cb)
    msg = MagicMock()
    msg.topic = "flock/rover1/mode"
    msg.payload = b" 2 \n"
    bus._on_message(bus._client, None, msg)
    cb.assert_called_once_with("2")


def test_on_message_handler_error_is_contained():
    bus = _connected_bus()
    bad = MagicMock(side_effect=ValueError("boom"))
    good = MagicMock()
    bus.subscribe("poses", bad)
    bus.subscribe("poses", good)
    msg = MagicMock()
    msg.topic = "flock/poses"
    msg.payload = b"r (1,2,3)"
    bus._on_message(bus._client, None, msg)
    good.assert_called_once_with("r (1,2,3)")


def test_on_message_unknown_topic_ignored():
    bus = _connected_bus()
    msg = MagicMock()
    msg.topic = "flock/nobody"
    msg.payload = b"x"
    bus._on_message(bus._client, None, msg)
