"""
Pytest configuration for the LM75 connector tests.

Provides a ready AppConfig and a broker double so no hardware or MQTT broker
is needed.
"""
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt
import pytest

from lm75_connector.config import parse_config
from lm75_connector.models import ConnectionState


@pytest.fixture
def raw_config():
    return {
        "app": {"loggingLevel": "DEBUG", "sendInterval": 1000, "startDelay": 0},
        "mqtt": {"host": "broker.local", "port": 1883},
        "lm75": {"bus_num": 1, "sensor1": "0x48", "sensor2": "0x49"},
    }


@pytest.fixture
def app_config(raw_config):
    return parse_config(raw_config)


@pytest.fixture
def connected_broker():
    """Broker double reporting an established connection"""
    broker = MagicMock()
    broker.state = ConnectionState.CONNECTED
    broker.is_connected = True
    broker.publish.return_value = MagicMock(rc=mqtt.MQTT_ERR_SUCCESS)
    return broker


@pytest.fixture
def offline_broker():
    broker = MagicMock()
    broker.state = ConnectionState.DISCONNECTED
    broker.is_connected = False
    return broker
