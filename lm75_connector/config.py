#!/usr/bin/env python3

import os
import json
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from lm75_connector.errors import ConfigError
from lm75_connector.models import SensorChannel, SensorId

logger = logging.getLogger('lm75_config')

DEFAULT_CONFIG_PATH = "config.json"
DOTENV_PATH = "config.env"

# Wait for the I2C and network subsystems on system startup
APPLICATION_START_DELAY = 5

LOGGING_LEVELS = ("FATAL", "ERROR", "INFO", "DEBUG")

DEFAULT_SEND_INTERVAL = 1000
DEFAULT_MQTT_PORT = 1883
DEFAULT_KEEPALIVE = 60
DEFAULT_RECONNECT_MIN_DELAY = 1
DEFAULT_RECONNECT_MAX_DELAY = 120

# Subscribers already listen on these, including the lower-case "topic" of sensor 2
SENSOR1_TOPIC = "lm75/sensor1Topic"
SENSOR2_TOPIC = "lm75/sensor2topic"

SENSOR1_ROUTE = "iot-gw/lm75/sensor1Topic"
SENSOR2_ROUTE = "iot-gw/lm75/sensor2Topic"

SENSOR1_DESCRIPTION = "Lm75_temperature near Memory"
SENSOR2_DESCRIPTION = "Lm75_temperature near Cpu"

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "LOG_LEVEL": ("app", "loggingLevel"),
    "SEND_INTERVAL": ("app", "sendInterval"),
    "START_DELAY": ("app", "startDelay"),
    "LOG_FILE": ("app", "logFile"),
    "MQTT_BROKER": ("mqtt", "host"),
    "MQTT_PORT": ("mqtt", "port"),
    "MQTT_CLIENT_ID": ("mqtt", "client_id"),
    "MQTT_USERNAME": ("mqtt", "username"),
    "MQTT_PASSWORD": ("mqtt", "password"),
    "LM75_BUS_NUM": ("lm75", "bus_num"),
    "LM75_SENSOR1": ("lm75", "sensor1"),
    "LM75_SENSOR2": ("lm75", "sensor2"),
}


@dataclass(frozen=True)
class AppSettings:
    logging_level: str = "INFO"
    send_interval: int = DEFAULT_SEND_INTERVAL
    start_delay: float = APPLICATION_START_DELAY
    log_file: Optional[str] = None

    @property
    def send_interval_seconds(self) -> float:
        return self.send_interval / 1000.0


@dataclass(frozen=True)
class MqttSettings:
    host: str
    port: int = DEFAULT_MQTT_PORT
    client_id: str = ""
    keepalive: int = DEFAULT_KEEPALIVE
    username: Optional[str] = None
    password: Optional[str] = None
    reconnect_min_delay: int = DEFAULT_RECONNECT_MIN_DELAY
    reconnect_max_delay: int = DEFAULT_RECONNECT_MAX_DELAY

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Lm75Settings:
    bus_num: int
    sensor1: int
    sensor2: int
    sensor1_topic: str = SENSOR1_TOPIC
    sensor2_topic: str = SENSOR2_TOPIC

    @property
    def channels(self) -> Tuple[SensorChannel, SensorChannel]:
        return (
            SensorChannel(SensorId.SENSOR1, self.sensor1, self.sensor1_topic,
                          SENSOR1_ROUTE, SENSOR1_DESCRIPTION),
            SensorChannel(SensorId.SENSOR2, self.sensor2, self.sensor2_topic,
                          SENSOR2_ROUTE, SENSOR2_DESCRIPTION),
        )


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    mqtt: MqttSettings
    lm75: Lm75Settings

    def to_dict(self):
        mqtt = dict(self.mqtt.__dict__)
        if mqtt.get("password"):
            mqtt["password"] = "***"
        return {
            "app": dict(self.app.__dict__),
            "mqtt": mqtt,
            "lm75": {
                "bus_num": self.lm75.bus_num,
                "sensor1": hex(self.lm75.sensor1),
                "sensor2": hex(self.lm75.sensor2),
                "sensor1_topic": self.lm75.sensor1_topic,
                "sensor2_topic": self.lm75.sensor2_topic,
            },
        }


def _read_config_file(config_path):
    if not os.path.exists(config_path):
        logger.info(f"No configuration file at {config_path}, using environment variables")
        return {}

    try:
        with open(config_path, "r") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read configuration from {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration in {config_path} must be a JSON object")

    logger.info(f"Loaded configuration from {config_path}")
    return raw


def _apply_env_overrides(raw, environ):
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        section_values = raw.setdefault(section, {})
        if not isinstance(section_values, dict):
            raise ConfigError(f"Configuration section '{section}' must be an object")
        section_values[key] = value
    return raw


def _section(raw, name):
    value = raw.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Configuration section '{name}' must be an object")
    return value


def _require(section, name, key):
    if key not in section or section[key] in (None, ""):
        raise ConfigError(f"Missing required configuration value '{name}.{key}'")
    return section[key]


def _to_int(value, name):
    """Accept ints and numeric strings, including hex such as '0x48'"""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid integer for '{name}': {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip(), 0)
    except ValueError:
        raise ConfigError(f"Invalid integer for '{name}': {value!r}") from None


def _to_float(value, name):
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid number for '{name}': {value!r}") from None


def _to_topic(value, name, default):
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{name}' must be a non-empty topic string, got {value!r}")
    if "+" in value or "#" in value:
        raise ConfigError(f"'{name}' must not contain MQTT wildcards: {value!r}")
    return value


def _parse_app(section):
    level = str(section.get("loggingLevel", "INFO")).upper()
    if level not in LOGGING_LEVELS:
        raise ConfigError(f"Invalid app.loggingLevel '{level}', expected one of {', '.join(LOGGING_LEVELS)}")

    send_interval = _to_int(section.get("sendInterval", DEFAULT_SEND_INTERVAL), "app.sendInterval")
    if send_interval <= 0:
        raise ConfigError(f"app.sendInterval must be positive, got {send_interval}")

    start_delay = _to_float(section.get("startDelay", APPLICATION_START_DELAY), "app.startDelay")
    if start_delay < 0:
        raise ConfigError(f"app.startDelay must not be negative, got {start_delay}")

    return AppSettings(
        logging_level=level,
        send_interval=send_interval,
        start_delay=start_delay,
        log_file=section.get("logFile") or None,
    )


def _parse_mqtt(section):
    host = str(_require(section, "mqtt", "host"))
    port = _to_int(section.get("port", DEFAULT_MQTT_PORT), "mqtt.port")
    if not 0 < port < 65536:
        raise ConfigError(f"mqtt.port out of range: {port}")

    min_delay = _to_int(section.get("reconnect_min_delay", DEFAULT_RECONNECT_MIN_DELAY),
                        "mqtt.reconnect_min_delay")
    max_delay = _to_int(section.get("reconnect_max_delay", DEFAULT_RECONNECT_MAX_DELAY),
                        "mqtt.reconnect_max_delay")
    if min_delay <= 0 or max_delay < min_delay:
        raise ConfigError(f"Invalid MQTT reconnect delays: {min_delay}..{max_delay}")

    return MqttSettings(
        host=host,
        port=port,
        client_id=str(section.get("client_id") or ""),
        keepalive=_to_int(section.get("keepalive", DEFAULT_KEEPALIVE), "mqtt.keepalive"),
        username=section.get("username") or None,
        password=section.get("password") or None,
        reconnect_min_delay=min_delay,
        reconnect_max_delay=max_delay,
    )


def _parse_lm75(section):
    bus_num = _to_int(_require(section, "lm75", "bus_num"), "lm75.bus_num")
    sensor1 = _to_int(_require(section, "lm75", "sensor1"), "lm75.sensor1")
    sensor2 = _to_int(_require(section, "lm75", "sensor2"), "lm75.sensor2")

    for name, address in (("lm75.sensor1", sensor1), ("lm75.sensor2", sensor2)):
        if not 0x03 <= address <= 0x77:
            raise ConfigError(f"{name} is not a valid 7-bit I2C address: {address:#x}")

    return Lm75Settings(
        bus_num=bus_num,
        sensor1=sensor1,
        sensor2=sensor2,
        sensor1_topic=_to_topic(section.get("sensor1Topic"), "lm75.sensor1Topic", SENSOR1_TOPIC),
        sensor2_topic=_to_topic(section.get("sensor2topic"), "lm75.sensor2topic", SENSOR2_TOPIC),
    )


def parse_config(raw):
    """Validate a raw configuration mapping and build an AppConfig"""
    if not isinstance(raw, dict):
        raise ConfigError("Configuration must be a mapping")

    return AppConfig(
        app=_parse_app(_section(raw, "app")),
        mqtt=_parse_mqtt(_section(raw, "mqtt")),
        lm75=_parse_lm75(_section(raw, "lm75")),
    )


def load_config(config_path=None, environ=None):
    """
    Load configuration from a JSON file, then apply environment overrides.

    The file path comes from the argument, then CONFIG_PATH, then config.json.
    Variables from config.env are loaded into the environment first.
    """
    if environ is None:
        load_dotenv(DOTENV_PATH)
        environ = os.environ

    config_path = config_path or environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)
    raw = _read_config_file(config_path)
    raw = _apply_env_overrides(raw, environ)
    return parse_config(raw)
