from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class SensorId(Enum):
    SENSOR1 = 1
    SENSOR2 = 2

    @property
    def key(self) -> str:
        return f"sensor{self.value}"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ApplicationState(Enum):
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class SensorChannel:
    """Static description of one LM75 sensor on the bus"""
    sensor_id: SensorId
    address: int
    topic: str
    route: str
    description: str

    @property
    def label(self) -> str:
        return f"LM75({self.sensor_id.value})"


@dataclass(frozen=True)
class SensorReading:
    sensor_id: SensorId
    raw_value: int
    celsius: float
    timestamp: int


@dataclass(frozen=True)
class PublishMessage:
    device_id: Optional[str]
    topic: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_reading(cls, channel: SensorChannel, reading: SensorReading,
                     device_id: Optional[str]) -> "PublishMessage":
        key = channel.sensor_id.key
        payload = {
            "tpid": device_id,
            "message": channel.route,
            "timestamp": reading.timestamp,
            f"{key}_desc": channel.description,
            f"{key}_temp": reading.celsius,
        }
        return cls(device_id=device_id, topic=channel.topic, payload=payload)
