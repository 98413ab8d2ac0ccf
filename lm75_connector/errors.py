class Lm75Error(Exception):
    """Base class for connector errors"""


class BusError(Lm75Error):
    """Raised when a register read on the I2C bus fails"""

    def __init__(self, bus_num, address, cause=None):
        self.bus_num = bus_num
        self.address = address
        self.cause = cause
        super().__init__(f"I2C read failed on bus {bus_num}, address {address:#04x}: {cause}")


class BrokerConnectionError(Lm75Error):
    """Reported when the MQTT connection is closed, refused or goes offline"""

    def __init__(self, event, reason=None):
        self.event = event
        self.reason = reason
        message = f"MQTT connection {event}"
        if reason is not None:
            message += f" ({reason})"
        super().__init__(message)


class ConfigError(Lm75Error):
    """Raised when the configuration is missing or malformed"""
