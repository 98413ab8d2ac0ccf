import logging

from smbus2 import SMBus

from lm75_connector.errors import BusError

logger = logging.getLogger('lm75_bus')

CMD_READ_TEMP = 0x00


def read_sensor(bus_num, address):
    """
    Read the raw temperature register of one sensor.

    A new bus handle is opened for every read and closed before returning,
    so a wedged read cannot leave stale state for the next tick.
    """
    try:
        with SMBus(bus_num) as bus:
            raw_temp = bus.read_word_data(address, CMD_READ_TEMP)
    except (OSError, ValueError) as e:
        raise BusError(bus_num, address, e) from e

    logger.debug(f"Read {raw_temp:#06x} from bus {bus_num}, address {address:#04x}")
    return raw_temp
