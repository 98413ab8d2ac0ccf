import logging

logger = logging.getLogger('lm75_identity')

CPUINFO_PATH = "/proc/cpuinfo"


def get_serial(cpuinfo_path=CPUINFO_PATH):
    """Return the board serial number from cpuinfo, or None if it is not available"""
    try:
        with open(cpuinfo_path, "r", encoding="ascii", errors="replace") as f:
            for line in f:
                if line.startswith("Serial"):
                    _, _, value = line.partition(":")
                    return value.strip() or None
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read {cpuinfo_path}: {e}")
    return None
