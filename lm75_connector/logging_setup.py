import sys
import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LOGGING_LEVELS = {
    "FATAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


class _BelowErrorFilter(logging.Filter):
    def filter(self, record):
        return record.levelno < logging.ERROR


def configure_logging(level_name="INFO", log_file=None):
    """
    Send ERROR and above to stderr regardless of the configured level, and
    everything below ERROR to stdout when it passes the configured level.
    """
    level = LOGGING_LEVELS.get(str(level_name).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.addFilter(_BelowErrorFilter())
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(formatter)

    handlers = [stdout_handler, stderr_handler]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(min(level, logging.ERROR))
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    # paho logs every packet at DEBUG
    logging.getLogger('paho').setLevel(max(level, logging.INFO))
    return level
