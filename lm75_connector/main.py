#!/usr/bin/env python3

import argparse
import logging
import sys
from dataclasses import replace

from lm75_connector import __version__
from lm75_connector.config import LOGGING_LEVELS, load_config
from lm75_connector.connector import Lm75Connector
from lm75_connector.errors import ConfigError
from lm75_connector.logging_setup import configure_logging

logger = logging.getLogger('main')


def build_parser():
    parser = argparse.ArgumentParser(description='Publish LM75 temperature readings to an MQTT broker')
    parser.add_argument('--config', help='Path to the JSON configuration file')
    parser.add_argument('--log-level', choices=LOGGING_LEVELS, help='Override app.loggingLevel')
    parser.add_argument('--start-delay', type=float, help='Seconds to wait before connecting')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        configure_logging(args.log_level or "INFO")
        logger.critical(f"Invalid configuration: {e}")
        return 1

    if args.log_level:
        config = replace(config, app=replace(config.app, logging_level=args.log_level))
    if args.start_delay is not None:
        config = replace(config, app=replace(config.app, start_delay=max(0.0, args.start_delay)))

    configure_logging(config.app.logging_level, config.app.log_file)

    connector = Lm75Connector(config)
    connector.install_handlers()

    try:
        return connector.run()
    except Exception as e:
        connector.handle_fatal(e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
