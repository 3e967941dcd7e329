"""
Command-line entry point for portpusher.

Usage:
    portpusher                  Poll Gluetun and push forever
    portpusher --once           Run a single cycle and exit
    portpusher --log-level DEBUG

All other settings come from environment variables (or a .env file), for
example TRANSMISSION_ENABLED=true GLUETUN_HOST=gluetun.
"""

import argparse
import os
import sys

from .client_factory import create_port_clients, create_port_source
from .config import Config, ConfigError
from .logger import logger, setup_logging
from .pusher import PortPusher


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="portpusher",
        description="Push the port forwarded by Gluetun to BitTorrent clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  PUSHER_LOG_LEVEL        DEBUG, INFO, WARN or ERROR (default: INFO)
  PUSHER_DELAY_SUCCESS    Minutes between pushes after success (default: 10)
  PUSHER_DELAY_ERROR      Minutes between pushes after a failure (default: 5)
  GLUETUN_HOST/PORT       Gluetun control server (default: localhost:8000)
  TRANSMISSION_ENABLED    true to push to Transmission
  QBITTORRENT_ENABLED     true to push to qBittorrent
  DELUGE_ENABLED          true to push to Deluge
""",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single pull/push cycle and exit (status 1 if anything failed)",
    )
    parser.add_argument(
        "--log-level",
        help="Override PUSHER_LOG_LEVEL",
    )

    args = parser.parse_args(argv)

    env = dict(os.environ)
    if args.log_level:
        env["PUSHER_LOG_LEVEL"] = args.log_level

    try:
        config = Config.from_env(env)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, config.log_path)
    for key, value in config.summary().items():
        logger.info(f"{key}: {value}")

    source = create_port_source(config)
    clients = create_port_clients(config)
    pusher = PortPusher(
        source,
        clients,
        delay_success=config.delay_success_seconds,
        delay_error=config.delay_error_seconds,
    )

    if args.once:
        try:
            cycle = pusher.run_once()
        except Exception as e:
            logger.exception(f"Unexpected error in push cycle: {e}")
            return 1
        return 1 if cycle.failed else 0

    try:
        pusher.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
