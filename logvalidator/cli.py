#!/usr/bin/env python3
"""
log-validator command line interface

Usage:
    log-validator --config <file>        watch every configured file
    log-validator --check-file <file>    validate one file and exit
"""

import argparse
import sys
from typing import Optional, Sequence

from .batch import validate_file
from .config import env_poll_interval, load_config
from .debug_server import DebugServer, create_app
from .errors import ConfigError, DebugServerError, WatcherInitError
from .logging_config import configure_logging
from .metrics import LineMetrics
from .supervisor import Supervisor


def cmd_check_file(path: str) -> int:
    """Batch mode: validate one whole file."""
    try:
        bad = validate_file(path)
    except OSError as e:
        print(f"validation failed: {e}", file=sys.stderr)
        return 1
    if bad:
        print(f"validation failed: file contained {bad} invalid lines", file=sys.stderr)
        return 1
    return 0


def cmd_serve(config_path: str) -> int:
    """Service mode: watch the configured files until signalled."""
    try:
        config = load_config(config_path)
        poll_interval = env_poll_interval()
    except ConfigError as e:
        print(f"log-validator: {e}", file=sys.stderr)
        return 1

    logger = configure_logging(config.syslog)
    metrics = LineMetrics()
    supervisor = Supervisor(config.files, metrics, logger, poll_interval=poll_interval)

    try:
        supervisor.start()
    except WatcherInitError as e:
        print(f"log-validator: failed to tail file: {e}", file=sys.stderr)
        return 1

    server = None
    address = config.listen_address()
    if address is not None:
        server = DebugServer(create_app(metrics, supervisor.states), *address)
        try:
            server.start()
        except DebugServerError as e:
            print(f"log-validator: {e}", file=sys.stderr)
            supervisor.shutdown()
            return 1

    supervisor.install_signal_handlers()
    try:
        supervisor.wait()
    finally:
        supervisor.shutdown()
        if server is not None:
            server.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="log-validator",
        description="Verify the embedded checksums of structured log lines",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--config",
        help="File path to the configuration file for this service",
    )
    mode.add_argument(
        "--check-file",
        help="File path to a file to directly validate; the config is not read "
             "and only this file is inspected",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.check_file:
        return cmd_check_file(args.check_file)
    return cmd_serve(args.config)


if __name__ == "__main__":
    sys.exit(main())
