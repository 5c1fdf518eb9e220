# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Main entry point for the syslog server

# Standard library imports
import argparse
import asyncio
import logging
import sys

from typing import Any, Dict, List, Optional

# Local/package imports
from dual_syslog_listener.config import (
    Config,
    apply_overrides,
    configure_logging,
    load_config,
)
from dual_syslog_listener.models import EventRecord
from dual_syslog_listener.server import SyslogServer
from dual_syslog_listener.telemetry import configure_tracing


def setup_logging(log_level: str = "INFO", config: Optional[Config] = None) -> None:
    """
    Configure logging with appropriate formatters and handlers.

    Args:
        log_level: The logging level to set (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        config: Optional configuration object to use for logging setup
    """
    if config:
        configure_logging(config)
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # The SDK exporter is chatty at DEBUG
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)


def create_server() -> SyslogServer:
    """
    Build a server whose subscribers write every event to the log.
    """
    logger = logging.getLogger("dual_syslog_listener.main")
    server = SyslogServer()

    def on_message(record: EventRecord) -> None:
        logger.info(
            record.message,
            extra={"host": record.host, "protocol": record.protocol},
        )

    server.on("message", on_message)
    server.on("warn", lambda warning: logger.warning(str(warning)))
    server.on("error", lambda error: logger.error(f"Syslog server error: {error}"))
    return server


def run_server(config: Config) -> None:
    """
    Run the syslog server until interrupted.

    Args:
        config: The resolved configuration
    """
    logger = logging.getLogger("dual_syslog_listener.main")

    if config.enable_tracing:
        configure_tracing()

    server = create_server()
    try:
        asyncio.run(server.run_forever(config))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.exception(f"Failed to run server: {e}")
        sys.exit(1)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Collect command line overrides as a partial configuration mapping.
    """
    overrides: Dict[str, Any] = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.address:
        overrides["address"] = args.address
    if args.port is not None:
        overrides["port"] = args.port

    udp: Dict[str, Any] = {}
    if args.udp is not None:
        udp["enabled"] = args.udp
    if udp:
        overrides["udp"] = udp

    tcp: Dict[str, Any] = {}
    if args.tcp is not None:
        tcp["enabled"] = args.tcp
    if args.tcp_port is not None:
        tcp["port"] = args.tcp_port
    if tcp:
        overrides["tcp"] = tcp

    return overrides


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dual transport syslog listener")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides config file)",
    )
    parser.add_argument(
        "--address",
        type=str,
        help="Address to bind to (overrides config file)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (overrides config file)",
    )
    parser.add_argument(
        "--udp",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable the UDP listener",
    )
    parser.add_argument(
        "--tcp",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable the TCP listener",
    )
    parser.add_argument(
        "--tcp-port",
        type=int,
        help="Port for the TCP listener (defaults to --port)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the syslog server.
    Parses command-line arguments, sets up logging, and starts the server.
    """
    args = parse_args(argv)

    try:
        config = load_config(args.config if args.config else None)
        config = apply_overrides(config, build_overrides(args))

        setup_logging(config=config)
        logger = logging.getLogger("dual_syslog_listener.main")

        if args.config:
            logger.info(f"Loaded configuration from {args.config}")
        else:
            logger.info("Using default or automatically detected configuration")

        logger.info("Starting dual transport syslog listener")
        run_server(config)
    except KeyboardInterrupt:
        logger = logging.getLogger("dual_syslog_listener.main")
        logger.info("Server shutdown requested by user")
    except Exception as e:
        if not logging.root.handlers:
            setup_logging("ERROR")
        logger = logging.getLogger("dual_syslog_listener.main")
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
