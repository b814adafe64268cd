"""Command-line interface for ecobee-exporter."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ecobee_exporter.config import DEFAULT_CONFIG_PATH, EXPORTER_NAME, load_config
from ecobee_exporter.ecobee import EcobeeClient, EcobeeError
from ecobee_exporter.log import setup_logging

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=EXPORTER_NAME, description="Prometheus exporter for Ecobee thermostats"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Serve metrics over HTTP")

    authorize_parser = subparsers.add_parser(
        "authorize", help="Authorize this exporter with an Ecobee PIN"
    )
    authorize_parser.add_argument(
        "--code", help="Authorization code from a previous run, once the PIN was accepted"
    )

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


def authorize(client: EcobeeClient, code: Optional[str] = None) -> int:
    """Two step PIN flow: request a PIN, then exchange its code for tokens"""
    if code is None:
        pin = client.request_pin()
        print(f"Enter PIN {pin.pin} under My Apps in the Ecobee portal within {pin.expires_in} minutes,")
        print(f"then run: {EXPORTER_NAME} authorize --code {pin.code}")
        return 0

    client.complete_authorization(code)
    print(f"Tokens stored in {client.store.path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (ValidationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, config.log_format)

    if args.command == "serve":
        from ecobee_exporter.main import serve
        serve(config)
        return 0

    if args.command == "authorize":
        if not config.api_key:
            LOGGER.error("An Ecobee API key is required (ECOBEE_API_KEY or api_key)")
            return 1
        client = EcobeeClient(config.api_key, config.cache_file, timeout=config.request_timeout)
        try:
            return authorize(client, args.code)
        except EcobeeError as exc:
            LOGGER.error("Authorization failed: %s", exc)
            return 1

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path or 'defaults'}\n")
        for key, value in config.model_dump(exclude={"path"}).items():
            if key == "api_key" and value:
                value = "********"
            print(f"{key} = {value}")
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
