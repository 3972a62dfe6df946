#!/usr/bin/env python3
"""
Command-line interface for ftp_fetch.

Fetches one file over FTP and writes it to stdout or a file. Log output
goes to stderr.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import aiofiles

from .config import ConfigLoader, GlobalConfig, LogLevel
from .exceptions import AddressError, DecodingError
from .logging import setup_logging
from .models import TransferModePolicy
from .request import load
from .resource import FTPResource

EXIT_OK = 0
EXIT_NOT_FETCHED = 1
EXIT_BAD_INPUT = 2
EXIT_DECODING_ERROR = 3


def create_parser() -> argparse.ArgumentParser:
    """Create the ``ftp-fetch`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="ftp-fetch",
        description="Fetch a file over FTP with retries and progress reporting",
    )
    parser.add_argument("url", help="FTP URL, e.g. ftp://ftp.example.org/pub/readme.txt")

    auth = parser.add_argument_group("authentication")
    auth.add_argument("-u", "--user", help="Username (default: anonymous)")
    auth.add_argument("-p", "--password", help="Password")

    transfer = parser.add_argument_group("transfer")
    transfer.add_argument(
        "--mode",
        choices=[m.value for m in TransferModePolicy],
        help="Transfer representation (default: auto by file suffix)",
    )
    transfer.add_argument(
        "--active", action="store_true", help="Request active data connections"
    )
    transfer.add_argument("--retries", type=int, help="Total number of attempts")
    transfer.add_argument(
        "--retry-delay", type=float, help="Seconds to wait between attempts"
    )

    output = parser.add_argument_group("output")
    output.add_argument(
        "--encoding", help="Decode the content with this encoding and write text"
    )
    output.add_argument(
        "-o", "--output", type=Path, help="Output file (default: stdout)"
    )

    logs = parser.add_argument_group("logging")
    logs.add_argument("--config", type=Path, help="YAML or JSON configuration file")
    logs.add_argument(
        "--log-level", choices=[level.value for level in LogLevel], help="Log level"
    )
    logs.add_argument(
        "--structured-logs", action="store_true", help="Emit JSON log records"
    )
    logs.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def apply_arguments(config: GlobalConfig, args: argparse.Namespace) -> GlobalConfig:
    """Overlay command-line options on a loaded configuration."""
    logging_changes = {}
    if args.verbose:
        logging_changes["level"] = LogLevel.DEBUG
    if args.log_level:
        logging_changes["level"] = LogLevel(args.log_level)
    if args.structured_logs:
        logging_changes["enable_structured"] = True

    fetch_changes = {}
    if args.user is not None:
        fetch_changes["username"] = args.user
    if args.password is not None:
        fetch_changes["password"] = args.password
    if args.mode:
        fetch_changes["transfer_mode"] = TransferModePolicy(args.mode)
    if args.active:
        fetch_changes["passive_mode"] = False
    if args.retries is not None:
        fetch_changes["max_retries"] = args.retries
    if args.retry_delay is not None:
        fetch_changes["retry_delay"] = args.retry_delay

    # model_validate re-runs field validation on the overlaid values
    return GlobalConfig.model_validate(
        {
            "logging": {**config.logging.model_dump(), **logging_changes},
            "fetch": {**config.fetch.model_dump(), **fetch_changes},
        }
    )


async def write_output(resource: FTPResource, args: argparse.Namespace) -> None:
    """Write the resource to ``--output`` or stdout, decoded if ``--encoding`` is set."""
    if args.encoding:
        text = resource.as_text(args.encoding)
        if args.output:
            async with aiofiles.open(args.output, "w", encoding=args.encoding) as f:
                await f.write(text)
        else:
            sys.stdout.write(text)
            sys.stdout.flush()
        return

    if args.output:
        async with aiofiles.open(args.output, "wb") as f:
            await f.write(resource.as_bytes())
    else:
        sys.stdout.buffer.write(resource.as_bytes())
        sys.stdout.buffer.flush()


async def run(args: argparse.Namespace) -> int:
    """Execute one fetch described by parsed arguments; returns the exit status."""
    try:
        config = apply_arguments(ConfigLoader().load_config(args.config), args)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    setup_logging(config.logging)

    try:
        resource = await load(config.fetch.to_configuration()).from_url(args.url)
    except AddressError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    if resource is None:
        print(f"Error: could not fetch {args.url}", file=sys.stderr)
        return EXIT_NOT_FETCHED

    try:
        await write_output(resource, args)
    except DecodingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DECODING_ERROR
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = create_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
