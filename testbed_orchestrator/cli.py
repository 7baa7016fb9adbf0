"""
Command Line Interface for the Testbed Orchestrator

Provides commands for:
- status: Show the instances of the testbed
- deploy: Create instances in every region
- start: Power on instances in every region
- stop: Power off every instance
- destroy: Delete every instance
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from .cloud.factory import get_client
from .configs.loader import load_settings
from .errors import TestbedError
from .status import render_status
from .testbed import Testbed
from .utils.logger import configure_logger

DEFAULT_SETTINGS_PATH = "testbed.toml"
DEFAULT_CLIENT = "memory"

EPILOG = (
    "The memory backend keeps its fleet in process memory, so every run starts from an empty fleet "
    "and `start` can only succeed within a single process. Pass --client package.module:ClassName "
    "to manage a real cloud account."
)


async def _run(args: argparse.Namespace) -> None:
    settings = load_settings(args.config)
    client = get_client(args.client, settings)
    testbed = await Testbed.create(settings, client)

    if args.command == "deploy":
        await testbed.deploy(args.quantity)
    elif args.command == "start":
        await testbed.start(args.quantity)
    elif args.command == "stop":
        await testbed.stop()
    elif args.command == "destroy":
        await testbed.destroy()

    logger.info("\n" + render_status(testbed))


def _non_negative(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"{value} is negative")
    return number


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Provision and recycle a multi-region testbed", epilog=EPILOG)
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=os.environ.get("TESTBED_SETTINGS", DEFAULT_SETTINGS_PATH),
        help=f"Settings file (default: $TESTBED_SETTINGS or {DEFAULT_SETTINGS_PATH})",
    )
    parser.add_argument(
        "--client",
        type=str,
        default=os.environ.get("TESTBED_CLIENT", DEFAULT_CLIENT),
        help="Cloud backend, a builtin name or package.module:ClassName (default: $TESTBED_CLIENT or memory, "
        "which does not persist instances between runs)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("status", help="Show the testbed instances")

    deploy = subparsers.add_parser("deploy", help="Create instances in every region")
    deploy.add_argument("quantity", type=_non_negative, help="Instances per region")

    start = subparsers.add_parser("start", help="Power on instances in every region")
    start.add_argument("quantity", type=_non_negative, help="Instances per region")

    subparsers.add_parser("stop", help="Power off every instance")
    subparsers.add_parser("destroy", help="Delete every instance")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = _build_arg_parser().parse_args(argv)
    configure_logger(args.verbose)

    try:
        asyncio.run(_run(args))
    except (TestbedError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
