"""Command-line interface for the lock ledger."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .logging_setup import configure_logging
from .services import LedgerService, Replayer
from .services.replay import format_result, load_script


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lock-ledger",
        description="Time-locked position ledger for singularity pools",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    replay_parser = sub.add_parser("replay", help="Run a scenario of ledger operations")
    replay_parser.add_argument("script", help="Path to a scenario YAML file")

    sub.add_parser("pools", help="List pools registered at bootstrap")

    return parser


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the process exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    service = LedgerService(config)
    service.bootstrap()

    if args.command == "replay":
        steps = load_script(args.script)
        result = await Replayer(service).run_and_notify(steps)
        print(format_result(result))
        print()
        print(service.pools_report())
        print(service.positions_report())
        return 0 if result.ok else 2

    if args.command == "pools":
        await service.relay.flush()
        print(service.pools_report())
        return 0

    build_parser().print_help()
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
