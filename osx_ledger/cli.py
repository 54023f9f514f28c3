"""Command-line interface for the osx ledger."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .chain import EvmRpcClient
from .config import AppConfig, load_config
from .errors import LedgerError
from .logging_setup import configure_logging
from .scenario import format_report, load_scenario, run_scenario
from .simulation import build_environment
from .simulation.environment import DEFAULT_INDEX_SCALE

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="osx-ledger",
        description="Collateralized-debt and reward-accrual ledger",
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

    simulate = sub.add_parser("simulate", help="Replay a scenario against an in-memory vault")
    simulate.add_argument("scenario", help="Path to scenario YAML")
    simulate.add_argument(
        "--live-index",
        action="store_true",
        help="Seed the collateral index from chain before running",
    )

    sub.add_parser("index", help="Fetch the current collateral index over RPC")

    return parser


async def _fetch_index(config: AppConfig) -> int:
    client = EvmRpcClient(config.chain)
    return await client.fetch_index(config.chain.index_contract)


def _simulate(args: argparse.Namespace, config: AppConfig) -> int:
    index = DEFAULT_INDEX_SCALE
    if args.live_index:
        index = asyncio.run(_fetch_index(config))

    env = build_environment(config, index=index)
    scenario = load_scenario(args.scenario)

    try:
        result = run_scenario(env, scenario)
    except (LedgerError, ValueError, KeyError) as e:
        code = e.code if isinstance(e, LedgerError) else type(e).__name__
        logger.error("Scenario aborted: [%s] %s", code, e)
        logger.info("\n%s", format_report(env.vault.snapshot()))
        return 1

    logger.info("\n%s", format_report(result.snapshot))
    if result.failures:
        logger.warning("%d step(s) failed", len(result.failures))
    return 0


def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "simulate":
        return _simulate(args, config)
    if args.command == "index":
        print(asyncio.run(_fetch_index(config)))
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

    sys.exit(_run(args))
