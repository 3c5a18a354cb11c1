#!/usr/bin/env python3
"""
CLI script for running the node conformance harness.

Runs the configured checks of each coin against its node and reports
per-check outcomes.

Usage:
    python cli.py --config config.json
    python cli.py --config config.json --coin bitcoin
    python cli.py --config config.json --coin bitcoin --tests GetBlock,MempoolSync
"""

import argparse
import json
import sys
import uuid
from typing import Optional

from adapters.bitcoind import BitcoindAdapter
from config.loader import ConfigurationManager
from config.models import HarnessConfig
from core.exceptions import ConfigurationError, FixtureError
from core.logging import configure_logging, get_logger
from harness.results import IntegrationReport
from harness.runner import run_integration


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Node adapter conformance harness",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run every configured coin
  python cli.py

  # Run one coin with a custom config file
  python cli.py --config /path/to/config.json --coin bitcoin

  # Run selected checks only
  python cli.py --coin bitcoin --tests GetBlockHash,GetBlock

  # Machine readable output
  python cli.py --json-output
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default="./config.json",
        help="Path to configuration file (default: ./config.json)"
    )

    parser.add_argument(
        "--env-file", "-e",
        type=str,
        default="./.env",
        help="Path to .env file (default: ./.env)"
    )

    parser.add_argument(
        "--coin",
        type=str,
        help="Comma-separated list of coins to test (default: all configured)"
    )

    parser.add_argument(
        "--tests",
        type=str,
        help="Comma-separated list of checks to run (overrides config)"
    )

    parser.add_argument(
        "--fixtures-dir",
        type=str,
        help="Directory of <coin>.json fixtures (overrides config)"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        help="Custom run ID (default: auto-generated UUID)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress output except errors"
    )

    parser.add_argument(
        "--json-output",
        action="store_true",
        help="Output results as JSON to stdout"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration without contacting any node"
    )

    return parser.parse_args(argv)


def select_coins(config: HarnessConfig, coins_arg: Optional[str]) -> list[str]:
    """Resolve the coins to run.

    Raises:
        ConfigurationError: If a requested coin is not configured.
    """
    if not coins_arg:
        return list(config.coins)

    coins = [c.strip() for c in coins_arg.split(",") if c.strip()]
    unknown = [c for c in coins if c not in config.coins]
    if unknown:
        raise ConfigurationError(
            f"Coins not configured: {', '.join(unknown)}", config_key="coins"
        )
    return coins


def run_coin(
    config: HarnessConfig,
    coin: str,
    tests_override: Optional[list[str]],
    run_id: str,
) -> IntegrationReport:
    """Run the checks of one coin against its configured node."""
    coin_config = config.coins[coin]
    tests = tests_override if tests_override is not None else coin_config.tests

    adapter = BitcoindAdapter.from_config(coin_config.rpc, config.retry)
    try:
        return run_integration(
            coin,
            adapter,
            tests,
            fixtures_dir=config.fixtures_dir,
            retry=config.retry,
            run_id=run_id,
        )
    finally:
        adapter.close()


def print_results(reports: list[IntegrationReport], json_output: bool = False) -> None:
    """Print results to console.

    Args:
        reports: Reports of the coins run.
        json_output: If True, output as JSON.
    """
    if json_output:
        print(json.dumps([r.to_dict() for r in reports], indent=2, default=str))
        return

    for report in reports:
        data = report.to_dict()
        print("\n" + "=" * 60)
        print(f"CONFORMANCE RESULTS: {report.coin}")
        print("=" * 60)
        print(f"Run ID: {data['run_id']}")
        print(f"Status: {'SUCCESS' if report.success else 'FAILED'}")
        print(f"Duration: {data['duration_seconds']:.2f} seconds")
        print(
            f"Passed: {data['passed']}  Failed: {data['failed']}  "
            f"Inconclusive: {data['inconclusive']}"
        )

        for result in report.results:
            print(f"  - {result.name}: {result.outcome.value.upper()}")
            for message in result.messages[:5]:
                print(f"      {message}")
            if len(result.messages) > 5:
                print(f"      ... and {len(result.messages) - 5} more messages")

        print("=" * 60 + "\n")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    args = parse_args(argv)

    if args.quiet:
        log_level = "ERROR"
    elif args.verbose:
        log_level = "DEBUG"
    else:
        log_level = "INFO"

    configure_logging(
        level=log_level,
        fmt="text",
        service_name="node-conformance-cli"
    )
    logger = get_logger(__name__)

    try:
        logger.info(f"Loading configuration from {args.config}")
        config_manager = ConfigurationManager(
            config_path=args.config,
            env_file=args.env_file
        )
        config = config_manager.load_config()
        if not (args.quiet or args.verbose):
            log_level = config.logging.level
        configure_logging(
            level=log_level,
            fmt=config.logging.format,
            service_name="node-conformance-cli"
        )
        if args.fixtures_dir:
            config.fixtures_dir = args.fixtures_dir
        config_manager.validate_config(config)

        coins = select_coins(config, args.coin)
        tests_override = None
        if args.tests:
            tests_override = [t.strip() for t in args.tests.split(",") if t.strip()]

        run_id = args.run_id or str(uuid.uuid4())

        if args.dry_run:
            print("Configuration validated successfully!")
            print(f"Coins: {coins}")
            print(f"Fixtures directory: {config.fixtures_dir}")
            for coin in coins:
                tests = tests_override if tests_override is not None else config.coins[coin].tests
                print(f"  {coin}: {', '.join(tests) or '(no tests declared)'}")
            return 0

        reports = []
        for coin in coins:
            logger.info(f"Running conformance checks for {coin}")
            reports.append(run_coin(config, coin, tests_override, run_id))

        if not args.quiet or args.json_output:
            print_results(reports, json_output=args.json_output)

        if all(r.success for r in reports):
            logger.info("Conformance run completed successfully")
            return 0
        logger.error("Conformance run completed with failures")
        return 1

    except FileNotFoundError as e:
        logger.error(f"Configuration file not found: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (ConfigurationError, FixtureError) as e:
        logger.error(e.message, extra={"error": e.to_dict()})
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Conformance run interrupted by user")
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
