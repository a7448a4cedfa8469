#!/usr/bin/env python3
"""Simulate a cooperative lending portfolio and export it.

Members, plan subscriptions, contributions and loans are created through
the real lifecycles. Lifecycle events stream to the configured sinks while
the simulation runs; the final entity snapshots are exported at the end.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from coop_lending.config import CoopLendingConfig, ScenarioConfig
from coop_lending.events import EventPublisher, build_sinks
from coop_lending.exceptions import LendingError
from coop_lending.logging import setup_logging
from coop_lending.scenarios import CooperativePortfolioScenario

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate a cooperative lending portfolio"
    )
    parser.add_argument(
        "--members",
        type=int,
        default=50,
        help="Number of members to generate (default: 50)",
    )
    parser.add_argument(
        "--cooperative-id",
        type=str,
        default="coop-001",
        help="Cooperative identifier (default: coop-001)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: SEED env var)",
    )
    parser.add_argument(
        "--loan-penetration",
        type=float,
        default=0.40,
        help="Share of members requesting a loan (default: 0.40)",
    )
    parser.add_argument(
        "--approval-rate",
        type=float,
        default=0.80,
        help="Share of eligible requests approved (default: 0.80)",
    )
    parser.add_argument(
        "--sinks",
        type=str,
        default=None,
        help="Comma-separated sinks: console, json, kafka (default: COOP_EVENT_SINKS env var)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the json sink (default: OUTPUT_DIR env var)",
    )
    parser.add_argument(
        "--kafka-bootstrap",
        type=str,
        default=None,
        help="Kafka bootstrap servers (default: KAFKA_BOOTSTRAP_SERVERS env var)",
    )
    parser.add_argument(
        "--log-format",
        choices=["standard", "json"],
        default="standard",
        help="Log output format",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CoopLendingConfig:
    """Environment config overridden by command-line flags."""
    config = CoopLendingConfig.from_env()
    if args.seed is not None:
        config.seed = args.seed
    if args.sinks:
        config.events.sinks = [s.strip() for s in args.sinks.split(",") if s.strip()]
    if args.output_dir is not None:
        config.output.json_output_dir = args.output_dir
    if args.kafka_bootstrap:
        config.kafka.bootstrap_servers = args.kafka_bootstrap
    config.scenario = ScenarioConfig(
        name="cooperative_portfolio",
        num_members=args.members,
        loan_penetration=args.loan_penetration,
        approval_rate=args.approval_rate,
        labels={"cooperative_id": args.cooperative_id},
    )
    return config


def print_summary(summary: dict, elapsed: float) -> None:
    print(f"\n{'='*60}")
    print("Portfolio Summary")
    print("=" * 60)
    for key, value in summary.items():
        print(f"  {key}: {value}")
    print(f"  elapsed: {elapsed:.2f}s")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
        setup_logging(config.log_level, args.log_format)
        sinks = build_sinks(config)
    except LendingError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    publisher = EventPublisher(sinks, config.events)
    scenario = CooperativePortfolioScenario.from_config(config.scenario, config, publisher)

    start = time.perf_counter()
    try:
        scenario.generate()
        scenario.export(sinks)
    finally:
        publisher.close()

    print_summary(scenario.get_summary(), time.perf_counter() - start)
    return 0


if __name__ == "__main__":
    sys.exit(main())
