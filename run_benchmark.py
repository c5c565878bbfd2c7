#!/usr/bin/env python3
"""
Calling-convention benchmark - provisions a throwaway database, seeds the
fixture tables, times every scenario and drops the database again.

With no flags the whole suite runs against the default server and the
report goes to stdout. ``--debug`` runs a single scenario once instead,
without statistics, for stepping through it.
"""

import argparse
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from sqlbench import BenchmarkRunner, FixtureLoadError, HarnessConfig, ProvisioningError
from sqlbench.db.fixtures import DEFAULT_ROW_COUNTS, MAX_BATCH_SIZE
from sqlbench.db.provisioning import DEFAULT_SERVER_URL
from sqlbench.db.schema import FIXTURE_TABLES
from sqlbench.report import print_summary, save_results
from sqlbench.scenarios import DEFAULT_DEBUG_SCENARIO, discover_scenarios

AUTO_OUTPUT = "auto"


def signal_handler(signum, frame):
    """Turn SIGTERM into KeyboardInterrupt so teardown still runs."""
    print(f"\n🛑 Received signal {signum}, cleaning up...")
    raise KeyboardInterrupt


def register_cleanup():
    signal.signal(signal.SIGTERM, signal_handler)


def parse_row_count(value: str):
    """Parse ``TABLE=N`` for ``--rows``."""
    table, sep, count = value.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected TABLE=N, got {value!r}")
    if table not in FIXTURE_TABLES:
        raise argparse.ArgumentTypeError(f"unknown table {table!r} (choose from {', '.join(FIXTURE_TABLES)})")
    try:
        rows = int(count)
    except ValueError:
        raise argparse.ArgumentTypeError(f"row count must be an integer, got {count!r}")
    if rows < 0:
        raise argparse.ArgumentTypeError(f"row count must not be negative, got {rows}")
    return table, rows


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync vs async database calling-convention benchmark")
    parser.add_argument("--server", default=DEFAULT_SERVER_URL,
                        help=f"Server URL to create the throwaway database on (default: {DEFAULT_SERVER_URL}, env SQLBENCH_SERVER_URL)")
    parser.add_argument("--debug", nargs="?", const=DEFAULT_DEBUG_SCENARIO, metavar="SCENARIO",
                        help=f"Run one scenario once without statistics (default scenario: {DEFAULT_DEBUG_SCENARIO})")
    parser.add_argument("--filter", help="Only run scenarios whose name starts with this prefix (e.g. 'scalar_')")
    parser.add_argument("--full-matrix", action="store_true",
                        help="Run the all-sync reader against every table, not just OneRow")
    parser.add_argument("--warmup", type=int, default=3, help="Warmup calls per scenario (default: 3)")
    parser.add_argument("--iterations", type=positive_int, default=20, help="Measured calls per scenario (default: 20)")
    parser.add_argument("--batch-size", type=positive_int, default=MAX_BATCH_SIZE,
                        help=f"Rows per insert statement while seeding (default: {MAX_BATCH_SIZE})")
    parser.add_argument("--rows", type=parse_row_count, action="append", default=[], metavar="TABLE=N",
                        help="Override a fixture table's row count (repeatable)")
    parser.add_argument("--output", nargs="?", const=AUTO_OUTPUT, metavar="DIR",
                        help="Save results.json to DIR (default when given without a value: .tmp/sqlbench_<timestamp>)")
    parser.add_argument("--list", action="store_true", help="List scenario names and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> HarnessConfig:
    row_counts: Dict[str, int] = dict(DEFAULT_ROW_COUNTS)
    row_counts.update(args.rows)
    return HarnessConfig(
        server_url=args.server,
        row_counts=row_counts,
        batch_size=args.batch_size,
        name_filter=args.filter,
        full_matrix=args.full_matrix,
        warmup=args.warmup,
        iterations=args.iterations,
    )


def output_dir(value: str) -> Path:
    if value == AUTO_OUTPUT:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f".tmp/sqlbench_{timestamp}")
    return Path(value)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = config_from_args(args)
    scenarios = discover_scenarios(config.name_filter, config.full_matrix)

    if args.list:
        for scenario in scenarios:
            print(scenario.name)
        return 0

    if args.debug:
        known = {s.name for s in discover_scenarios(full_matrix=True)}
        if args.debug not in known:
            parser.error(f"unknown scenario {args.debug!r}")
    elif not scenarios:
        print("❌ No scenarios match the filter")
        return 1

    register_cleanup()
    runner = BenchmarkRunner(config, progress=lambda message: print(f"  {message}"))

    print("🚀 Calling-convention benchmark")
    print("=" * 70)
    print(f"🌐 Server: {config.server_url}")
    print(f"📊 Tables: {', '.join(f'{name}={count:,}' for name, count in config.row_counts.items())}")

    try:
        if args.debug:
            result = runner.debug(args.debug)
            print(f"✅ {args.debug} returned {result!r}")
            return 0
        print(f"⏱️  Warmup {config.warmup}, iterations {config.iterations}, {len(scenarios)} scenarios")
        measurements = runner.run()
    except (ProvisioningError, FixtureLoadError) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("🛑 Interrupted")
        return 130

    print_summary(measurements)

    if args.output:
        results_path = save_results(measurements, output_dir(args.output), {
            "server": config.server_url,
            "row_counts": config.row_counts,
            "warmup": config.warmup,
            "iterations": config.iterations,
            "full_matrix": config.full_matrix,
        })
        print(f"\n💾 Results saved: {results_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
