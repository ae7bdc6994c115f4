"""CLI entry point for nestegg."""

from __future__ import annotations

import argparse
import logging
import sys

from .config import SimulationConfig
from .errors import NestEggError
from .levers import MarketLevers, SimulationLevers, SimulationMode
from .report import render_text_summary, write_json
from .schema import SchemaError, load_config
from .simulation import SimulationResult, run_historical_windows, run_simulation
from .validate import validate_config


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nestegg", description="Month-by-month retirement projection")
    parser.add_argument("config", help="Path to configuration JSON file")
    parser.add_argument("--mode", choices=[m.value for m in SimulationMode], help="Override simulation mode")
    parser.add_argument("--seed", type=int, help="Random seed for reproducibility")
    parser.add_argument("--trials", type=int, help="Monte Carlo trial count")
    parser.add_argument(
        "--rolling",
        nargs=2,
        type=int,
        metavar=("START", "END"),
        help="Replay every rolling window of historical returns between two years",
    )
    parser.add_argument("--validate", action="store_true", help="Validate configuration only")
    parser.add_argument("--summary", action="store_true", help="Print text summary to stdout")
    parser.add_argument("--json", metavar="PATH", help="Write full results as JSON")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")
    return parser


def _print_validation(errors: list[str], warnings: list[str]) -> None:
    for warning in warnings:
        print(f"WARNING: {warning}")
    for error in errors:
        print(f"ERROR: {error}", file=sys.stderr)


def _override_mode(config: SimulationConfig, mode: str | None) -> SimulationConfig:
    if mode is None or mode == config.levers.mode.value:
        return config
    market = config.levers.market
    override = MarketLevers(
        mode=SimulationMode(mode),
        expected_return=market.expected_return,
        return_std_dev=market.return_std_dev,
        historical_returns=market.historical_returns,
        seed=market.seed,
    )
    return config.with_levers(SimulationLevers(market=override, economic=config.levers.economic))


def _run(config: SimulationConfig, args: argparse.Namespace) -> SimulationResult:
    if args.rolling is not None:
        start_year, end_year = args.rolling
        return run_historical_windows(config, start_year, end_year)
    return run_simulation(config, trials=args.trials, seed=args.seed)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = _override_mode(load_config(args.config), args.mode)
    except (SchemaError, OSError, ValueError, NestEggError) as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        return 2

    validation = validate_config(config)
    _print_validation(validation.errors, validation.warnings)
    if not validation.is_valid:
        return 1

    if args.validate:
        print("Config is valid.")
        return 0

    try:
        result = _run(config, args)
    except NestEggError as exc:
        print(f"Simulation failed: {exc}", file=sys.stderr)
        return 2

    if args.summary:
        print(render_text_summary(result))
    if args.json:
        print(f"Wrote results to {write_json(args.json, result)}")
    if result.seed is not None:
        print(f"Seed: {result.seed}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
