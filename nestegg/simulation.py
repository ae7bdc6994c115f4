"""Simulation orchestration across trials."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from decimal import Decimal

from . import engine
from .config import SimulationConfig
from .errors import ValidationError
from .historical_data import FIRST_YEAR, LAST_YEAR, monthly_returns, rolling_start_years
from .levers import MarketLevers, SimulationLevers, SimulationMode
from .money import ONE, ZERO, Number, round_money, safe_ratio, to_decimal
from .months import MONTHS_PER_YEAR
from .results import TimeSeries
from .summary import AnnualSummary, annual_summaries

logger = logging.getLogger(__name__)

DEFAULT_TRIALS = 250


@dataclass(slots=True)
class BalancePercentiles:
    year: int
    p10: Decimal
    p25: Decimal
    p50: Decimal
    p75: Decimal
    p90: Decimal


@dataclass(slots=True)
class SimulationResult:
    mode: SimulationMode
    seed: int | None
    annual: list[AnnualSummary]
    depleted_years: list[int]
    trial_count: int = 1
    success_rate: Decimal = ONE
    percentiles: list[BalancePercentiles] = field(default_factory=list)
    series: TimeSeries | None = None

    @property
    def ending_percentiles(self) -> BalancePercentiles | None:
        return self.percentiles[-1] if self.percentiles else None


def _percentile(values: list[Decimal], pct: Decimal) -> Decimal:
    ordered = sorted(values)
    if not ordered:
        return ZERO
    if len(ordered) == 1:
        return ordered[0]
    position = (len(ordered) - 1) * pct
    low = int(math.floor(position))
    high = int(math.ceil(position))
    if low == high:
        return ordered[low]
    weight = position - low
    return round_money(ordered[low] * (ONE - weight) + ordered[high] * weight)


def _depleted_years(series: TimeSeries) -> list[int]:
    return sorted({s.month.year for s in series if s.is_depleted})


def _average(values: list[Decimal]) -> Decimal:
    return round_money(sum(values, ZERO) / len(values))


def _aggregate(
    trials: list[TimeSeries],
    mode: SimulationMode,
    seed: int | None,
) -> SimulationResult:
    per_trial = [annual_summaries(series) for series in trials]
    depleted = [_depleted_years(series) for series in trials]
    count = len(trials)

    annual: list[AnnualSummary] = []
    percentiles: list[BalancePercentiles] = []
    for idx, first in enumerate(per_trial[0]):
        rows = [summaries[idx] for summaries in per_trial]
        starting = _average([r.starting_balance for r in rows])
        ending = _average([r.ending_balance for r in rows])
        annual_return = _average([r.annual_return for r in rows])
        annual.append(
            AnnualSummary(
                year=first.year,
                starting_balance=starting,
                ending_balance=ending,
                total_contributions=_average([r.total_contributions for r in rows]),
                total_withdrawals=_average([r.total_withdrawals for r in rows]),
                total_income=_average([r.total_income for r in rows]),
                total_expenses=_average([r.total_expenses for r in rows]),
                total_taxes=_average([r.total_taxes for r in rows]),
                annual_return=annual_return,
                annual_return_percent=safe_ratio(annual_return, (starting + ending) / 2),
                events=first.events if count == 1 else (),
            )
        )
        endings = [r.ending_balance for r in rows]
        percentiles.append(
            BalancePercentiles(
                year=first.year,
                p10=_percentile(endings, Decimal("0.10")),
                p25=_percentile(endings, Decimal("0.25")),
                p50=_percentile(endings, Decimal("0.50")),
                p75=_percentile(endings, Decimal("0.75")),
                p90=_percentile(endings, Decimal("0.90")),
            )
        )

    successes = sum(1 for years in depleted if not years)
    return SimulationResult(
        mode=mode,
        seed=seed,
        annual=annual,
        depleted_years=sorted({year for years in depleted for year in years}),
        trial_count=count,
        success_rate=safe_ratio(Decimal(successes), Decimal(count)),
        percentiles=percentiles,
        series=trials[0] if count == 1 else None,
    )


def run_simulation(config: SimulationConfig, trials: int | None = None, seed: int | None = None) -> SimulationResult:
    """Run ``config`` once, or ``trials`` times in Monte Carlo mode.

    Each Monte Carlo trial gets its own seed drawn from ``random.Random(seed)``
    and runs on its own copy of the portfolio.
    """
    market = config.levers.market
    if not market.mode.is_stochastic:
        series = engine.run(config)
        return _aggregate([series], market.mode, market.seed)

    count = DEFAULT_TRIALS if trials is None else trials
    if count < 1:
        raise ValidationError(f"trials must be at least 1 (got {count})", "trials")
    if seed is None:
        seed = market.seed
    if seed is None:
        seed = random.SystemRandom().randrange(2**32)
        logger.info("no seed supplied for Monte Carlo simulation; using %d", seed)

    rng = random.Random(seed)
    results: list[TimeSeries] = []
    for trial in range(count):
        trial_seed = rng.randrange(2**32)
        logger.debug("trial %d: seed %d", trial, trial_seed)
        levers = SimulationLevers(market=market.with_seed(trial_seed), economic=config.levers.economic)
        results.append(engine.run(config.with_levers(levers)))
    return _aggregate(results, SimulationMode.MONTE_CARLO, seed)


def run_historical_windows(
    config: SimulationConfig,
    start_year: int = FIRST_YEAR,
    end_year: int = LAST_YEAR,
    stock_weight: Number = Decimal("0.6"),
) -> SimulationResult:
    """Replay every rolling window of the bundled dataset that covers the run."""
    window_years = math.ceil(config.month_count() / MONTHS_PER_YEAR)
    starts = rolling_start_years(start_year, end_year, window_years)
    if not starts:
        raise ValidationError(
            f"{start_year}-{end_year} has no {window_years}-year window of historical data", "start_year"
        )
    weight = to_decimal(stock_weight)
    results: list[TimeSeries] = []
    for first_year in starts:
        market = MarketLevers.historical(monthly_returns(first_year, window_years, weight, config.precision))
        logger.debug("historical window starting %d", first_year)
        levers = SimulationLevers(market=market, economic=config.levers.economic)
        results.append(engine.run(config.with_levers(levers)))
    return _aggregate(results, SimulationMode.HISTORICAL, None)
