"""Calendar-year roll-up of a month-level time series."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .errors import ValidationError
from .money import DEFAULT_PRECISION, ZERO, Precision, round_money, safe_ratio
from .results import MonthlySnapshot, TimeSeries

MIN_YEAR = 1900
MAX_YEAR = 2200


@dataclass(frozen=True, slots=True)
class AnnualSummary:
    year: int
    starting_balance: Decimal = ZERO
    ending_balance: Decimal = ZERO
    total_contributions: Decimal = ZERO
    total_withdrawals: Decimal = ZERO
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    total_taxes: Decimal = ZERO
    annual_return: Decimal = ZERO
    annual_return_percent: Decimal = ZERO
    events: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR} (got {self.year})", "year")
        object.__setattr__(self, "events", tuple(self.events))

    @property
    def net_balance_change(self) -> Decimal:
        return round_money(self.ending_balance - self.starting_balance)

    @property
    def net_contributions(self) -> Decimal:
        return round_money(self.total_contributions - self.total_withdrawals)

    @property
    def net_savings(self) -> Decimal:
        return round_money(self.total_income - self.total_expenses)

    @property
    def effective_tax_rate(self) -> Decimal:
        return safe_ratio(self.total_taxes, self.total_income)

    @property
    def had_growth(self) -> bool:
        return self.ending_balance > self.starting_balance

    @property
    def is_accumulating(self) -> bool:
        return self.total_contributions > self.total_withdrawals

    @property
    def is_distributing(self) -> bool:
        return self.total_withdrawals > self.total_contributions

    @property
    def had_significant_events(self) -> bool:
        return bool(self.events)


def summarize_year(
    year: int,
    snapshots: Iterable[MonthlySnapshot],
    precision: Precision = DEFAULT_PRECISION,
) -> AnnualSummary:
    """Fold the ``year`` snapshots (others are ignored) into one summary.

    The starting balance is the first month's pre-flow balance, so a partial
    first year starts from wherever the series starts.
    """
    months = [s for s in snapshots if s.month.year == year]
    if not months:
        raise ValidationError(f"no snapshots for {year}", "year")

    starting = months[0].starting_balance
    ending = months[-1].total_balance
    contributions = sum((s.total_contributions for s in months), ZERO)
    withdrawals = sum((s.total_withdrawals for s in months), ZERO)
    income = sum((s.income.total for s in months), ZERO)
    expenses = sum((s.expenses for s in months), ZERO)
    taxes = sum((s.taxes.total_tax_liability for s in months), ZERO)

    annual_return = round_money(ending - starting - contributions + withdrawals, precision)
    average_balance = (starting + ending) / 2
    events: list[str] = []
    for s in months:
        events.extend(f"{s.month}: {event}" for event in s.events)

    return AnnualSummary(
        year=year,
        starting_balance=round_money(starting, precision),
        ending_balance=round_money(ending, precision),
        total_contributions=round_money(contributions, precision),
        total_withdrawals=round_money(withdrawals, precision),
        total_income=round_money(income, precision),
        total_expenses=round_money(expenses, precision),
        total_taxes=round_money(taxes, precision),
        annual_return=annual_return,
        annual_return_percent=safe_ratio(annual_return, average_balance, precision),
        events=tuple(events),
    )


def annual_summaries(series: TimeSeries, precision: Precision = DEFAULT_PRECISION) -> list[AnnualSummary]:
    return [summarize_year(year, series.for_year(year), precision) for year in series.years()]
