"""Bundled historical annual returns and their monthly expansion.

Values are annual decimal returns for (stocks, bonds) keyed by year.
The bundled dataset is deterministic and covers 1926-2024.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Final

from .errors import HistoricalDataExhaustedError, ValidationError
from .money import DEFAULT_PRECISION, ONE, Number, Precision, compound_annual_to_monthly, to_decimal
from .months import MONTHS_PER_YEAR

FIRST_YEAR: Final[int] = 1926
LAST_YEAR: Final[int] = 2024


def _waveform(year: int, *, center: float, amplitude: float, period: int) -> float:
    x = ((year - FIRST_YEAR) % period) / period * 2.0 * math.pi
    return center + amplitude * (0.65 * math.sin(x) + 0.35 * math.sin(2.0 * x + 0.7))


def _build_dataset() -> dict[int, tuple[Decimal, Decimal]]:
    out: dict[int, tuple[Decimal, Decimal]] = {}
    for year in range(FIRST_YEAR, LAST_YEAR + 1):
        stock = max(-0.45, _waveform(year, center=0.10, amplitude=0.22, period=17))
        bond = max(-0.20, _waveform(year, center=0.04, amplitude=0.10, period=11))
        out[year] = (Decimal(f"{stock:.6f}"), Decimal(f"{bond:.6f}"))
    return out


ANNUAL_RETURNS: Final[dict[int, tuple[Decimal, Decimal]]] = _build_dataset()


def blended_annual_return(year: int, stock_weight: Number) -> Decimal:
    weight = to_decimal(stock_weight)
    if not 0 <= weight <= 1:
        raise ValidationError(f"stock_weight must be between 0 and 1 (got {weight})", "stock_weight")
    try:
        stock, bond = ANNUAL_RETURNS[year]
    except KeyError:
        raise HistoricalDataExhaustedError(
            f"no historical return for {year} (data covers {FIRST_YEAR}-{LAST_YEAR})"
        ) from None
    return weight * stock + (ONE - weight) * bond


def monthly_returns(
    start_year: int,
    years: int,
    stock_weight: Number = Decimal("0.6"),
    precision: Precision = DEFAULT_PRECISION,
) -> tuple[Decimal, ...]:
    """Expand ``years`` annual returns from ``start_year`` into monthly rates.

    Each year contributes twelve identical monthly rates that compound back to
    the blended annual return.
    """
    if years <= 0:
        raise ValidationError(f"years must be positive (got {years})", "years")
    out: list[Decimal] = []
    for year in range(start_year, start_year + years):
        monthly = compound_annual_to_monthly(blended_annual_return(year, stock_weight), precision)
        out.extend([monthly] * MONTHS_PER_YEAR)
    return tuple(out)


def rolling_start_years(start_year: int, end_year: int, window_years: int) -> list[int]:
    """First years of every ``window_years`` window that fits in the dataset range."""
    lo = max(start_year, FIRST_YEAR)
    hi = min(end_year, LAST_YEAR) - window_years + 1
    return list(range(lo, hi + 1))
