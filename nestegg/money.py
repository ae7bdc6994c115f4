"""Fixed-scale decimal helpers used for every monetary computation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Union

from .errors import ValidationError
from .months import MONTHS_PER_YEAR

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass(frozen=True, slots=True)
class Precision:
    """Rounding configuration passed explicitly into the money math.

    ``digits`` is the significant-digit precision of intermediate compounding;
    ``money_places`` is the scale final amounts are rounded to.
    """

    digits: int = 10
    rounding: str = ROUND_HALF_UP
    money_places: int = 2
    rate_places: int = 4

    def __post_init__(self) -> None:
        if self.digits < 1:
            raise ValidationError(f"digits must be at least 1 (got {self.digits})", "digits")
        for name in ("money_places", "rate_places"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} cannot be negative (got {getattr(self, name)})", name)

    def context(self) -> Context:
        return Context(prec=self.digits, rounding=self.rounding)

    @property
    def money_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.money_places)

    @property
    def rate_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.rate_places)


DEFAULT_PRECISION = Precision()


def to_decimal(value: Number | None, default: Decimal = ZERO) -> Decimal:
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps the shortest repr so 0.07 stays 0.07.
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Number, precision: Precision = DEFAULT_PRECISION) -> Decimal:
    return to_decimal(value).quantize(precision.money_quantum, rounding=precision.rounding)


def round_rate(value: Number, precision: Precision = DEFAULT_PRECISION) -> Decimal:
    return to_decimal(value).quantize(precision.rate_quantum, rounding=precision.rounding)


def safe_ratio(numerator: Decimal, denominator: Decimal, precision: Precision = DEFAULT_PRECISION) -> Decimal:
    """Return numerator / denominator at rate scale, or zero for a zero denominator."""
    if denominator == 0:
        return ZERO.quantize(precision.rate_quantum)
    return round_rate(numerator / denominator, precision)


def apply_percentage(amount: Number, rate: Number, precision: Precision = DEFAULT_PRECISION) -> Decimal:
    return round_money(to_decimal(amount) * to_decimal(rate), precision)


def compound_annual_to_monthly(annual_rate: Number, precision: Precision = DEFAULT_PRECISION) -> Decimal:
    """Convert an annual rate to the equivalent monthly rate: (1 + r)^(1/12) - 1."""
    rate = to_decimal(annual_rate)
    if rate == 0:
        return ZERO
    if rate <= -1:
        raise ValidationError(f"annual rate must be greater than -100% (got {rate * 100}%)", "annual_rate")
    ctx = precision.context()
    exponent = ctx.divide(ONE, Decimal(MONTHS_PER_YEAR))
    multiplier = ctx.power(ctx.add(ONE, rate), exponent)
    return ctx.subtract(multiplier, ONE)


def compound_factor(annual_rate: Number, years: Number, precision: Precision = DEFAULT_PRECISION) -> Decimal:
    ctx = precision.context()
    return ctx.power(ctx.add(ONE, to_decimal(annual_rate)), to_decimal(years))


def apply_inflation(
    base_amount: Number,
    annual_rate: Number,
    years_elapsed: Number,
    precision: Precision = DEFAULT_PRECISION,
) -> Decimal:
    """Grow ``base_amount`` by ``annual_rate`` for ``years_elapsed`` years.

    Only the final amount is rounded to cents. Zero or negative elapsed time
    returns the base amount untouched.
    """
    base = to_decimal(base_amount)
    years = to_decimal(years_elapsed)
    if years <= 0:
        return base
    rate = to_decimal(annual_rate)
    if rate == 0:
        return round_money(base, precision)
    return round_money(base * compound_factor(rate, years, precision), precision)
