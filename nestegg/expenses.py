"""Expense categories that inflate at their own rates."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Final, Iterable

from .errors import MissingRequiredFieldError, ValidationError
from .money import DEFAULT_PRECISION, ZERO, Number, Precision, apply_inflation, to_decimal


class InflationType(str, Enum):
    GENERAL = "general"
    HEALTHCARE = "healthcare"
    HOUSING = "housing"
    LTC = "ltc"
    NONE = "none"


# GENERAL follows the economic inflation lever.
CATEGORY_INFLATION: Final[dict[InflationType, Decimal]] = {
    InflationType.HEALTHCARE: Decimal("0.055"),
    InflationType.HOUSING: Decimal("0.03"),
    InflationType.LTC: Decimal("0.04"),
    InflationType.NONE: ZERO,
}


@dataclass(frozen=True, slots=True)
class ExpenseCategory:
    name: str
    monthly_amount: Decimal
    inflation_type: InflationType = InflationType.GENERAL
    inflation_rate: Decimal | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise MissingRequiredFieldError("name", "Expense name cannot be blank")
        object.__setattr__(self, "inflation_type", InflationType(self.inflation_type))
        amount = to_decimal(self.monthly_amount)
        if amount < 0:
            raise ValidationError(f"{self.name}: monthly amount cannot be negative (got {amount})", "monthly_amount")
        object.__setattr__(self, "monthly_amount", amount)
        if self.inflation_rate is not None:
            rate = to_decimal(self.inflation_rate)
            if rate <= -1:
                raise ValidationError(f"{self.name}: inflation_rate must be greater than -100% (got {rate})", "inflation_rate")
            object.__setattr__(self, "inflation_rate", rate)

    def rate(self, general_inflation: Number) -> Decimal:
        if self.inflation_rate is not None:
            return self.inflation_rate
        if self.inflation_type is InflationType.GENERAL:
            return to_decimal(general_inflation)
        return CATEGORY_INFLATION[self.inflation_type]


def monthly_expenses_for(
    base_amount: Number,
    categories: Iterable[ExpenseCategory],
    general_inflation: Number,
    years_elapsed: int,
    precision: Precision = DEFAULT_PRECISION,
) -> Decimal:
    """Uncategorised ``base_amount`` at general inflation plus each category at its own rate."""
    total = apply_inflation(base_amount, general_inflation, years_elapsed, precision)
    for category in categories:
        total += apply_inflation(category.monthly_amount, category.rate(general_inflation), years_elapsed, precision)
    return total
