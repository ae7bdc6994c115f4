"""Payroll contributions during the accumulation phase."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import ValidationError
from .money import DEFAULT_PRECISION, ZERO, Precision, apply_percentage, to_decimal
from .months import MONTHS_PER_YEAR, Month


def _check_rate(name: str, value: Decimal) -> None:
    if not 0 <= value <= 1:
        raise ValidationError(f"{name} must be between 0 and 1 (got {value})", name)


@dataclass(frozen=True, slots=True)
class ContributionPlan:
    """Share of salary saved each month, with an optional yearly auto-increase.

    Every time ``increment_month`` (1-12) comes around after the simulation
    start, the personal rate rises by ``increment_rate`` up to
    ``max_personal_rate``.
    """

    personal_rate: Decimal
    employer_rate: Decimal = ZERO
    increment_rate: Decimal = ZERO
    increment_month: int = 1
    max_personal_rate: Decimal | None = None

    def __post_init__(self) -> None:
        for name in ("personal_rate", "employer_rate", "increment_rate"):
            value = to_decimal(getattr(self, name))
            _check_rate(name, value)
            object.__setattr__(self, name, value)
        if self.max_personal_rate is not None:
            cap = to_decimal(self.max_personal_rate)
            _check_rate("max_personal_rate", cap)
            object.__setattr__(self, "max_personal_rate", cap)
        if not 1 <= self.increment_month <= MONTHS_PER_YEAR:
            raise ValidationError(
                f"increment_month must be between 1 and 12 (got {self.increment_month})", "increment_month"
            )

    def increments_between(self, start: Month, month: Month) -> int:
        if self.increment_rate == 0 or month <= start:
            return 0
        shift = self.increment_month - 1
        return (month.index - shift) // MONTHS_PER_YEAR - (start.index - shift) // MONTHS_PER_YEAR

    def personal_rate_for(self, month: Month, start: Month) -> Decimal:
        rate = self.personal_rate + self.increment_rate * self.increments_between(start, month)
        if self.max_personal_rate is not None:
            rate = min(rate, self.max_personal_rate)
        return rate

    def rate_increased_in(self, month: Month, start: Month) -> bool:
        if month <= start:
            return False
        return self.personal_rate_for(month, start) > self.personal_rate_for(month.plus(-1), start)


def contribution_for_month(
    plan: ContributionPlan,
    salary: Decimal,
    month: Month,
    start: Month,
    precision: Precision = DEFAULT_PRECISION,
) -> tuple[Decimal, Decimal]:
    """Return (personal, employer) contributions for ``month``."""
    if salary <= 0:
        return ZERO, ZERO
    personal = apply_percentage(salary, plan.personal_rate_for(month, start), precision)
    employer = apply_percentage(salary, plan.employer_rate, precision)
    return personal, employer
