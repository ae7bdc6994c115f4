"""Monthly income sources and the per-month income aggregate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, Protocol, runtime_checkable

from .errors import InvalidDateRangeError, MissingRequiredFieldError, ValidationError
from .levers import SimulationPhase
from .money import DEFAULT_PRECISION, ZERO, Number, Precision, apply_inflation, round_money, to_decimal
from .months import MONTHS_PER_YEAR, Month

logger = logging.getLogger(__name__)


class IncomeKind(str, Enum):
    SALARY = "salary"
    SOCIAL_SECURITY = "social_security"
    PENSION = "pension"
    ANNUITY = "annuity"
    OTHER = "other"


@runtime_checkable
class IncomeSource(Protocol):
    """What the engine needs from an income source, and nothing more."""

    @property
    def kind(self) -> IncomeKind: ...

    def monthly_income(self, month: Month) -> Decimal: ...

    def is_active(self, month: Month) -> bool: ...

    def is_earned_income(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class IncomeStream:
    """A recurring amount between two months, adjusted once per elapsed year.

    ``end`` is inclusive; a stream without an end stays active once started.
    """

    name: str
    kind: IncomeKind
    monthly_amount: Decimal
    start: Month
    end: Month | None = None
    annual_adjustment: Decimal = ZERO
    earned: bool | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise MissingRequiredFieldError("name", "Income name cannot be blank")
        if self.start is None:
            raise MissingRequiredFieldError("start")
        object.__setattr__(self, "kind", IncomeKind(self.kind))
        amount = to_decimal(self.monthly_amount)
        if amount < 0:
            raise ValidationError(f"{self.name}: monthly amount cannot be negative (got {amount})", "monthly_amount")
        object.__setattr__(self, "monthly_amount", amount)
        object.__setattr__(self, "annual_adjustment", to_decimal(self.annual_adjustment))
        if self.end is not None and self.end < self.start:
            raise InvalidDateRangeError.must_not_be_after("start", "end", self.start, self.end)

    def is_active(self, month: Month) -> bool:
        if month < self.start:
            return False
        return self.end is None or month <= self.end

    def is_earned_income(self) -> bool:
        if self.earned is None:
            return self.kind is IncomeKind.SALARY
        return self.earned

    def monthly_income(self, month: Month, precision: Precision = DEFAULT_PRECISION) -> Decimal:
        if not self.is_active(month):
            return ZERO
        years = self.start.months_until(month) // MONTHS_PER_YEAR
        return apply_inflation(self.monthly_amount, self.annual_adjustment, years, precision)


@dataclass(frozen=True, slots=True)
class MonthlyIncome:
    salary: Decimal = ZERO
    social_security: Decimal = ZERO
    pension: Decimal = ZERO
    annuity: Decimal = ZERO
    other: Decimal = ZERO
    earned_income: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("salary", "social_security", "pension", "annuity", "other", "earned_income"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))

    @classmethod
    def zero(cls) -> "MonthlyIncome":
        return cls()

    @classmethod
    def of_salary(cls, amount: Number) -> "MonthlyIncome":
        salary = to_decimal(amount)
        return cls(salary=salary, earned_income=salary)

    @property
    def total(self) -> Decimal:
        return self.salary + self.social_security + self.pension + self.annuity + self.other

    @property
    def total_non_salary(self) -> Decimal:
        return self.total - self.salary

    @property
    def has_salary_income(self) -> bool:
        return self.salary > 0

    @property
    def has_retirement_income(self) -> bool:
        return self.social_security > 0 or self.pension > 0 or self.annuity > 0


# (earned income this month, unadjusted benefit, month) -> adjusted benefit
EarningsTest = Callable[[Decimal, Decimal, Month], Decimal]


def no_earnings_test(earned: Decimal, benefit: Decimal, month: Month) -> Decimal:
    return benefit


def annual_limit_earnings_test(
    annual_limit: Number,
    reduction_ratio: Number = Decimal("0.5"),
    until: Month | None = None,
) -> EarningsTest:
    """Withhold ``reduction_ratio`` of each dollar earned above the limit.

    The annual limit is prorated to the month. From ``until`` on (typically
    full retirement age) the benefit is paid in full.
    """
    monthly_limit = to_decimal(annual_limit) / MONTHS_PER_YEAR
    ratio = to_decimal(reduction_ratio)

    def _apply(earned: Decimal, benefit: Decimal, month: Month) -> Decimal:
        if until is not None and month >= until:
            return benefit
        excess = earned - monthly_limit
        if excess <= 0:
            return benefit
        return max(ZERO, benefit - excess * ratio)

    return _apply


def compute_monthly_income(
    sources: Iterable[IncomeSource],
    month: Month,
    phase: SimulationPhase,
    earnings_test: EarningsTest | None = None,
    precision: Precision = DEFAULT_PRECISION,
) -> MonthlyIncome:
    """Add up every active source for ``month``.

    Salary only counts while accumulating. Social Security benefits are passed
    through ``earnings_test`` together with the month's earned income.
    """
    totals = {kind: ZERO for kind in IncomeKind}
    earned = ZERO
    benefits: list[Decimal] = []
    for source in sources:
        if not source.is_active(month):
            continue
        if source.kind is IncomeKind.SALARY and phase is not SimulationPhase.ACCUMULATION:
            continue
        amount = source.monthly_income(month)
        if source.kind is IncomeKind.SOCIAL_SECURITY:
            benefits.append(amount)
            continue
        totals[source.kind] += amount
        if source.is_earned_income():
            earned += amount

    test = earnings_test or no_earnings_test
    for benefit in benefits:
        adjusted = test(earned, benefit, month)
        if adjusted != benefit:
            logger.debug("%s: earnings test reduced benefit %s -> %s", month, benefit, adjusted)
        totals[IncomeKind.SOCIAL_SECURITY] += adjusted

    return MonthlyIncome(
        salary=round_money(totals[IncomeKind.SALARY], precision),
        social_security=round_money(totals[IncomeKind.SOCIAL_SECURITY], precision),
        pension=round_money(totals[IncomeKind.PENSION], precision),
        annuity=round_money(totals[IncomeKind.ANNUITY], precision),
        other=round_money(totals[IncomeKind.OTHER], precision),
        earned_income=round_money(earned, precision),
    )
