"""Everything one simulation run needs, validated at construction."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal

from .contributions import ContributionPlan
from .errors import InvalidDateRangeError, MissingRequiredFieldError, ValidationError, require
from .expenses import ExpenseCategory
from .income import EarningsTest, IncomeSource
from .levers import SimulationLevers
from .money import DEFAULT_PRECISION, ZERO, Precision, to_decimal
from .months import MONTHS_PER_YEAR, Month
from .portfolio import Portfolio
from .rmd import RmdPolicy
from .roth import RothConversionPlan
from .routing import RoutingConfiguration
from .tax import TaxPolicy
from .withdrawals import WithdrawalPolicy


@dataclass(frozen=True, slots=True)
class PersonProfile:
    name: str
    birth_month: Month
    retirement_month: Month

    def __post_init__(self) -> None:
        if self.birth_month is None:
            raise MissingRequiredFieldError("birth_month")
        if self.retirement_month is None:
            raise MissingRequiredFieldError("retirement_month")
        if self.retirement_month < self.birth_month:
            raise InvalidDateRangeError.must_not_be_after(
                "birth_month", "retirement_month", self.birth_month, self.retirement_month
            )

    def age_at(self, month: Month) -> int:
        return self.birth_month.months_until(month) // MONTHS_PER_YEAR


@dataclass(frozen=True, slots=True)
class SimulationConfig:
    portfolio: Portfolio
    person: PersonProfile
    start_month: Month
    end_month: Month
    levers: SimulationLevers = field(default_factory=SimulationLevers)
    contribution_routing: RoutingConfiguration | None = None
    withdrawal_routing: RoutingConfiguration | None = None
    contribution_plan: ContributionPlan | None = None
    withdrawal_policy: WithdrawalPolicy | None = None
    income_sources: tuple[IncomeSource, ...] = ()
    monthly_expenses: Decimal = ZERO
    expense_categories: tuple[ExpenseCategory, ...] = ()
    tax_policy: TaxPolicy | None = None
    roth_conversions: tuple[RothConversionPlan, ...] = ()
    rmd_policy: RmdPolicy | None = None
    earnings_test: EarningsTest | None = None
    precision: Precision = DEFAULT_PRECISION

    def __post_init__(self) -> None:
        for name in ("portfolio", "person", "start_month", "end_month", "levers", "precision"):
            require(getattr(self, name), name)
        if self.start_month > self.end_month:
            raise InvalidDateRangeError.must_not_be_after("start_month", "end_month", self.start_month, self.end_month)
        expenses = to_decimal(self.monthly_expenses)
        if expenses < 0:
            raise ValidationError(f"monthly_expenses cannot be negative (got {expenses})", "monthly_expenses")
        object.__setattr__(self, "monthly_expenses", expenses)
        object.__setattr__(self, "income_sources", tuple(self.income_sources))
        object.__setattr__(self, "roth_conversions", tuple(self.roth_conversions))
        object.__setattr__(self, "expense_categories", tuple(self.expense_categories))

    def month_count(self) -> int:
        return self.start_month.months_until(self.end_month) + 1

    def with_levers(self, levers: SimulationLevers) -> "SimulationConfig":
        return replace(self, levers=levers)
