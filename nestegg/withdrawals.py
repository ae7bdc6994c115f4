"""Withdrawal strategy logic."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable

from .errors import MissingRequiredFieldError, ValidationError
from .income import MonthlyIncome
from .money import DEFAULT_PRECISION, ZERO, Precision, apply_inflation, round_money, to_decimal
from .months import MONTHS_PER_YEAR, Month


class WithdrawalStrategy(str, Enum):
    FIXED_AMOUNT = "fixed_amount"
    STATIC_PERCENTAGE = "static_percentage"
    PERCENT_OF_BALANCE = "percent_of_balance"
    INCOME_GAP = "income_gap"


@dataclass(frozen=True, slots=True)
class WithdrawalPolicy:
    strategy: WithdrawalStrategy
    rate: Decimal | None = None
    monthly_amount: Decimal | None = None

    def __post_init__(self) -> None:
        strategy = WithdrawalStrategy(self.strategy)
        object.__setattr__(self, "strategy", strategy)
        if self.rate is not None:
            object.__setattr__(self, "rate", to_decimal(self.rate))
        if self.monthly_amount is not None:
            object.__setattr__(self, "monthly_amount", to_decimal(self.monthly_amount))

        if strategy is WithdrawalStrategy.FIXED_AMOUNT:
            if self.monthly_amount is None:
                raise MissingRequiredFieldError("monthly_amount", "fixed_amount withdrawals need monthly_amount")
            if self.monthly_amount < 0:
                raise ValidationError(
                    f"monthly_amount cannot be negative (got {self.monthly_amount})", "monthly_amount"
                )
        elif strategy in (WithdrawalStrategy.STATIC_PERCENTAGE, WithdrawalStrategy.PERCENT_OF_BALANCE):
            if self.rate is None:
                raise MissingRequiredFieldError("rate", f"{strategy.value} withdrawals need an annual rate")
            if not 0 < self.rate <= 1:
                raise ValidationError(f"withdrawal rate must be in (0, 1] (got {self.rate})", "rate")


@dataclass(frozen=True, slots=True)
class WithdrawalContext:
    month: Month
    retirement_month: Month
    current_balance: Decimal
    balance_at_retirement: Decimal
    expenses: Decimal
    income: MonthlyIncome
    inflation_rate: Decimal
    precision: Precision = DEFAULT_PRECISION

    @property
    def years_retired(self) -> int:
        return max(0, self.retirement_month.months_until(self.month) // MONTHS_PER_YEAR)


def _fixed_amount(policy: WithdrawalPolicy, ctx: WithdrawalContext) -> Decimal:
    return apply_inflation(policy.monthly_amount or ZERO, ctx.inflation_rate, ctx.years_retired, ctx.precision)


def _static_percentage(policy: WithdrawalPolicy, ctx: WithdrawalContext) -> Decimal:
    # The 4% rule: fixed at retirement, then raised with inflation.
    first_month = ctx.balance_at_retirement * (policy.rate or ZERO) / MONTHS_PER_YEAR
    return apply_inflation(first_month, ctx.inflation_rate, ctx.years_retired, ctx.precision)


def _percent_of_balance(policy: WithdrawalPolicy, ctx: WithdrawalContext) -> Decimal:
    return ctx.current_balance * (policy.rate or ZERO) / MONTHS_PER_YEAR


def _income_gap(policy: WithdrawalPolicy, ctx: WithdrawalContext) -> Decimal:
    return max(ZERO, ctx.expenses - ctx.income.total_non_salary)


STRATEGIES: dict[WithdrawalStrategy, Callable[[WithdrawalPolicy, WithdrawalContext], Decimal]] = {
    WithdrawalStrategy.FIXED_AMOUNT: _fixed_amount,
    WithdrawalStrategy.STATIC_PERCENTAGE: _static_percentage,
    WithdrawalStrategy.PERCENT_OF_BALANCE: _percent_of_balance,
    WithdrawalStrategy.INCOME_GAP: _income_gap,
}


def required_withdrawal(policy: WithdrawalPolicy, ctx: WithdrawalContext) -> Decimal:
    """Amount the policy asks to withdraw this month, before any balance cap."""
    amount = STRATEGIES[policy.strategy](policy, ctx)
    return round_money(max(ZERO, amount), ctx.precision)
