"""Roth conversion helpers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import InvalidDateRangeError, MissingRequiredFieldError, ValidationError
from .money import DEFAULT_PRECISION, ZERO, Precision, round_money, to_decimal
from .months import Month
from .tax import TaxPolicy


@dataclass(frozen=True, slots=True)
class RothConversionPlan:
    """Move money from a pre-tax account to a Roth account each active month.

    Either ``monthly_amount`` is converted, or (``fill_to_bracket``) whatever
    fits below the top of the bracket taxed at that rate in the month's table.
    """

    from_account: str
    to_account: str
    start: Month
    end: Month | None = None
    monthly_amount: Decimal | None = None
    fill_to_bracket: Decimal | None = None

    def __post_init__(self) -> None:
        if not self.from_account:
            raise MissingRequiredFieldError("from_account")
        if not self.to_account:
            raise MissingRequiredFieldError("to_account")
        if self.from_account == self.to_account:
            raise ValidationError("Roth conversion source and target must differ", "to_account")
        if self.start is None:
            raise MissingRequiredFieldError("start")
        if self.end is not None and self.end < self.start:
            raise InvalidDateRangeError.must_not_be_after("start", "end", self.start, self.end)
        if (self.monthly_amount is None) == (self.fill_to_bracket is None):
            raise ValidationError(
                "Roth conversion needs exactly one of monthly_amount or fill_to_bracket", "monthly_amount"
            )
        if self.monthly_amount is not None:
            amount = to_decimal(self.monthly_amount)
            if amount < 0:
                raise ValidationError(f"monthly_amount cannot be negative (got {amount})", "monthly_amount")
            object.__setattr__(self, "monthly_amount", amount)
        if self.fill_to_bracket is not None:
            rate = to_decimal(self.fill_to_bracket)
            if not 0 < rate < 1:
                raise ValidationError(f"fill_to_bracket must be a rate in (0, 1) (got {rate})", "fill_to_bracket")
            object.__setattr__(self, "fill_to_bracket", rate)

    def is_active(self, month: Month) -> bool:
        if month < self.start:
            return False
        return self.end is None or month <= self.end


def bracket_room(
    policy: TaxPolicy,
    year: int,
    rate: Decimal,
    gross_ordinary_income: Decimal,
    precision: Precision = DEFAULT_PRECISION,
) -> Decimal:
    """Ordinary income that can still be added this month without exceeding ``rate``."""
    upper = policy.monthly_table(year, precision).upper_bound_for_rate(rate)
    if upper is None:
        raise ValidationError(f"the {rate} bracket is open-ended; nothing to fill to", "fill_to_bracket")
    taxable_now = gross_ordinary_income - policy.monthly_deduction(year, precision)
    return round_money(max(ZERO, upper - taxable_now), precision)


def plan_roth_conversion(
    plan: RothConversionPlan,
    month: Month,
    source_balance: Decimal,
    *,
    policy: TaxPolicy | None = None,
    gross_ordinary_income: Decimal = ZERO,
    precision: Precision = DEFAULT_PRECISION,
) -> Decimal:
    """Return the amount to convert in ``month``, capped at the source balance."""
    if not plan.is_active(month) or source_balance <= 0:
        return ZERO
    if plan.fill_to_bracket is not None:
        if policy is None:
            raise ValidationError("fill_to_bracket conversions require a tax policy", "tax_policy")
        amount = bracket_room(policy, month.year, plan.fill_to_bracket, gross_ordinary_income, precision)
    else:
        amount = plan.monthly_amount or ZERO
    return round_money(min(source_balance, amount), precision)
