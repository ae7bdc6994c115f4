"""Required minimum distributions from pre-tax accounts."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Final, Mapping

from .errors import MissingRequiredFieldError, ValidationError
from .money import DEFAULT_PRECISION, ZERO, Precision, round_money, to_decimal
from .months import Month

DEFAULT_RMD_START_AGE = 73

# IRS Uniform Lifetime Table; ages past the end reuse the last divisor.
UNIFORM_LIFETIME_DIVISORS: Final[dict[int, Decimal]] = {
    age: Decimal(divisor)
    for age, divisor in {
        72: "27.4", 73: "26.5", 74: "25.5", 75: "24.6", 76: "23.7", 77: "22.9",
        78: "22.0", 79: "21.1", 80: "20.2", 81: "19.4", 82: "18.5", 83: "17.7",
        84: "16.8", 85: "16.0", 86: "15.2", 87: "14.4", 88: "13.7", 89: "12.9",
        90: "12.2", 91: "11.5", 92: "10.8", 93: "10.1", 94: "9.5", 95: "8.9",
        96: "8.4", 97: "7.8", 98: "7.3", 99: "6.8", 100: "6.4", 101: "6.0",
        102: "5.6", 103: "5.2", 104: "4.9", 105: "4.6", 106: "4.3", 107: "4.1",
        108: "3.9", 109: "3.7", 110: "3.5", 111: "3.4", 112: "3.3", 113: "3.1",
        114: "3.0", 115: "2.9", 116: "2.8", 117: "2.7", 118: "2.5", 119: "2.3",
        120: "2.0",
    }.items()
}


def divisor_for_age(age: int) -> Decimal | None:
    if age < min(UNIFORM_LIFETIME_DIVISORS):
        return None
    return UNIFORM_LIFETIME_DIVISORS.get(age, UNIFORM_LIFETIME_DIVISORS[max(UNIFORM_LIFETIME_DIVISORS)])


def compute_rmd_amount(prior_year_end_balance: Decimal, age: int, precision: Precision = DEFAULT_PRECISION) -> Decimal:
    divisor = divisor_for_age(age)
    if divisor is None or prior_year_end_balance <= 0:
        return ZERO
    return round_money(prior_year_end_balance / divisor, precision)


@dataclass(frozen=True, slots=True)
class RmdPolicy:
    """Force the year's distribution out of pre-tax accounts each December.

    ``accounts`` defaults to every pre-tax account in the portfolio. Whatever
    part of the year's requirement was not already withdrawn from an account
    is moved into ``destination_account`` and taxed as ordinary income.
    """

    destination_account: str
    start_age: int = DEFAULT_RMD_START_AGE
    accounts: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.destination_account or not self.destination_account.strip():
            raise MissingRequiredFieldError("destination_account")
        if self.start_age < min(UNIFORM_LIFETIME_DIVISORS):
            raise ValidationError(
                f"start_age must be at least {min(UNIFORM_LIFETIME_DIVISORS)} (got {self.start_age})", "start_age"
            )
        object.__setattr__(self, "accounts", tuple(self.accounts))
        if self.destination_account in self.accounts:
            raise ValidationError("RMD destination cannot also be an RMD source", "destination_account")

    def applies(self, month: Month, age: int) -> bool:
        return month.month == 12 and age >= self.start_age


def plan_rmds(
    policy: RmdPolicy,
    age: int,
    sources: Mapping[str, Decimal],
    prior_year_end_balances: Mapping[str, Decimal],
    withdrawn_this_year: Mapping[str, Decimal],
    precision: Precision = DEFAULT_PRECISION,
) -> dict[str, Decimal]:
    """Return the amount still to distribute per source account.

    ``sources`` maps each source account to its current balance. Withdrawals
    already taken this year count toward the requirement.
    """
    out: dict[str, Decimal] = {}
    for account_id, balance in sources.items():
        required = compute_rmd_amount(
            to_decimal(prior_year_end_balances.get(account_id, balance)), age, precision
        )
        remaining = required - withdrawn_this_year.get(account_id, ZERO)
        amount = round_money(min(balance, max(ZERO, remaining)), precision)
        if amount > 0:
            out[account_id] = amount
    return out
