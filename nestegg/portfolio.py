"""Accounts and the portfolio whose balances a simulation run moves."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from .errors import CalculationError, MissingRequiredFieldError, ValidationError
from .money import ZERO, Number, to_decimal


class TaxTreatment(str, Enum):
    PRE_TAX = "pre_tax"
    ROTH = "roth"
    TAXABLE = "taxable"
    CASH = "cash"

    @property
    def withdrawals_taxable(self) -> bool:
        return self is TaxTreatment.PRE_TAX


@dataclass(slots=True)
class Account:
    account_id: str
    name: str
    balance: Decimal = ZERO
    tax_treatment: TaxTreatment = TaxTreatment.PRE_TAX

    def __post_init__(self) -> None:
        if not self.account_id or not self.account_id.strip():
            raise MissingRequiredFieldError("account_id", "Account ID cannot be blank")
        self.balance = to_decimal(self.balance)
        if self.balance < 0:
            raise ValidationError(f"{self.account_id}: balance cannot be negative (got {self.balance})", "balance")
        self.tax_treatment = TaxTreatment(self.tax_treatment)


@dataclass(slots=True)
class Portfolio:
    accounts: list[Account] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for account in self.accounts:
            if account.account_id in seen:
                raise ValidationError(f"duplicate account id: {account.account_id}", "accounts")
            seen.add(account.account_id)

    def __contains__(self, account_id: object) -> bool:
        return any(a.account_id == account_id for a in self.accounts)

    def __len__(self) -> int:
        return len(self.accounts)

    def account_ids(self) -> list[str]:
        return [a.account_id for a in self.accounts]

    def find(self, account_id: str) -> Account:
        for account in self.accounts:
            if account.account_id == account_id:
                return account
        raise CalculationError(f"account not found in portfolio: {account_id}")

    def balance_of(self, account_id: str) -> Decimal:
        return self.find(account_id).balance

    def balances(self) -> dict[str, Decimal]:
        return {a.account_id: a.balance for a in self.accounts}

    def total_balance(self) -> Decimal:
        return sum((a.balance for a in self.accounts), ZERO)

    def apply_flow(self, account_id: str, amount: Number) -> Decimal:
        """Add ``amount`` (negative for a withdrawal) and return the new balance."""
        account = self.find(account_id)
        new_balance = account.balance + to_decimal(amount)
        if new_balance < 0:
            raise CalculationError(
                f"{account_id}: flow of {amount} would leave a negative balance ({new_balance})"
            )
        account.balance = new_balance
        return new_balance

    def clone(self) -> "Portfolio":
        return Portfolio(
            accounts=[
                Account(
                    account_id=a.account_id,
                    name=a.name,
                    balance=a.balance,
                    tax_treatment=a.tax_treatment,
                )
                for a in self.accounts
            ]
        )
