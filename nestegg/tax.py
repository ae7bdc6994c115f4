"""Progressive bracket tables and the monthly federal tax computation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .errors import MissingRequiredFieldError, ValidationError
from .money import (
    DEFAULT_PRECISION,
    ZERO,
    Number,
    Precision,
    apply_inflation,
    compound_factor,
    round_money,
    safe_ratio,
    to_decimal,
)
from .months import MONTHS_PER_YEAR
from .tax_data import (
    BASE_TAX_YEAR,
    DEFAULT_BRACKET_INDEXATION,
    DEFAULT_SOCIAL_SECURITY_TAXABLE_FRACTION,
    FEDERAL_BRACKETS,
    FILING_STATUSES,
    STANDARD_DEDUCTIONS,
)


@dataclass(frozen=True, slots=True)
class TaxBracket:
    lower: Decimal
    upper: Decimal | None
    rate: Decimal

    def span(self) -> Decimal | None:
        return None if self.upper is None else self.upper - self.lower


@dataclass(frozen=True, slots=True)
class TaxTable:
    """Ordered brackets; the last one is open-ended."""

    brackets: tuple[TaxBracket, ...]

    def __post_init__(self) -> None:
        if not self.brackets:
            raise ValidationError("tax table must have at least one bracket", "brackets")
        if self.brackets[-1].upper is not None:
            raise ValidationError("the last tax bracket must be open-ended", "brackets")
        for bracket in self.brackets:
            if not 0 <= bracket.rate <= 1:
                raise ValidationError(f"bracket rate must be between 0 and 1 (got {bracket.rate})", "brackets")
            if bracket.upper is not None and bracket.upper <= bracket.lower:
                raise ValidationError(
                    f"bracket upper bound {bracket.upper} must exceed its lower bound {bracket.lower}",
                    "brackets",
                )

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[Number | None, Number]]) -> "TaxTable":
        brackets: list[TaxBracket] = []
        lower = ZERO
        for upper, rate in pairs:
            if brackets and brackets[-1].upper is None:
                raise ValidationError("only the last tax bracket may be open-ended", "brackets")
            upper_value = None if upper is None else to_decimal(upper)
            brackets.append(TaxBracket(lower, upper_value, to_decimal(rate)))
            if upper_value is not None:
                lower = upper_value
        return cls(tuple(brackets))

    def tax_on(self, amount: Number) -> Decimal:
        remaining = to_decimal(amount)
        tax = ZERO
        for bracket in self.brackets:
            if remaining <= 0:
                break
            span = bracket.span()
            portion = remaining if span is None else min(remaining, span)
            tax += portion * bracket.rate
            remaining -= portion
        return tax

    def marginal_rate(self, amount: Number) -> Decimal:
        """Rate applied to the next dollar above ``amount``."""
        value = to_decimal(amount)
        for bracket in self.brackets:
            if bracket.upper is None or value < bracket.upper:
                return bracket.rate
        return self.brackets[-1].rate

    def upper_bound_for_rate(self, rate: Number) -> Decimal | None:
        wanted = to_decimal(rate)
        for bracket in self.brackets:
            if bracket.rate == wanted:
                return bracket.upper
        raise ValidationError(f"no bracket with rate {wanted}", "rate")

    def scaled(self, factor: Number, precision: Precision = DEFAULT_PRECISION) -> "TaxTable":
        f = to_decimal(factor)
        return TaxTable.from_pairs(
            (None if b.upper is None else round_money(b.upper * f, precision), b.rate) for b in self.brackets
        )


@dataclass(frozen=True, slots=True)
class TaxPolicy:
    """Annual tax configuration; monthly views are derived per year.

    Bracket bounds and the standard deduction are indexed by
    ``indexation_rate`` for every year after ``base_year``.
    """

    annual_table: TaxTable
    standard_deduction: Decimal = ZERO
    social_security_taxable_fraction: Decimal = DEFAULT_SOCIAL_SECURITY_TAXABLE_FRACTION
    indexation_rate: Decimal = ZERO
    base_year: int = BASE_TAX_YEAR
    filing_status: str | None = None

    def __post_init__(self) -> None:
        if self.annual_table is None:
            raise MissingRequiredFieldError("annual_table")
        object.__setattr__(self, "standard_deduction", to_decimal(self.standard_deduction))
        object.__setattr__(self, "indexation_rate", to_decimal(self.indexation_rate))
        fraction = to_decimal(self.social_security_taxable_fraction)
        if not 0 <= fraction <= 1:
            raise ValidationError(
                f"social_security_taxable_fraction must be between 0 and 1 (got {fraction})",
                "social_security_taxable_fraction",
            )
        object.__setattr__(self, "social_security_taxable_fraction", fraction)
        if self.standard_deduction < 0:
            raise ValidationError(
                f"standard_deduction cannot be negative (got {self.standard_deduction})", "standard_deduction"
            )

    @classmethod
    def for_filing_status(
        cls,
        filing_status: str,
        *,
        indexation_rate: Number = DEFAULT_BRACKET_INDEXATION,
        social_security_taxable_fraction: Number = DEFAULT_SOCIAL_SECURITY_TAXABLE_FRACTION,
    ) -> "TaxPolicy":
        if filing_status not in FILING_STATUSES:
            raise ValidationError(
                f"unknown filing status {filing_status!r}; expected one of {list(FILING_STATUSES)}",
                "filing_status",
            )
        return cls(
            annual_table=TaxTable.from_pairs(FEDERAL_BRACKETS[filing_status]),
            standard_deduction=to_decimal(STANDARD_DEDUCTIONS[filing_status]),
            social_security_taxable_fraction=to_decimal(social_security_taxable_fraction),
            indexation_rate=to_decimal(indexation_rate),
            base_year=BASE_TAX_YEAR,
            filing_status=filing_status,
        )

    def _years_indexed(self, year: int) -> int:
        return max(0, year - self.base_year)

    def monthly_table(self, year: int, precision: Precision = DEFAULT_PRECISION) -> TaxTable:
        factor = compound_factor(self.indexation_rate, self._years_indexed(year), precision)
        return self.annual_table.scaled(factor / MONTHS_PER_YEAR, precision)

    def monthly_deduction(self, year: int, precision: Precision = DEFAULT_PRECISION) -> Decimal:
        annual = apply_inflation(self.standard_deduction, self.indexation_rate, self._years_indexed(year), precision)
        return round_money(annual / MONTHS_PER_YEAR, precision)


@dataclass(frozen=True, slots=True)
class TaxSummary:
    taxable_income: Decimal = ZERO
    taxable_social_security: Decimal = ZERO
    taxable_withdrawals: Decimal = ZERO
    tax_free_withdrawals: Decimal = ZERO
    federal_tax_liability: Decimal = ZERO
    marginal_rate: Decimal = ZERO
    roth_conversion_amount: Decimal = ZERO
    roth_conversion_tax: Decimal = ZERO

    @classmethod
    def empty(cls) -> "TaxSummary":
        return cls()

    @property
    def effective_tax_rate(self) -> Decimal:
        return safe_ratio(self.federal_tax_liability, self.taxable_income)

    @property
    def total_withdrawals(self) -> Decimal:
        return self.taxable_withdrawals + self.tax_free_withdrawals

    @property
    def total_tax_liability(self) -> Decimal:
        return self.federal_tax_liability + self.roth_conversion_tax

    @property
    def had_roth_conversion(self) -> bool:
        return self.roth_conversion_amount > 0


def ordinary_income_before_deduction(
    policy: TaxPolicy,
    *,
    taxable_withdrawals: Decimal,
    social_security: Decimal,
    other_taxable_income: Decimal,
    precision: Precision = DEFAULT_PRECISION,
) -> tuple[Decimal, Decimal]:
    """Return (gross ordinary income, taxable Social Security portion)."""
    taxable_ss = round_money(social_security * policy.social_security_taxable_fraction, precision)
    return taxable_withdrawals + taxable_ss + other_taxable_income, taxable_ss


def compute_monthly_taxes(
    policy: TaxPolicy,
    *,
    year: int,
    taxable_withdrawals: Number = ZERO,
    tax_free_withdrawals: Number = ZERO,
    social_security: Number = ZERO,
    other_taxable_income: Number = ZERO,
    roth_conversion: Number = ZERO,
    precision: Precision = DEFAULT_PRECISION,
) -> TaxSummary:
    """Compute one month's federal liability.

    The Roth conversion is stacked on top of ordinary income; its tax is the
    increase in liability it causes and is reported separately from the
    ordinary federal liability.
    """
    taxable_withdrawals = to_decimal(taxable_withdrawals)
    tax_free_withdrawals = to_decimal(tax_free_withdrawals)
    roth_conversion = to_decimal(roth_conversion)
    if min(taxable_withdrawals, tax_free_withdrawals, roth_conversion) < 0:
        raise ValidationError("withdrawal and conversion amounts cannot be negative", "amount")

    gross, taxable_ss = ordinary_income_before_deduction(
        policy,
        taxable_withdrawals=taxable_withdrawals,
        social_security=to_decimal(social_security),
        other_taxable_income=to_decimal(other_taxable_income),
        precision=precision,
    )
    deduction = policy.monthly_deduction(year, precision)
    table = policy.monthly_table(year, precision)

    taxable = round_money(max(ZERO, gross - deduction), precision)
    base_tax = table.tax_on(taxable)
    roth_tax = ZERO
    top_of_income = taxable
    if roth_conversion > 0:
        top_of_income = round_money(max(ZERO, gross + roth_conversion - deduction), precision)
        roth_tax = table.tax_on(top_of_income) - base_tax

    return TaxSummary(
        taxable_income=taxable,
        taxable_social_security=taxable_ss,
        taxable_withdrawals=round_money(taxable_withdrawals, precision),
        tax_free_withdrawals=round_money(tax_free_withdrawals, precision),
        federal_tax_liability=round_money(base_tax, precision),
        marginal_rate=table.marginal_rate(top_of_income),
        roth_conversion_amount=round_money(roth_conversion, precision),
        roth_conversion_tax=round_money(roth_tax, precision),
    )
