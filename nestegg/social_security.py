"""Social Security monthly benefit modeling."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import MissingRequiredFieldError, ValidationError
from .income import IncomeKind
from .money import DEFAULT_PRECISION, ONE, ZERO, Precision, apply_inflation, round_money, to_decimal
from .months import MONTHS_PER_YEAR, Month

EARLY_REDUCTION_FIRST_36 = Decimal(5) / Decimal(900)
EARLY_REDUCTION_BEYOND_36 = Decimal(5) / Decimal(1200)
DELAYED_CREDIT = Decimal(2) / Decimal(300)


def claiming_adjustment(claim_months: int, fra_months: int) -> Decimal:
    """Multiplier applied to the PIA for claiming ``claim_months`` vs FRA (ages in months)."""
    diff = claim_months - fra_months
    if diff == 0:
        return ONE
    if diff < 0:
        early = -diff
        first_36 = min(36, early)
        additional = max(0, early - 36)
        reduction = first_36 * EARLY_REDUCTION_FIRST_36 + additional * EARLY_REDUCTION_BEYOND_36
        return max(ZERO, ONE - reduction)
    return ONE + diff * DELAYED_CREDIT


@dataclass(frozen=True, slots=True)
class SocialSecurityBenefit:
    name: str
    pia_at_fra: Decimal
    birth_month: Month
    claiming_age_years: int = 67
    claiming_age_months: int = 0
    fra_age_years: int = 67
    fra_age_months: int = 0
    cola_rate: Decimal = ZERO
    spouse_pia_at_fra: Decimal | None = None

    def __post_init__(self) -> None:
        if self.birth_month is None:
            raise MissingRequiredFieldError("birth_month")
        pia = to_decimal(self.pia_at_fra)
        if pia < 0:
            raise ValidationError(f"{self.name}: PIA cannot be negative (got {pia})", "pia_at_fra")
        object.__setattr__(self, "pia_at_fra", pia)
        object.__setattr__(self, "cola_rate", to_decimal(self.cola_rate))
        if self.spouse_pia_at_fra is not None:
            object.__setattr__(self, "spouse_pia_at_fra", to_decimal(self.spouse_pia_at_fra))
        if not 62 <= self.claiming_age_years <= 70:
            raise ValidationError(
                f"{self.name}: claiming age must be between 62 and 70 (got {self.claiming_age_years})",
                "claiming_age_years",
            )
        if not 0 <= self.claiming_age_months < MONTHS_PER_YEAR:
            raise ValidationError(
                f"{self.name}: claiming_age_months must be 0-11 (got {self.claiming_age_months})",
                "claiming_age_months",
            )

    @property
    def kind(self) -> IncomeKind:
        return IncomeKind.SOCIAL_SECURITY

    @property
    def claim_months(self) -> int:
        return self.claiming_age_years * MONTHS_PER_YEAR + self.claiming_age_months

    @property
    def fra_months(self) -> int:
        return self.fra_age_years * MONTHS_PER_YEAR + self.fra_age_months

    @property
    def claiming_month(self) -> Month:
        return self.birth_month.plus(self.claim_months)

    @property
    def full_retirement_month(self) -> Month:
        return self.birth_month.plus(self.fra_months)

    def base_monthly_benefit(self) -> Decimal:
        """Benefit in the claiming month, before any COLA.

        A spousal benefit (half the spouse's PIA, with the same claiming
        adjustment) replaces the own benefit when it is larger.
        """
        factor = claiming_adjustment(self.claim_months, self.fra_months)
        own = self.pia_at_fra * factor
        if self.spouse_pia_at_fra is not None:
            spousal = self.spouse_pia_at_fra / 2 * factor
            own = max(own, spousal)
        return max(ZERO, own)

    def is_active(self, month: Month) -> bool:
        return month >= self.claiming_month

    def is_earned_income(self) -> bool:
        return False

    def monthly_income(self, month: Month, precision: Precision = DEFAULT_PRECISION) -> Decimal:
        if not self.is_active(month):
            return ZERO
        years_after_claim = self.claiming_month.months_until(month) // MONTHS_PER_YEAR
        base = round_money(self.base_monthly_benefit(), precision)
        return apply_inflation(base, self.cola_rate, years_after_claim, precision)
