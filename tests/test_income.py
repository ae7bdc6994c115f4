from decimal import Decimal

import pytest

from nestegg.errors import InvalidDateRangeError
from nestegg.income import (
    IncomeKind,
    IncomeSource,
    IncomeStream,
    MonthlyIncome,
    annual_limit_earnings_test,
    compute_monthly_income,
)
from nestegg.levers import SimulationPhase
from nestegg.months import Month
from nestegg.social_security import SocialSecurityBenefit

JAN_2025 = Month(2025, 1)


def _salary(amount: str = "5000", **kwargs) -> IncomeStream:
    return IncomeStream(name="Job", kind=IncomeKind.SALARY, monthly_amount=Decimal(amount), start=JAN_2025, **kwargs)


def test_all_none_components_are_zero():
    income = MonthlyIncome(None, None, None, None, None)
    assert income.salary == 0
    assert income.other == 0
    assert income.total == 0
    assert not income.has_salary_income
    assert not income.has_retirement_income


def test_totals_are_sums_of_components():
    income = MonthlyIncome(
        salary=Decimal("1000"),
        social_security=Decimal("200"),
        pension=Decimal("300"),
        annuity=Decimal("40"),
        other=Decimal("5"),
    )
    assert income.total == Decimal("1545")
    assert income.total_non_salary == income.total - income.salary
    assert income.has_retirement_income


def test_of_salary_counts_as_earned():
    income = MonthlyIncome.of_salary(Decimal("4000"))
    assert income.has_salary_income
    assert income.earned_income == Decimal("4000")


def test_stream_is_zero_outside_its_window():
    stream = _salary(end=Month(2025, 6))
    assert stream.monthly_income(Month(2024, 12)) == 0
    assert stream.monthly_income(Month(2025, 6)) == Decimal("5000.00")
    assert stream.monthly_income(Month(2025, 7)) == 0


def test_stream_without_end_stays_active():
    assert _salary().is_active(Month(2090, 1))


def test_stream_adjusts_once_per_whole_year():
    stream = _salary(annual_adjustment=Decimal("0.10"))
    assert stream.monthly_income(Month(2025, 12)) == Decimal("5000.00")
    assert stream.monthly_income(Month(2026, 1)) == Decimal("5500.00")
    assert stream.monthly_income(Month(2027, 1)) == Decimal("6050.00")


def test_stream_end_before_start_is_rejected():
    with pytest.raises(InvalidDateRangeError):
        _salary(end=Month(2024, 1))


def test_earned_flag_defaults_from_kind():
    pension = IncomeStream(name="Pension", kind=IncomeKind.PENSION, monthly_amount=Decimal("1"), start=JAN_2025)
    assert _salary().is_earned_income()
    assert not pension.is_earned_income()
    assert isinstance(pension, IncomeSource)


def test_salary_only_counts_while_accumulating():
    sources = [
        _salary(),
        IncomeStream(name="Pension", kind=IncomeKind.PENSION, monthly_amount=Decimal("800"), start=JAN_2025),
    ]

    working = compute_monthly_income(sources, JAN_2025, SimulationPhase.ACCUMULATION)
    retired = compute_monthly_income(sources, JAN_2025, SimulationPhase.DISTRIBUTION)

    assert working.salary == Decimal("5000.00")
    assert working.pension == Decimal("800.00")
    assert retired.salary == 0
    assert retired.total == Decimal("800.00")


def test_earnings_test_policy_reduces_benefit_from_earned_income():
    benefit = SocialSecurityBenefit(
        name="SS", pia_at_fra=Decimal("2000"), birth_month=Month(1962, 1), claiming_age_years=62
    )
    claim = benefit.claiming_month
    job = IncomeStream(name="Job", kind=IncomeKind.SALARY, monthly_amount=Decimal("3000"), start=claim)
    full = benefit.monthly_income(claim)

    # Limit of $12,000/yr is $1,000/mo; $2,000 over the limit withholds $1,000.
    policy = annual_limit_earnings_test(Decimal("12000"), Decimal("0.5"))
    income = compute_monthly_income([job, benefit], claim, SimulationPhase.ACCUMULATION, policy)

    assert income.earned_income == Decimal("3000.00")
    assert income.social_security == full - Decimal("1000")


def test_earnings_test_stops_applying_at_cutoff_month():
    policy = annual_limit_earnings_test(Decimal("12000"), until=Month(2030, 1))
    assert policy(Decimal("5000"), Decimal("1500"), Month(2030, 1)) == Decimal("1500")
    assert policy(Decimal("5000"), Decimal("1500"), Month(2029, 12)) == Decimal("0")


def test_without_earnings_test_benefit_is_untouched():
    benefit = SocialSecurityBenefit(name="SS", pia_at_fra=Decimal("2000"), birth_month=Month(1958, 1))
    month = benefit.claiming_month
    income = compute_monthly_income([_salary(), benefit], month, SimulationPhase.ACCUMULATION)
    assert income.social_security == Decimal("2000.00")
