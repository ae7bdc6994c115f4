from decimal import Decimal

import pytest

from nestegg.errors import ValidationError
from nestegg.tax import TaxPolicy, TaxSummary, TaxTable, compute_monthly_taxes

TABLE = TaxTable.from_pairs([(1000, "0.10"), (5000, "0.20"), (None, "0.30")])


def _policy(indexation: str = "0") -> TaxPolicy:
    return TaxPolicy(
        annual_table=TaxTable.from_pairs([(12000, "0.10"), (60000, "0.20"), (None, "0.30")]),
        standard_deduction=Decimal("12000"),
        indexation_rate=Decimal(indexation),
        base_year=2025,
    )


@pytest.mark.parametrize(
    "income,expected",
    [("0", "0"), ("500", "50"), ("1000", "100"), ("3000", "500"), ("10000", "2400")],
)
def test_progressive_tax_only_taxes_income_within_each_bracket(income, expected):
    assert TABLE.tax_on(Decimal(income)) == Decimal(expected)


def test_marginal_rate_is_rate_of_next_dollar():
    assert TABLE.marginal_rate(Decimal("999")) == Decimal("0.10")
    assert TABLE.marginal_rate(Decimal("1000")) == Decimal("0.20")
    assert TABLE.marginal_rate(Decimal("1000000")) == Decimal("0.30")


def test_upper_bound_for_rate():
    assert TABLE.upper_bound_for_rate(Decimal("0.20")) == Decimal("5000")
    assert TABLE.upper_bound_for_rate(Decimal("0.30")) is None
    with pytest.raises(ValidationError):
        TABLE.upper_bound_for_rate(Decimal("0.15"))


def test_table_must_end_open_ended():
    with pytest.raises(ValidationError):
        TaxTable.from_pairs([(1000, "0.10")])


def test_monthly_taxes_split_ordinary_and_tax_free_withdrawals():
    summary = compute_monthly_taxes(
        _policy(),
        year=2025,
        taxable_withdrawals=Decimal("3000"),
        tax_free_withdrawals=Decimal("500"),
        social_security=Decimal("2000"),
    )

    assert summary.taxable_social_security == Decimal("1700.00")
    assert summary.taxable_income == Decimal("3700.00")
    assert summary.federal_tax_liability == Decimal("640.00")
    assert summary.marginal_rate == Decimal("0.20")
    assert summary.effective_tax_rate == Decimal("0.1730")
    assert summary.total_withdrawals == Decimal("3500.00")
    assert not summary.had_roth_conversion


def test_roth_conversion_is_stacked_and_taxed_separately():
    summary = compute_monthly_taxes(
        _policy(),
        year=2025,
        taxable_withdrawals=Decimal("3000"),
        social_security=Decimal("2000"),
        roth_conversion=Decimal("2000"),
    )

    assert summary.taxable_income == Decimal("3700.00")
    assert summary.federal_tax_liability == Decimal("640.00")
    assert summary.roth_conversion_tax == Decimal("470.00")
    assert summary.total_tax_liability == Decimal("1110.00")
    assert summary.marginal_rate == Decimal("0.30")
    assert summary.had_roth_conversion


def test_income_below_deduction_is_not_taxed():
    summary = compute_monthly_taxes(_policy(), year=2025, taxable_withdrawals=Decimal("800"))
    assert summary.taxable_income == 0
    assert summary.federal_tax_liability == 0
    assert summary.effective_tax_rate == 0


def test_effective_rate_is_zero_without_taxable_income():
    assert TaxSummary(federal_tax_liability=Decimal("100")).effective_tax_rate == 0
    assert TaxSummary.empty().effective_tax_rate == 0
    assert TaxSummary.empty().total_tax_liability == 0


def test_brackets_and_deduction_are_indexed_by_year():
    policy = _policy(indexation="0.10")
    assert policy.monthly_table(2025).brackets[0].upper == Decimal("1000.00")
    assert policy.monthly_table(2027).brackets[0].upper == Decimal("1210.00")
    assert policy.monthly_deduction(2027) == Decimal("1210.00")
    assert policy.monthly_table(2020).brackets[0].upper == Decimal("1000.00")


def test_default_tables_by_filing_status():
    policy = TaxPolicy.for_filing_status("single")
    assert policy.monthly_table(2026).brackets[0].upper == Decimal("1033.33")
    assert policy.monthly_deduction(2026) == Decimal("1341.67")
    assert policy.social_security_taxable_fraction == Decimal("0.85")


def test_unknown_filing_status_is_rejected():
    with pytest.raises(ValidationError, match="filing status"):
        TaxPolicy.for_filing_status("complicated")
