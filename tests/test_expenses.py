from dataclasses import replace
from decimal import Decimal

import pytest

from nestegg.engine import run
from nestegg.errors import ValidationError
from nestegg.expenses import ExpenseCategory, InflationType, monthly_expenses_for
from nestegg.levers import EconomicLevers, MarketLevers, SimulationLevers
from nestegg.months import Month
from nestegg.schema import SchemaError, load_config
from tests.helpers import clone_config, make_config, write_config

HEALTHCARE = ExpenseCategory("Healthcare", Decimal("100"), InflationType.HEALTHCARE)


def test_category_rates():
    assert HEALTHCARE.rate(Decimal("0.02")) == Decimal("0.055")
    assert ExpenseCategory("Food", Decimal("1")).rate(Decimal("0.02")) == Decimal("0.02")
    assert ExpenseCategory("Fixed", Decimal("1"), InflationType.NONE).rate(Decimal("0.02")) == 0
    assert ExpenseCategory("Rent", Decimal("1"), InflationType.HOUSING, Decimal("0.05")).rate("0.02") == Decimal("0.05")


def test_each_category_inflates_at_its_own_rate():
    total = monthly_expenses_for(Decimal("1000"), [HEALTHCARE], Decimal("0.02"), 1)
    assert total == Decimal("1020.00") + Decimal("105.50")
    assert monthly_expenses_for(Decimal("1000"), [HEALTHCARE], Decimal("0.02"), 0) == Decimal("1100")


def test_negative_category_amount_is_rejected():
    with pytest.raises(ValidationError):
        ExpenseCategory("Oops", Decimal("-1"))


def test_engine_uses_category_inflation():
    config = make_config("2025-01", "2026-01", expense_categories=(HEALTHCARE,))
    config = replace(
        config,
        levers=SimulationLevers(market=MarketLevers.deterministic(0), economic=EconomicLevers(inflation_rate=0)),
    )
    series = run(config)
    assert series.snapshot(Month(2025, 12)).expenses == Decimal("100")
    assert series.snapshot(Month(2026, 1)).expenses == Decimal("105.50")


def test_expense_categories_load_from_json(sample_config_path):
    config = load_config(sample_config_path)
    assert config.expense_categories[0].inflation_type is InflationType.HEALTHCARE
    assert config.rmd_policy.destination_account == "brokerage"


def test_unknown_inflation_type_is_rejected(tmp_path, sample_config_dict):
    data = clone_config(sample_config_dict)
    data["expense_categories"] = [{"name": "Pets", "monthly_amount": 50, "inflation_type": "kibble"}]
    with pytest.raises(SchemaError, match=r"expense_categories\[0\]\.inflation_type"):
        load_config(write_config(tmp_path, data))
