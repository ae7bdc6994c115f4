from decimal import Decimal

from nestegg.contributions import ContributionPlan
from nestegg.levers import MarketLevers
from nestegg.months import Month
from nestegg.rmd import RmdPolicy
from nestegg.roth import RothConversionPlan
from nestegg.routing import RoutingConfiguration
from nestegg.schema import load_config
from nestegg.validate import validate_config
from nestegg.withdrawals import WithdrawalPolicy, WithdrawalStrategy
from tests.helpers import make_config, portfolio


def _fixed(amount: str) -> WithdrawalPolicy:
    return WithdrawalPolicy(WithdrawalStrategy.FIXED_AMOUNT, monthly_amount=Decimal(amount))


def test_sample_config_is_valid(sample_config_path):
    result = validate_config(load_config(sample_config_path))
    assert result.is_valid, result.errors
    assert result.warnings == []


def test_unknown_routing_target():
    config = make_config(
        accounts=portfolio(ira="1000"),
        contribution_routing=RoutingConfiguration.single_account("nope"),
    )
    result = validate_config(config)
    assert result.errors == ["contribution_routing.rules[0].account_id: unknown account 'nope'"]


def test_withdrawal_policy_needs_routing_once_retired():
    config = make_config(retirement="2025-06", accounts=portfolio(ira="1000"), withdrawal_policy=_fixed("100"))
    result = validate_config(config)
    assert not result.is_valid
    assert result.errors[0].startswith("withdrawal_routing:")


def test_withdrawal_policy_without_routing_is_fine_if_never_retired():
    config = make_config(retirement="2040-01", accounts=portfolio(ira="1000"), withdrawal_policy=_fixed("100"))
    assert validate_config(config).is_valid


def test_contribution_plan_needs_routing():
    config = make_config(accounts=portfolio(ira="1000"), contribution_plan=ContributionPlan(Decimal("0.05")))
    result = validate_config(config)
    assert result.errors == ["contribution_routing: required when a contribution plan is configured"]


def test_roth_plan_accounts_must_exist():
    plan = RothConversionPlan("ira", "missing", Month(2025, 1), monthly_amount=Decimal("100"))
    config = make_config(accounts=portfolio(ira="1000"), roth_conversions=(plan,))
    result = validate_config(config)
    assert result.errors == ["roth_conversions[0].to_account: unknown account 'missing'"]


def test_roth_plan_tax_treatment_mismatch_is_a_warning():
    plan = RothConversionPlan("brokerage", "ira", Month(2025, 1), monthly_amount=Decimal("100"))
    config = make_config(accounts=portfolio(ira="1000", brokerage="1000"), roth_conversions=(plan,))
    result = validate_config(config)
    assert result.is_valid
    assert any("not a pre-tax account" in w for w in result.warnings)
    assert any("not a Roth account" in w for w in result.warnings)


def test_fill_to_bracket_needs_tax_policy():
    plan = RothConversionPlan("ira", "roth", Month(2025, 1), fill_to_bracket=Decimal("0.12"))
    config = make_config(accounts=portfolio(ira="1000", roth="0"), roth_conversions=(plan,))
    result = validate_config(config)
    assert result.errors == ["roth_conversions[0].fill_to_bracket: requires a tax policy"]


def test_unseeded_monte_carlo_warns():
    config = make_config(accounts=portfolio(ira="1000"), market=MarketLevers.monte_carlo())
    result = validate_config(config)
    assert result.is_valid
    assert any("unseeded" in w for w in result.warnings)


def test_short_historical_sequence_warns():
    market = MarketLevers.historical([Decimal("0.01")] * 6)
    config = make_config(accounts=portfolio(ira="1000"), market=market)
    result = validate_config(config)
    assert any("6 months of data for a 12-month simulation" in w for w in result.warnings)


def test_retirement_before_start_warns():
    config = make_config(retirement="2020-01", accounts=portfolio(ira="1000"))
    assert any("retirement is before" in w for w in validate_config(config).warnings)


def test_empty_portfolio_warns():
    assert any("no accounts" in w for w in validate_config(make_config()).warnings)


def test_rmd_accounts_must_exist():
    config = make_config(
        accounts=portfolio(ira="1000", brokerage="0"),
        rmd_policy=RmdPolicy("nowhere", accounts=("brokerage",)),
    )
    result = validate_config(config)
    assert result.errors == ["rmd.destination_account: unknown account 'nowhere'"]
    assert result.warnings == ["rmd.accounts[0]: 'brokerage' is not a pre-tax account"]
