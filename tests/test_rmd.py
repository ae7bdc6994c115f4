from dataclasses import replace
from decimal import Decimal

import pytest

from nestegg.engine import EVENT_RMD, run
from nestegg.errors import ValidationError
from nestegg.levers import EconomicLevers, MarketLevers, SimulationLevers
from nestegg.months import Month
from nestegg.rmd import RmdPolicy, compute_rmd_amount, divisor_for_age, plan_rmds
from nestegg.routing import RoutingConfiguration
from nestegg.tax import TaxPolicy, TaxTable
from nestegg.withdrawals import WithdrawalPolicy, WithdrawalStrategy
from tests.helpers import make_config, person, portfolio

FLAT = SimulationLevers(market=MarketLevers.deterministic(0), economic=EconomicLevers(inflation_rate=0))


def _retiree_config(**kwargs):
    config = make_config(
        "2025-01",
        "2025-12",
        retirement="2020-01",
        accounts=portfolio(ira="265000", cash="0"),
        rmd_policy=RmdPolicy(destination_account="cash"),
        **kwargs,
    )
    return replace(config, person=person(retirement="2020-01", birth="1952-06"), levers=FLAT)


def test_compute_rmd_amount_for_age_73():
    assert compute_rmd_amount(Decimal("265000"), 73) == Decimal("10000.00")


def test_divisor_table_edges():
    assert divisor_for_age(71) is None
    assert divisor_for_age(72) == Decimal("27.4")
    assert divisor_for_age(125) == Decimal("2.0")
    assert compute_rmd_amount(Decimal("100000"), 65) == 0


def test_plan_counts_earlier_withdrawals_and_caps_at_balance():
    policy = RmdPolicy(destination_account="cash")
    amounts = plan_rmds(
        policy,
        73,
        {"ira": Decimal("250000"), "small": Decimal("50")},
        {"ira": Decimal("265000"), "small": Decimal("26500")},
        {"ira": Decimal("6000")},
    )
    assert amounts == {"ira": Decimal("4000.00"), "small": Decimal("50.00")}


def test_plan_skips_accounts_already_satisfied():
    policy = RmdPolicy(destination_account="cash")
    amounts = plan_rmds(policy, 73, {"ira": Decimal("250000")}, {"ira": Decimal("265000")}, {"ira": Decimal("12000")})
    assert amounts == {}


def test_policy_validation():
    with pytest.raises(ValidationError):
        RmdPolicy(destination_account="ira", accounts=("ira",))
    with pytest.raises(ValidationError):
        RmdPolicy(destination_account="cash", start_age=60)
    assert RmdPolicy(destination_account="cash").applies(Month(2025, 12), 73)
    assert not RmdPolicy(destination_account="cash").applies(Month(2025, 11), 80)


def test_engine_moves_rmd_to_destination_in_december():
    series = run(_retiree_config())
    december = series.snapshot(Month(2025, 12))

    assert all(s.required_distribution == 0 for s in series[:11])
    assert december.required_distribution == Decimal("10000.00")
    assert december.balance_of("ira") == Decimal("255000.00")
    assert december.balance_of("cash") == Decimal("10000.00")
    assert december.account_flows["ira"].rmd_out == Decimal("10000.00")
    assert december.account_flows["cash"].rmd_in == Decimal("10000.00")
    assert EVENT_RMD in december.events
    assert december.total_withdrawals == 0


def test_engine_rmd_only_tops_up_what_withdrawals_did_not_cover():
    config = _retiree_config(
        withdrawal_routing=RoutingConfiguration.single_account("ira"),
        withdrawal_policy=WithdrawalPolicy(WithdrawalStrategy.FIXED_AMOUNT, monthly_amount=Decimal("500")),
    )
    december = run(config).snapshot(Month(2025, 12))
    assert december.required_distribution == Decimal("4000.00")


def test_rmd_is_taxed_as_ordinary_income():
    policy = TaxPolicy(annual_table=TaxTable.from_pairs([(None, "0.10")]), base_year=2025)
    december = run(_retiree_config(tax_policy=policy)).snapshot(Month(2025, 12))
    assert december.taxes.taxable_withdrawals == Decimal("10000.00")
    assert december.taxes.federal_tax_liability == Decimal("1000.00")


def test_no_rmd_before_start_age():
    config = replace(_retiree_config(), person=person(retirement="2020-01", birth="1960-06"))
    assert all(s.required_distribution == 0 for s in run(config))
