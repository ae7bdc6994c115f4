from decimal import Decimal

import pytest

from nestegg.errors import InvalidAllocationError, MissingRequiredFieldError, ValidationError
from nestegg.routing import RoutingConfiguration, RoutingRule, route_flow


def test_valid_configuration_reports_total_and_size():
    config = (
        RoutingConfiguration.builder()
        .add_rule("trad", Decimal("0.5"), 1)
        .add_rule("roth", Decimal("0.3"), 2)
        .add_rule("brokerage", Decimal("0.2"), 3)
        .build()
    )

    assert config.total_percentage() == Decimal("1.0")
    assert config.size() == 3
    assert len(config) == 3


def test_percent_rules_are_converted_to_fractions():
    config = RoutingConfiguration.builder().add_rule_percent("trad", 60).add_rule_percent("roth", 40).build()
    assert [r.percentage for r in config.rules] == [Decimal("0.6"), Decimal("0.4")]


def test_sum_within_tolerance_is_accepted():
    config = RoutingConfiguration.builder().add_rule("a", Decimal("0.3333")).add_rule("b", Decimal("0.6666")).build()
    assert config.size() == 2


def test_sum_outside_tolerance_reports_actual_total():
    builder = RoutingConfiguration.builder().add_rule("a", Decimal("0.5")).add_rule("b", Decimal("0.455"))
    with pytest.raises(InvalidAllocationError, match=r"got 95\.50%"):
        builder.build()


def test_empty_rule_set_is_rejected():
    with pytest.raises(ValidationError):
        RoutingConfiguration.builder().build()


@pytest.mark.parametrize("pct", [Decimal("-0.1"), Decimal("1.01")])
def test_rule_percentage_must_be_a_fraction(pct):
    with pytest.raises(ValidationError):
        RoutingRule("a", pct, 1)


def test_blank_account_id_is_missing_field():
    with pytest.raises(MissingRequiredFieldError):
        RoutingRule("  ", Decimal("1"), 1)


def test_rules_by_priority_is_stable_for_ties():
    config = (
        RoutingConfiguration.builder()
        .add_rule("late", Decimal("0.25"), 5)
        .add_rule("first_tie", Decimal("0.25"), 1)
        .add_rule("second_tie", Decimal("0.25"), 1)
        .add_rule("middle", Decimal("0.25"), 3)
        .build()
    )

    ordered = config.rules_by_priority()
    assert [r.account_id for r in ordered] == ["first_tie", "second_tie", "middle", "late"]
    priorities = [r.priority for r in ordered]
    assert priorities == sorted(priorities)


def test_rules_cannot_be_mutated_through_accessors():
    config = RoutingConfiguration.single_account("trad")
    assert isinstance(config.rules, tuple)
    with pytest.raises(AttributeError):
        config.rules.append(RoutingRule("other", Decimal("1")))  # type: ignore[attr-defined]

    ordered = config.rules_by_priority()
    ordered.clear()
    assert config.size() == 1


def test_single_account_routes_everything_to_one_account():
    config = RoutingConfiguration.single_account("trad")
    assert config.total_percentage() == Decimal("1")
    assert route_flow(Decimal("123.45"), config)[0].amount == Decimal("123.45")


@pytest.mark.parametrize("amount", ["100.00", "0.01", "1234.57", "999999.99", "0"])
def test_routed_amounts_sum_exactly(amount):
    config = (
        RoutingConfiguration.builder()
        .add_rule("a", Decimal("0.3333"), 1)
        .add_rule("b", Decimal("0.3333"), 2)
        .add_rule("c", Decimal("0.3334"), 3)
        .build()
    )

    parts = route_flow(Decimal(amount), config)
    assert sum(p.amount for p in parts) == Decimal(amount)


def test_residual_cent_goes_to_last_rule_in_priority_order():
    config = (
        RoutingConfiguration.builder()
        .add_rule("last", Decimal("0.3334"), 9)
        .add_rule("a", Decimal("0.3333"), 1)
        .add_rule("b", Decimal("0.3333"), 2)
        .build()
    )

    parts = route_flow(Decimal("100.00"), config)
    assert [p.account_id for p in parts] == ["a", "b", "last"]
    assert parts[0].amount == Decimal("33.33")
    assert parts[1].amount == Decimal("33.33")
    assert parts[2].amount == Decimal("33.34")


def test_negative_flow_is_rejected():
    with pytest.raises(ValidationError):
        route_flow(Decimal("-1"), RoutingConfiguration.single_account("a"))


def test_shares_never_exceed_the_amount_when_rules_sum_over_one():
    config = (
        RoutingConfiguration.builder()
        .add_rule("a", Decimal("0.6"), 1)
        .add_rule("b", Decimal("0.4006"), 1)
        .add_rule("c", Decimal("0.0002"), 2)
        .build()
    )

    parts = route_flow(Decimal("10000.00"), config)
    assert all(p.amount >= 0 for p in parts)
    assert sum(p.amount for p in parts) == Decimal("10000.00")
    assert [p.amount for p in parts] == [Decimal("6000.00"), Decimal("4000.00"), Decimal("0.00")]


def test_amount_is_rounded_to_cents_before_splitting():
    parts = route_flow(Decimal("100.005"), RoutingConfiguration.single_account("a"))
    assert parts[0].amount == Decimal("100.01")
