"""Routing rules that split a contribution or withdrawal across accounts."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import InvalidAllocationError, MissingRequiredFieldError, ValidationError
from .money import DEFAULT_PRECISION, ONE, ZERO, Number, Precision, round_money, to_decimal

ALLOCATION_TOLERANCE = Decimal("0.001")


@dataclass(frozen=True, slots=True)
class RoutingRule:
    account_id: str
    percentage: Decimal
    priority: int = 1

    def __post_init__(self) -> None:
        if self.account_id is None:
            raise MissingRequiredFieldError("account_id")
        if not self.account_id.strip():
            raise MissingRequiredFieldError("account_id", "Account ID cannot be blank")
        if self.percentage is None:
            raise MissingRequiredFieldError("percentage")
        percentage = to_decimal(self.percentage)
        object.__setattr__(self, "percentage", percentage)
        if percentage < 0 or percentage > 1:
            raise ValidationError(f"Percentage must be between 0 and 1 (got {percentage})", "percentage")
        if self.priority < 0:
            raise ValidationError(f"Priority must be non-negative (got {self.priority})", "priority")

    @classmethod
    def of_percent(cls, account_id: str, percent: Number, priority: int = 1) -> "RoutingRule":
        return cls(account_id, to_decimal(percent) / 100, priority)


@dataclass(frozen=True, slots=True)
class Disbursement:
    account_id: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class RoutingConfiguration:
    """Validated, immutable rule set; build it with :meth:`builder`."""

    rules: tuple[RoutingRule, ...]

    def rules_by_priority(self) -> list[RoutingRule]:
        # sorted() is stable, so equal priorities keep insertion order.
        return sorted(self.rules, key=lambda rule: rule.priority)

    def total_percentage(self) -> Decimal:
        return sum((rule.percentage for rule in self.rules), ZERO)

    def size(self) -> int:
        return len(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def account_ids(self) -> list[str]:
        out: list[str] = []
        for rule in self.rules:
            if rule.account_id not in out:
                out.append(rule.account_id)
        return out

    @staticmethod
    def builder() -> "RoutingConfigurationBuilder":
        return RoutingConfigurationBuilder()

    @classmethod
    def single_account(cls, account_id: str) -> "RoutingConfiguration":
        return cls.builder().add_rule(account_id, ONE, 1).build()

    @classmethod
    def from_rules(cls, rules: list[RoutingRule]) -> "RoutingConfiguration":
        builder = cls.builder()
        for rule in rules:
            builder.add(rule)
        return builder.build()


class RoutingConfigurationBuilder:
    def __init__(self) -> None:
        self._rules: list[RoutingRule] = []

    def add(self, rule: RoutingRule) -> "RoutingConfigurationBuilder":
        if rule is None:
            raise MissingRequiredFieldError("rule")
        self._rules.append(rule)
        return self

    def add_rule(self, account_id: str, percentage: Number, priority: int = 1) -> "RoutingConfigurationBuilder":
        return self.add(RoutingRule(account_id, to_decimal(percentage), priority))

    def add_rule_percent(self, account_id: str, percent: Number, priority: int = 1) -> "RoutingConfigurationBuilder":
        return self.add(RoutingRule.of_percent(account_id, percent, priority))

    def build(self) -> RoutingConfiguration:
        if not self._rules:
            raise ValidationError("RoutingConfiguration must have at least one rule", "rules")
        total = sum((rule.percentage for rule in self._rules), ZERO)
        if abs(total - ONE) > ALLOCATION_TOLERANCE:
            raise InvalidAllocationError.invalid_sum(total)
        return RoutingConfiguration(rules=tuple(self._rules))


def route_flow(
    amount: Number,
    configuration: RoutingConfiguration,
    precision: Precision = DEFAULT_PRECISION,
) -> list[Disbursement]:
    """Split ``amount`` across the rules in priority order.

    ``amount`` is first rounded to ``precision.money_places``; the split is of
    that rounded figure. Every rule receives its rounded share, never more
    than what is still unallocated, and the last rule in priority order takes
    the remainder, so the disbursements are non-negative and sum exactly to
    the rounded amount even when the percentages total slightly over 100%.
    """
    total = round_money(amount, precision)
    if total < 0:
        raise ValidationError(f"routed amount cannot be negative (got {total})", "amount")
    ordered = configuration.rules_by_priority()
    out: list[Disbursement] = []
    allocated = ZERO
    for rule in ordered[:-1]:
        share = min(round_money(total * rule.percentage, precision), total - allocated)
        out.append(Disbursement(rule.account_id, share))
        allocated += share
    out.append(Disbursement(ordered[-1].account_id, max(ZERO, total - allocated)))
    return out
