"""Cross-reference validation for simulation configurations."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import SimulationConfig
from .levers import SimulationMode
from .portfolio import TaxTreatment
from .routing import RoutingConfiguration


@dataclass(slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_routing_targets(
    result: ValidationResult,
    path: str,
    routing: RoutingConfiguration | None,
    known: set[str],
) -> None:
    if routing is None:
        return
    for i, rule in enumerate(routing.rules):
        if rule.account_id not in known:
            result.errors.append(f"{path}.rules[{i}].account_id: unknown account '{rule.account_id}'")


def validate_config(config: SimulationConfig) -> ValidationResult:
    result = ValidationResult()
    known = set(config.portfolio.account_ids())

    _check_routing_targets(result, "contribution_routing", config.contribution_routing, known)
    _check_routing_targets(result, "withdrawal_routing", config.withdrawal_routing, known)

    retires_in_range = config.person.retirement_month <= config.end_month
    if config.withdrawal_policy is not None and retires_in_range and config.withdrawal_routing is None:
        result.errors.append("withdrawal_routing: required when a withdrawal policy applies during the simulation")
    if config.contribution_plan is not None and config.contribution_routing is None:
        result.errors.append("contribution_routing: required when a contribution plan is configured")

    for i, plan in enumerate(config.roth_conversions):
        path = f"roth_conversions[{i}]"
        for attr in ("from_account", "to_account"):
            account_id = getattr(plan, attr)
            if account_id not in known:
                result.errors.append(f"{path}.{attr}: unknown account '{account_id}'")
        if plan.from_account in known and config.portfolio.find(plan.from_account).tax_treatment is not TaxTreatment.PRE_TAX:
            result.warnings.append(f"{path}.from_account: '{plan.from_account}' is not a pre-tax account")
        if plan.to_account in known and config.portfolio.find(plan.to_account).tax_treatment is not TaxTreatment.ROTH:
            result.warnings.append(f"{path}.to_account: '{plan.to_account}' is not a Roth account")
        if plan.fill_to_bracket is not None and config.tax_policy is None:
            result.errors.append(f"{path}.fill_to_bracket: requires a tax policy")

    rmd = config.rmd_policy
    if rmd is not None:
        if rmd.destination_account not in known:
            result.errors.append(f"rmd.destination_account: unknown account '{rmd.destination_account}'")
        for i, account_id in enumerate(rmd.accounts):
            if account_id not in known:
                result.errors.append(f"rmd.accounts[{i}]: unknown account '{account_id}'")
            elif config.portfolio.find(account_id).tax_treatment is not TaxTreatment.PRE_TAX:
                result.warnings.append(f"rmd.accounts[{i}]: '{account_id}' is not a pre-tax account")

    market = config.levers.market
    if market.mode is SimulationMode.MONTE_CARLO and market.seed is None:
        result.warnings.append("levers.market.seed: Monte Carlo run is unseeded and will not be reproducible")
    if market.mode is SimulationMode.HISTORICAL and len(market.historical_returns) < config.month_count():
        result.warnings.append(
            f"levers.market.historical_returns: {len(market.historical_returns)} months of data for a "
            f"{config.month_count()}-month simulation; the run will fail when the data runs out"
        )
    if config.person.retirement_month < config.start_month:
        result.warnings.append("person.retirement_month: retirement is before the simulation start")
    if not known:
        result.warnings.append("portfolio: no accounts; balances will stay at zero")

    return result
