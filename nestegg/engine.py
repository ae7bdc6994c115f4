"""Core month-by-month simulation engine.

Each month is processed in a fixed order: phase, income and expenses,
contributions or withdrawals, required minimum distributions (December only),
Roth conversions, taxes, then market growth on the post-flow balances. Cash flows are therefore never compounded in the
month they are posted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from .config import PersonProfile, SimulationConfig
from .contributions import contribution_for_month
from .errors import ConfigurationError, InvalidDateRangeError, MissingRequiredFieldError
from .expenses import monthly_expenses_for
from .income import MonthlyIncome, compute_monthly_income
from .levers import SimulationPhase
from .money import ZERO, round_money
from .months import MONTHS_PER_YEAR, Month
from .portfolio import Portfolio, TaxTreatment
from .results import AccountFlow, MonthlySnapshot, TimeSeries, TimeSeriesBuilder
from .returns import ReturnSource
from .rmd import plan_rmds
from .roth import plan_roth_conversion
from .routing import Disbursement, route_flow
from .tax import TaxSummary, compute_monthly_taxes, ordinary_income_before_deduction
from .validate import validate_config
from .withdrawals import WithdrawalContext, required_withdrawal

logger = logging.getLogger(__name__)

EVENT_STARTED = "Simulation started"
EVENT_RETIRED = "Retirement began"
EVENT_SOCIAL_SECURITY = "Social Security began"
EVENT_ROTH = "Roth conversions began"
EVENT_RMD = "Required minimum distributions began"
EVENT_DEPLETED = "Portfolio depleted"


def generate_months(start: Month, end: Month) -> list[Month]:
    """Every calendar month from ``start`` to ``end`` inclusive."""
    if start is None or end is None:
        raise MissingRequiredFieldError("start" if start is None else "end")
    if start > end:
        raise InvalidDateRangeError.must_not_be_after("start", "end", start, end)
    return [start.plus(i) for i in range(start.months_until(end) + 1)]


def determine_phase(person: PersonProfile, month: Month) -> SimulationPhase:
    if month >= person.retirement_month:
        return SimulationPhase.DISTRIBUTION
    return SimulationPhase.ACCUMULATION


def calculate_monthly_return(config: SimulationConfig, source: ReturnSource | None = None) -> Decimal:
    """Return the next monthly rate.

    Without ``source`` a fresh one is built, so the answer is the first month's
    rate and nothing outside the call is touched.
    """
    if config is None:
        raise MissingRequiredFieldError("config")
    if source is None:
        source = ReturnSource(config.levers.market, config.precision)
    return source.next_rate()


@dataclass(slots=True)
class _RunState:
    balance_at_retirement: Decimal | None = None
    depleted: bool = False
    social_security_started: bool = False
    roth_started: bool = False
    rmd_started: bool = False
    cumulative_contributions: Decimal = ZERO
    cumulative_withdrawals: Decimal = ZERO
    # Balances at the start of the calendar year (or of the run) and
    # withdrawals taken since, per account.
    year_start_balances: dict[str, Decimal] = field(default_factory=dict)
    withdrawn_this_year: dict[str, Decimal] = field(default_factory=dict)


@dataclass(slots=True)
class _MonthFlows:
    contributions: dict[str, Decimal] = field(default_factory=dict)
    withdrawals: dict[str, Decimal] = field(default_factory=dict)
    conversions_in: dict[str, Decimal] = field(default_factory=dict)
    conversions_out: dict[str, Decimal] = field(default_factory=dict)
    rmd_in: dict[str, Decimal] = field(default_factory=dict)
    rmd_out: dict[str, Decimal] = field(default_factory=dict)
    returns: dict[str, Decimal] = field(default_factory=dict)

    @staticmethod
    def add(bucket: dict[str, Decimal], account_id: str, amount: Decimal) -> None:
        bucket[account_id] = bucket.get(account_id, ZERO) + amount


def run(config: SimulationConfig) -> TimeSeries:
    """Simulate every month of ``config`` and return the snapshots.

    The caller's portfolio is never modified; the run works on a clone.
    Any failure aborts the run and no partial series is returned.
    """
    if config is None:
        raise MissingRequiredFieldError("config", "Simulation configuration is required")

    validation = validate_config(config)
    if not validation.is_valid:
        raise ConfigurationError("invalid simulation configuration: " + "; ".join(validation.errors))
    for warning in validation.warnings:
        logger.warning(warning)

    months = generate_months(config.start_month, config.end_month)
    portfolio = config.portfolio.clone()
    source = ReturnSource(config.levers.market, config.precision)
    state = _RunState()
    builder = TimeSeriesBuilder()

    logger.info(
        "running %s simulation: %d months %s..%s (seed=%s)",
        config.levers.mode.value,
        len(months),
        config.start_month,
        config.end_month,
        source.seed,
    )
    for month in months:
        builder.append(_simulate_month(config, portfolio, source, state, month))

    series = builder.build()
    logger.info(
        "simulation finished: ending balance %s%s",
        series.last.total_balance if series.last else ZERO,
        " (depleted)" if state.depleted else "",
    )
    return series


def _simulate_month(
    config: SimulationConfig,
    portfolio: Portfolio,
    source: ReturnSource,
    state: _RunState,
    month: Month,
) -> MonthlySnapshot:
    precision = config.precision
    phase = determine_phase(config.person, month)
    starting = portfolio.balances()
    if month == config.start_month or month.month == 1:
        state.year_start_balances = dict(starting)
        state.withdrawn_this_year = {}
    flows = _MonthFlows()
    events: list[str] = []
    if month == config.start_month:
        events.append(EVENT_STARTED)
    if month == config.person.retirement_month:
        events.append(EVENT_RETIRED)

    income = compute_monthly_income(config.income_sources, month, phase, config.earnings_test, precision)
    if income.social_security > 0 and not state.social_security_started:
        state.social_security_started = True
        events.append(EVENT_SOCIAL_SECURITY)
    years_elapsed = config.start_month.months_until(month) // MONTHS_PER_YEAR
    expenses = monthly_expenses_for(
        config.monthly_expenses,
        config.expense_categories,
        config.levers.economic.inflation_rate,
        years_elapsed,
        precision,
    )

    personal = employer = ZERO
    contribution_disbursements: list[Disbursement] = []
    withdrawal_disbursements: list[Disbursement] = []
    requested = unfunded = ZERO
    taxable_withdrawals = tax_free_withdrawals = ZERO

    if phase is SimulationPhase.ACCUMULATION:
        plan = config.contribution_plan
        if plan is not None and config.contribution_routing is not None:
            personal, employer = contribution_for_month(plan, income.salary, month, config.start_month, precision)
            if plan.rate_increased_in(month, config.start_month):
                rate = plan.personal_rate_for(month, config.start_month) * 100
                events.append(f"Contribution rate increased to {rate.normalize():f}%")
            if personal + employer > 0:
                for d in route_flow(personal + employer, config.contribution_routing, precision):
                    portfolio.apply_flow(d.account_id, d.amount)
                    flows.add(flows.contributions, d.account_id, d.amount)
                    contribution_disbursements.append(d)
    else:
        if state.balance_at_retirement is None:
            state.balance_at_retirement = portfolio.total_balance()
        policy = config.withdrawal_policy
        if policy is not None and config.withdrawal_routing is not None:
            ctx = WithdrawalContext(
                month=month,
                retirement_month=config.person.retirement_month,
                current_balance=portfolio.total_balance(),
                balance_at_retirement=state.balance_at_retirement,
                expenses=expenses,
                income=income,
                inflation_rate=config.levers.economic.inflation_rate,
                precision=precision,
            )
            requested = required_withdrawal(policy, ctx)
            if requested > 0:
                for d in route_flow(requested, config.withdrawal_routing, precision):
                    taken = min(d.amount, portfolio.balance_of(d.account_id))
                    unfunded += d.amount - taken
                    if taken <= 0:
                        continue
                    portfolio.apply_flow(d.account_id, -taken)
                    flows.add(flows.withdrawals, d.account_id, taken)
                    _MonthFlows.add(state.withdrawn_this_year, d.account_id, taken)
                    withdrawal_disbursements.append(Disbursement(d.account_id, taken))
                    if portfolio.find(d.account_id).tax_treatment.withdrawals_taxable:
                        taxable_withdrawals += taken
                    else:
                        tax_free_withdrawals += taken
            if unfunded > 0 and not state.depleted:
                state.depleted = True
                events.append(EVENT_DEPLETED)
                logger.warning("%s: portfolio depleted, %s of %s withdrawal unfunded", month, unfunded, requested)

    other_taxable = income.salary + income.pension + income.annuity + income.other
    rmd_total = _take_required_distributions(config, portfolio, flows, state, month)
    if rmd_total > 0 and not state.rmd_started:
        state.rmd_started = True
        events.append(EVENT_RMD)
    # Required distributions are taxed as ordinary withdrawals.
    taxable_distributions = taxable_withdrawals + rmd_total

    roth_total = _convert_to_roth(config, portfolio, flows, month, income, taxable_distributions, other_taxable)
    if roth_total > 0 and not state.roth_started:
        state.roth_started = True
        events.append(EVENT_ROTH)

    if config.tax_policy is not None:
        taxes = compute_monthly_taxes(
            config.tax_policy,
            year=month.year,
            taxable_withdrawals=taxable_distributions,
            tax_free_withdrawals=tax_free_withdrawals,
            social_security=income.social_security,
            other_taxable_income=other_taxable,
            roth_conversion=roth_total,
            precision=precision,
        )
    else:
        taxes = TaxSummary.empty()

    rate = source.next_rate()
    for account in portfolio.accounts:
        growth = round_money(account.balance * rate, precision)
        if growth:
            portfolio.apply_flow(account.account_id, growth)
        flows.add(flows.returns, account.account_id, growth)
    logger.debug("%s: phase=%s rate=%s balance=%s", month, phase.value, rate, portfolio.total_balance())

    state.cumulative_contributions += personal + employer
    state.cumulative_withdrawals += taxable_withdrawals + tax_free_withdrawals

    account_flows = {
        account.account_id: AccountFlow(
            account_id=account.account_id,
            starting_balance=starting[account.account_id],
            contributions=flows.contributions.get(account.account_id, ZERO),
            withdrawals=flows.withdrawals.get(account.account_id, ZERO),
            conversions_in=flows.conversions_in.get(account.account_id, ZERO),
            conversions_out=flows.conversions_out.get(account.account_id, ZERO),
            rmd_in=flows.rmd_in.get(account.account_id, ZERO),
            rmd_out=flows.rmd_out.get(account.account_id, ZERO),
            returns=flows.returns.get(account.account_id, ZERO),
            ending_balance=account.balance,
        )
        for account in portfolio.accounts
    }
    return MonthlySnapshot(
        month=month,
        phase=phase,
        account_flows=account_flows,
        income=income,
        expenses=expenses,
        taxes=taxes,
        contribution_disbursements=tuple(contribution_disbursements),
        withdrawal_disbursements=tuple(withdrawal_disbursements),
        personal_contribution=personal,
        employer_contribution=employer,
        requested_withdrawal=requested,
        unfunded_withdrawal=unfunded,
        roth_conversion=roth_total,
        required_distribution=rmd_total,
        monthly_return_rate=rate,
        cumulative_contributions=state.cumulative_contributions,
        cumulative_withdrawals=state.cumulative_withdrawals,
        events=tuple(events),
    )


def _convert_to_roth(
    config: SimulationConfig,
    portfolio: Portfolio,
    flows: _MonthFlows,
    month: Month,
    income: MonthlyIncome,
    taxable_withdrawals: Decimal,
    other_taxable: Decimal,
) -> Decimal:
    if not config.roth_conversions:
        return ZERO
    gross = ZERO
    if config.tax_policy is not None:
        gross, _ = ordinary_income_before_deduction(
            config.tax_policy,
            taxable_withdrawals=taxable_withdrawals,
            social_security=income.social_security,
            other_taxable_income=other_taxable,
            precision=config.precision,
        )
    total = ZERO
    for plan in config.roth_conversions:
        amount = plan_roth_conversion(
            plan,
            month,
            portfolio.balance_of(plan.from_account),
            policy=config.tax_policy,
            gross_ordinary_income=gross + total,
            precision=config.precision,
        )
        if amount <= 0:
            continue
        portfolio.apply_flow(plan.from_account, -amount)
        portfolio.apply_flow(plan.to_account, amount)
        flows.add(flows.conversions_out, plan.from_account, amount)
        flows.add(flows.conversions_in, plan.to_account, amount)
        total += amount
    return total


def _take_required_distributions(
    config: SimulationConfig,
    portfolio: Portfolio,
    flows: _MonthFlows,
    state: _RunState,
    month: Month,
) -> Decimal:
    policy = config.rmd_policy
    if policy is None:
        return ZERO
    age = config.person.age_at(month)
    if not policy.applies(month, age):
        return ZERO
    source_ids = policy.accounts or tuple(
        a.account_id
        for a in portfolio.accounts
        if a.tax_treatment is TaxTreatment.PRE_TAX and a.account_id != policy.destination_account
    )
    amounts = plan_rmds(
        policy,
        age,
        {account_id: portfolio.balance_of(account_id) for account_id in source_ids},
        state.year_start_balances,
        state.withdrawn_this_year,
        config.precision,
    )
    total = ZERO
    for account_id, amount in amounts.items():
        portfolio.apply_flow(account_id, -amount)
        portfolio.apply_flow(policy.destination_account, amount)
        flows.add(flows.rmd_out, account_id, amount)
        flows.add(flows.rmd_in, policy.destination_account, amount)
        _MonthFlows.add(state.withdrawn_this_year, account_id, amount)
        total += amount
    if total > 0:
        logger.debug("%s: required minimum distributions %s at age %d", month, total, age)
    return total
