"""Serialisation of simulation results to JSON and plain text."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

from .results import AccountFlow, MonthlySnapshot, TimeSeries
from .simulation import SimulationResult
from .summary import AnnualSummary
from .tax import TaxSummary


def _money(value: Decimal) -> str:
    return str(value)


def _flow_to_dict(flow: AccountFlow) -> dict[str, Any]:
    return {
        "starting_balance": _money(flow.starting_balance),
        "contributions": _money(flow.contributions),
        "withdrawals": _money(flow.withdrawals),
        "conversions_in": _money(flow.conversions_in),
        "conversions_out": _money(flow.conversions_out),
        "rmd_in": _money(flow.rmd_in),
        "rmd_out": _money(flow.rmd_out),
        "returns": _money(flow.returns),
        "ending_balance": _money(flow.ending_balance),
    }


def _taxes_to_dict(taxes: TaxSummary) -> dict[str, Any]:
    return {
        "taxable_income": _money(taxes.taxable_income),
        "taxable_social_security": _money(taxes.taxable_social_security),
        "taxable_withdrawals": _money(taxes.taxable_withdrawals),
        "tax_free_withdrawals": _money(taxes.tax_free_withdrawals),
        "federal_tax_liability": _money(taxes.federal_tax_liability),
        "effective_tax_rate": str(taxes.effective_tax_rate),
        "marginal_rate": str(taxes.marginal_rate),
        "roth_conversion_amount": _money(taxes.roth_conversion_amount),
        "roth_conversion_tax": _money(taxes.roth_conversion_tax),
    }


def snapshot_to_dict(snapshot: MonthlySnapshot) -> dict[str, Any]:
    income = snapshot.income
    return {
        "month": str(snapshot.month),
        "phase": snapshot.phase.value,
        "starting_balance": _money(snapshot.starting_balance),
        "total_balance": _money(snapshot.total_balance),
        "accounts": {account_id: _flow_to_dict(flow) for account_id, flow in snapshot.account_flows.items()},
        "income": {
            "salary": _money(income.salary),
            "social_security": _money(income.social_security),
            "pension": _money(income.pension),
            "annuity": _money(income.annuity),
            "other": _money(income.other),
            "total": _money(income.total),
        },
        "expenses": _money(snapshot.expenses),
        "taxes": _taxes_to_dict(snapshot.taxes),
        "personal_contribution": _money(snapshot.personal_contribution),
        "employer_contribution": _money(snapshot.employer_contribution),
        "requested_withdrawal": _money(snapshot.requested_withdrawal),
        "unfunded_withdrawal": _money(snapshot.unfunded_withdrawal),
        "roth_conversion": _money(snapshot.roth_conversion),
        "required_distribution": _money(snapshot.required_distribution),
        "monthly_return_rate": str(snapshot.monthly_return_rate),
        "events": list(snapshot.events),
    }


def summary_to_dict(summary: AnnualSummary) -> dict[str, Any]:
    return {
        "year": summary.year,
        "starting_balance": _money(summary.starting_balance),
        "ending_balance": _money(summary.ending_balance),
        "total_contributions": _money(summary.total_contributions),
        "total_withdrawals": _money(summary.total_withdrawals),
        "total_income": _money(summary.total_income),
        "total_expenses": _money(summary.total_expenses),
        "total_taxes": _money(summary.total_taxes),
        "annual_return": _money(summary.annual_return),
        "annual_return_percent": str(summary.annual_return_percent),
        "effective_tax_rate": str(summary.effective_tax_rate),
        "events": list(summary.events),
    }


def result_to_dict(result: SimulationResult) -> dict[str, Any]:
    out: dict[str, Any] = {
        "mode": result.mode.value,
        "seed": result.seed,
        "trial_count": result.trial_count,
        "success_rate": str(result.success_rate),
        "depleted_years": result.depleted_years,
        "annual": [summary_to_dict(s) for s in result.annual],
        "percentiles": [
            {
                "year": p.year,
                "p10": _money(p.p10),
                "p25": _money(p.p25),
                "p50": _money(p.p50),
                "p75": _money(p.p75),
                "p90": _money(p.p90),
            }
            for p in result.percentiles
        ],
    }
    if result.series is not None:
        out["months"] = [snapshot_to_dict(s) for s in result.series]
    return out


def render_text_summary(result: SimulationResult) -> str:
    if not result.annual:
        return f"Mode: {result.mode.value}\nNo simulated years."
    first = result.annual[0]
    last = result.annual[-1]
    lines = [
        f"Mode: {result.mode.value}",
        f"Years: {first.year}-{last.year}",
        f"Success rate: {result.success_rate:.2%} ({result.trial_count} trials)",
        f"Starting balance: ${first.starting_balance:,.2f}",
        f"Ending balance: ${last.ending_balance:,.2f}",
        f"Depleted years: {len(result.depleted_years)}",
    ]
    ending = result.ending_percentiles
    if ending is not None and result.trial_count > 1:
        lines.append(f"Ending balance p10/p50/p90: ${ending.p10:,.0f} / ${ending.p50:,.0f} / ${ending.p90:,.0f}")
    events = [event for summary in result.annual for event in summary.events]
    if events:
        lines.append("Events:")
        lines.extend(f"  {event}" for event in events)
    return "\n".join(lines)


def write_json(path: str | Path, result: SimulationResult) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(result_to_dict(result), indent=2), encoding="utf-8")
    return target


def series_to_json(series: TimeSeries) -> str:
    return json.dumps([snapshot_to_dict(s) for s in series], indent=2)
