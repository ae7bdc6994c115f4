"""JSON configuration loading."""

from __future__ import annotations

import json
import math
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, TypeVar

from .config import PersonProfile, SimulationConfig
from .contributions import ContributionPlan
from .errors import ValidationError
from .expenses import ExpenseCategory, InflationType
from .historical_data import LAST_YEAR, monthly_returns
from .income import EarningsTest, IncomeKind, IncomeSource, IncomeStream, annual_limit_earnings_test
from .levers import EconomicLevers, MarketLevers, SimulationLevers, SimulationMode
from .money import DEFAULT_PRECISION, Precision
from .months import MONTHS_PER_YEAR, Month
from .portfolio import Account, Portfolio, TaxTreatment
from .rmd import DEFAULT_RMD_START_AGE, RmdPolicy
from .roth import RothConversionPlan
from .routing import RoutingConfiguration, RoutingRule
from .social_security import SocialSecurityBenefit
from .tax import TaxPolicy, TaxTable
from .tax_data import BASE_TAX_YEAR
from .withdrawals import WithdrawalPolicy, WithdrawalStrategy

T = TypeVar("T")


class SchemaError(ValidationError):
    """Raised when raw JSON cannot be parsed into configuration objects."""


def _expect_dict(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaError(f"{path}: expected object", path)
    return value


def _expect_list(value: Any, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise SchemaError(f"{path}: expected array", path)
    return value


def _require(data: dict[str, Any], key: str, path: str) -> Any:
    if key not in data or data[key] is None:
        raise SchemaError(f"{path}.{key}: missing required field", f"{path}.{key}")
    return data[key]


def _optional(data: dict[str, Any], key: str, default: Any = None) -> Any:
    value = data.get(key)
    return default if value is None else value


def _decimal(value: Any, path: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise SchemaError(f"{path}: expected a number", path)
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise SchemaError(f"{path}: '{value}' is not a number", path) from None
    if not result.is_finite():
        raise SchemaError(f"{path}: '{value}' is not a finite number", path)
    return result


def _opt_decimal(data: dict[str, Any], key: str, path: str) -> Decimal | None:
    value = data.get(key)
    return None if value is None else _decimal(value, f"{path}.{key}")


def _int(value: Any, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaError(f"{path}: expected an integer", path)
    return value


def _month(value: Any, path: str) -> Month:
    if not isinstance(value, str):
        raise SchemaError(f"{path}: expected YYYY-MM string", path)
    try:
        return Month.parse(value)
    except ValidationError:
        raise SchemaError(f"{path}: '{value}' is not valid; expected YYYY-MM", path) from None


def _opt_month(data: dict[str, Any], key: str, path: str) -> Month | None:
    value = data.get(key)
    return None if value is None else _month(value, f"{path}.{key}")


def _build(path: str, factory: Callable[..., T], **kwargs: Any) -> T:
    """Construct a domain object, prefixing its validation errors with ``path``."""
    try:
        return factory(**kwargs)
    except SchemaError:
        raise
    except ValidationError as exc:
        field = f"{path}.{exc.field_name}" if exc.field_name else path
        raise SchemaError(f"{field}: {exc}", field) from exc


def _parse_account(data: dict[str, Any], path: str) -> Account:
    return _build(
        path,
        Account,
        account_id=str(_require(data, "id", path)),
        name=str(_optional(data, "name", data.get("id"))),
        balance=_decimal(_require(data, "balance", path), f"{path}.balance"),
        tax_treatment=_build(
            f"{path}.tax_treatment", _tax_treatment, value=_optional(data, "tax_treatment", "pre_tax")
        ),
    )


def _tax_treatment(value: str) -> TaxTreatment:
    try:
        return TaxTreatment(value)
    except ValueError:
        expected = ", ".join(t.value for t in TaxTreatment)
        raise ValidationError(f"'{value}' is not valid; expected one of [{expected}]") from None


def _parse_routing(raw: Any, path: str) -> RoutingConfiguration | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return _build(path, RoutingConfiguration.single_account, account_id=raw)
    rules: list[RoutingRule] = []
    for idx, item in enumerate(_expect_list(raw, path)):
        item_path = f"{path}[{idx}]"
        rule = _expect_dict(item, item_path)
        rules.append(
            _build(
                item_path,
                RoutingRule,
                account_id=str(_require(rule, "account_id", item_path)),
                percentage=_decimal(_require(rule, "percentage", item_path), f"{item_path}.percentage"),
                priority=_int(_optional(rule, "priority", 1), f"{item_path}.priority"),
            )
        )
    return _build(path, RoutingConfiguration.from_rules, rules=rules)


def _parse_person(data: dict[str, Any], path: str = "person") -> PersonProfile:
    return _build(
        path,
        PersonProfile,
        name=str(_optional(data, "name", "")),
        birth_month=_month(_require(data, "birth_month", path), f"{path}.birth_month"),
        retirement_month=_month(_require(data, "retirement_month", path), f"{path}.retirement_month"),
    )


def _parse_market(data: dict[str, Any], start: Month, end: Month, path: str) -> MarketLevers:
    mode_raw = _optional(data, "mode", SimulationMode.DETERMINISTIC.value)
    try:
        mode = SimulationMode(mode_raw)
    except ValueError:
        expected = ", ".join(m.value for m in SimulationMode)
        raise SchemaError(f"{path}.mode: '{mode_raw}' is not valid; expected one of [{expected}]", f"{path}.mode") from None

    history: tuple[Decimal, ...] = ()
    if mode is SimulationMode.HISTORICAL:
        if data.get("historical_returns") is not None:
            history = tuple(
                _decimal(v, f"{path}.historical_returns[{i}]")
                for i, v in enumerate(_expect_list(data["historical_returns"], f"{path}.historical_returns"))
            )
        else:
            hist = _expect_dict(_optional(data, "historical", {}), f"{path}.historical")
            start_year = _int(_require(hist, "start_year", f"{path}.historical"), f"{path}.historical.start_year")
            # Only replay years the dataset has; a short sequence fails when the run reaches its end.
            years = min(math.ceil((start.months_until(end) + 1) / MONTHS_PER_YEAR), LAST_YEAR - start_year + 1)
            history = _build(
                f"{path}.historical",
                monthly_returns,
                start_year=start_year,
                years=years,
                stock_weight=_decimal(_optional(hist, "stock_weight", "0.6"), f"{path}.historical.stock_weight"),
            )

    kwargs: dict[str, Any] = {"mode": mode, "historical_returns": history}
    for key in ("expected_return", "return_std_dev"):
        value = _opt_decimal(data, key, path)
        if value is not None:
            kwargs[key] = value
    if data.get("seed") is not None:
        kwargs["seed"] = _int(data["seed"], f"{path}.seed")
    return _build(path, MarketLevers, **kwargs)


def _parse_levers(data: dict[str, Any], start: Month, end: Month, path: str = "levers") -> SimulationLevers:
    market = _parse_market(_expect_dict(_optional(data, "market", {}), f"{path}.market"), start, end, f"{path}.market")
    economic_raw = _expect_dict(_optional(data, "economic", {}), f"{path}.economic")
    inflation = _opt_decimal(economic_raw, "inflation_rate", f"{path}.economic")
    economic = EconomicLevers() if inflation is None else _build(f"{path}.economic", EconomicLevers, inflation_rate=inflation)
    return SimulationLevers(market=market, economic=economic)


def _parse_income(data: dict[str, Any], path: str) -> IncomeStream:
    kind_raw = _optional(data, "kind", IncomeKind.OTHER.value)
    try:
        kind = IncomeKind(kind_raw)
    except ValueError:
        expected = ", ".join(k.value for k in IncomeKind)
        raise SchemaError(f"{path}.kind: '{kind_raw}' is not valid; expected one of [{expected}]", f"{path}.kind") from None
    earned = data.get("earned")
    if earned is not None and not isinstance(earned, bool):
        raise SchemaError(f"{path}.earned: expected boolean", f"{path}.earned")
    return _build(
        path,
        IncomeStream,
        name=str(_require(data, "name", path)),
        kind=kind,
        monthly_amount=_decimal(_require(data, "monthly_amount", path), f"{path}.monthly_amount"),
        start=_month(_require(data, "start", path), f"{path}.start"),
        end=_opt_month(data, "end", path),
        annual_adjustment=_decimal(_optional(data, "annual_adjustment", 0), f"{path}.annual_adjustment"),
        earned=earned,
    )


def _parse_social_security(data: dict[str, Any], person: PersonProfile, path: str) -> SocialSecurityBenefit:
    kwargs: dict[str, Any] = {
        "name": str(_optional(data, "name", "Social Security")),
        "pia_at_fra": _decimal(_require(data, "pia_at_fra", path), f"{path}.pia_at_fra"),
        "birth_month": _opt_month(data, "birth_month", path) or person.birth_month,
        "cola_rate": _decimal(_optional(data, "cola_rate", 0), f"{path}.cola_rate"),
        "spouse_pia_at_fra": _opt_decimal(data, "spouse_pia_at_fra", path),
    }
    for key in ("claiming_age_years", "claiming_age_months", "fra_age_years", "fra_age_months"):
        if data.get(key) is not None:
            kwargs[key] = _int(data[key], f"{path}.{key}")
    return _build(path, SocialSecurityBenefit, **kwargs)


def _parse_earnings_test(data: dict[str, Any], path: str = "earnings_test") -> EarningsTest:
    return _build(
        path,
        annual_limit_earnings_test,
        annual_limit=_decimal(_require(data, "annual_limit", path), f"{path}.annual_limit"),
        reduction_ratio=_decimal(_optional(data, "reduction_ratio", "0.5"), f"{path}.reduction_ratio"),
        until=_opt_month(data, "until", path),
    )


def _parse_contribution_plan(data: dict[str, Any], path: str = "contribution_plan") -> ContributionPlan:
    return _build(
        path,
        ContributionPlan,
        personal_rate=_decimal(_require(data, "personal_rate", path), f"{path}.personal_rate"),
        employer_rate=_decimal(_optional(data, "employer_rate", 0), f"{path}.employer_rate"),
        increment_rate=_decimal(_optional(data, "increment_rate", 0), f"{path}.increment_rate"),
        increment_month=_int(_optional(data, "increment_month", 1), f"{path}.increment_month"),
        max_personal_rate=_opt_decimal(data, "max_personal_rate", path),
    )


def _parse_withdrawal_policy(data: dict[str, Any], path: str = "withdrawal_policy") -> WithdrawalPolicy:
    strategy_raw = _require(data, "strategy", path)
    try:
        strategy = WithdrawalStrategy(strategy_raw)
    except ValueError:
        expected = ", ".join(s.value for s in WithdrawalStrategy)
        raise SchemaError(
            f"{path}.strategy: '{strategy_raw}' is not valid; expected one of [{expected}]", f"{path}.strategy"
        ) from None
    return _build(
        path,
        WithdrawalPolicy,
        strategy=strategy,
        rate=_opt_decimal(data, "rate", path),
        monthly_amount=_opt_decimal(data, "monthly_amount", path),
    )


def _parse_tax_policy(data: dict[str, Any], path: str = "tax") -> TaxPolicy:
    fraction = _opt_decimal(data, "social_security_taxable_fraction", path)
    indexation = _opt_decimal(data, "indexation_rate", path)
    if data.get("brackets") is None:
        kwargs: dict[str, Any] = {"filing_status": str(_optional(data, "filing_status", "single"))}
        if fraction is not None:
            kwargs["social_security_taxable_fraction"] = fraction
        if indexation is not None:
            kwargs["indexation_rate"] = indexation
        return _build(path, TaxPolicy.for_filing_status, **kwargs)

    pairs = []
    for idx, item in enumerate(_expect_list(data["brackets"], f"{path}.brackets")):
        item_path = f"{path}.brackets[{idx}]"
        pair = _expect_list(item, item_path)
        if len(pair) != 2:
            raise SchemaError(f"{item_path}: expected [upper_bound, rate]", item_path)
        upper = None if pair[0] is None else _decimal(pair[0], f"{item_path}[0]")
        pairs.append((upper, _decimal(pair[1], f"{item_path}[1]")))
    table = _build(f"{path}.brackets", TaxTable.from_pairs, pairs=pairs)
    kwargs = {
        "annual_table": table,
        "standard_deduction": _decimal(_optional(data, "standard_deduction", 0), f"{path}.standard_deduction"),
        "base_year": _int(_optional(data, "base_year", BASE_TAX_YEAR), f"{path}.base_year"),
    }
    if fraction is not None:
        kwargs["social_security_taxable_fraction"] = fraction
    if indexation is not None:
        kwargs["indexation_rate"] = indexation
    return _build(path, TaxPolicy, **kwargs)


def _parse_roth(data: dict[str, Any], path: str) -> RothConversionPlan:
    return _build(
        path,
        RothConversionPlan,
        from_account=str(_require(data, "from_account", path)),
        to_account=str(_require(data, "to_account", path)),
        start=_month(_require(data, "start", path), f"{path}.start"),
        end=_opt_month(data, "end", path),
        monthly_amount=_opt_decimal(data, "monthly_amount", path),
        fill_to_bracket=_opt_decimal(data, "fill_to_bracket", path),
    )


def _parse_rmd(data: dict[str, Any], path: str = "rmd") -> RmdPolicy:
    accounts = [
        str(item) for item in _expect_list(_optional(data, "accounts", []), f"{path}.accounts")
    ]
    return _build(
        path,
        RmdPolicy,
        destination_account=str(_require(data, "destination_account", path)),
        start_age=_int(_optional(data, "start_age", DEFAULT_RMD_START_AGE), f"{path}.start_age"),
        accounts=tuple(accounts),
    )


def _parse_expense_category(data: dict[str, Any], path: str) -> ExpenseCategory:
    type_raw = _optional(data, "inflation_type", InflationType.GENERAL.value)
    try:
        inflation_type = InflationType(type_raw)
    except ValueError:
        expected = ", ".join(t.value for t in InflationType)
        raise SchemaError(
            f"{path}.inflation_type: '{type_raw}' is not valid; expected one of [{expected}]", f"{path}.inflation_type"
        ) from None
    return _build(
        path,
        ExpenseCategory,
        name=str(_require(data, "name", path)),
        monthly_amount=_decimal(_require(data, "monthly_amount", path), f"{path}.monthly_amount"),
        inflation_type=inflation_type,
        inflation_rate=_opt_decimal(data, "inflation_rate", path),
    )


def _parse_precision(data: dict[str, Any], path: str = "precision") -> Precision:
    return _build(
        path,
        Precision,
        digits=_int(_optional(data, "digits", DEFAULT_PRECISION.digits), f"{path}.digits"),
        money_places=_int(_optional(data, "money_places", DEFAULT_PRECISION.money_places), f"{path}.money_places"),
    )


def config_from_dict(data: dict[str, Any]) -> SimulationConfig:
    """Build a :class:`SimulationConfig` from decoded JSON."""
    simulation = _expect_dict(_require(data, "simulation", "config"), "simulation")
    start = _month(_require(simulation, "start_month", "simulation"), "simulation.start_month")
    end = _month(_require(simulation, "end_month", "simulation"), "simulation.end_month")
    person = _parse_person(_expect_dict(_require(data, "person", "config"), "person"))

    accounts = [
        _parse_account(_expect_dict(item, f"accounts[{idx}]"), f"accounts[{idx}]")
        for idx, item in enumerate(_expect_list(_optional(data, "accounts", []), "accounts"))
    ]
    income: list[IncomeSource] = [
        _parse_income(_expect_dict(item, f"income[{idx}]"), f"income[{idx}]")
        for idx, item in enumerate(_expect_list(_optional(data, "income", []), "income"))
    ]
    income.extend(
        _parse_social_security(_expect_dict(item, f"social_security[{idx}]"), person, f"social_security[{idx}]")
        for idx, item in enumerate(_expect_list(_optional(data, "social_security", []), "social_security"))
    )

    contribution_raw = data.get("contribution_plan")
    withdrawal_raw = data.get("withdrawal_policy")
    tax_raw = data.get("tax")
    earnings_raw = data.get("earnings_test")
    rmd_raw = data.get("rmd")
    return _build(
        "config",
        SimulationConfig,
        portfolio=_build("config", Portfolio, accounts=accounts),
        person=person,
        start_month=start,
        end_month=end,
        levers=_parse_levers(_expect_dict(_optional(data, "levers", {}), "levers"), start, end),
        contribution_routing=_parse_routing(data.get("contribution_routing"), "contribution_routing"),
        withdrawal_routing=_parse_routing(data.get("withdrawal_routing"), "withdrawal_routing"),
        contribution_plan=None
        if contribution_raw is None
        else _parse_contribution_plan(_expect_dict(contribution_raw, "contribution_plan")),
        withdrawal_policy=None
        if withdrawal_raw is None
        else _parse_withdrawal_policy(_expect_dict(withdrawal_raw, "withdrawal_policy")),
        income_sources=tuple(income),
        monthly_expenses=_decimal(_optional(data, "monthly_expenses", 0), "monthly_expenses"),
        expense_categories=tuple(
            _parse_expense_category(_expect_dict(item, f"expense_categories[{idx}]"), f"expense_categories[{idx}]")
            for idx, item in enumerate(_expect_list(_optional(data, "expense_categories", []), "expense_categories"))
        ),
        tax_policy=None if tax_raw is None else _parse_tax_policy(_expect_dict(tax_raw, "tax")),
        roth_conversions=tuple(
            _parse_roth(_expect_dict(item, f"roth_conversions[{idx}]"), f"roth_conversions[{idx}]")
            for idx, item in enumerate(_expect_list(_optional(data, "roth_conversions", []), "roth_conversions"))
        ),
        rmd_policy=None if rmd_raw is None else _parse_rmd(_expect_dict(rmd_raw, "rmd")),
        earnings_test=None if earnings_raw is None else _parse_earnings_test(_expect_dict(earnings_raw, "earnings_test")),
        precision=_parse_precision(_expect_dict(_optional(data, "precision", {}), "precision")),
    )


def load_config(path: str | Path) -> SimulationConfig:
    """Load configuration JSON into validated dataclasses."""
    source = Path(path)
    raw = json.loads(source.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise SchemaError("config: root must be a JSON object", "config")
    return config_from_dict(raw)
