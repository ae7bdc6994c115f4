import copy
import json
from pathlib import Path

from nestegg.config import PersonProfile, SimulationConfig
from nestegg.levers import MarketLevers, SimulationLevers
from nestegg.months import Month
from nestegg.portfolio import Account, Portfolio, TaxTreatment


def write_config(tmp_path: Path, data: dict, filename: str = "config.json") -> Path:
    path = tmp_path / filename
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def clone_config(data: dict) -> dict:
    return copy.deepcopy(data)


def person(retirement: str = "2040-01", birth: str = "1975-01") -> PersonProfile:
    return PersonProfile(name="Pat", birth_month=Month.parse(birth), retirement_month=Month.parse(retirement))


def portfolio(**balances: str) -> Portfolio:
    treatments = {"roth": TaxTreatment.ROTH, "brokerage": TaxTreatment.TAXABLE, "cash": TaxTreatment.CASH}
    return Portfolio(
        accounts=[
            Account(account_id=name, name=name, balance=amount, tax_treatment=treatments.get(name, TaxTreatment.PRE_TAX))
            for name, amount in balances.items()
        ]
    )


def make_config(
    start: str = "2025-01",
    end: str = "2025-12",
    *,
    retirement: str = "2040-01",
    accounts: Portfolio | None = None,
    market: MarketLevers | None = None,
    **kwargs,
) -> SimulationConfig:
    return SimulationConfig(
        portfolio=accounts if accounts is not None else Portfolio(),
        person=person(retirement),
        start_month=Month.parse(start),
        end_month=Month.parse(end),
        levers=SimulationLevers(market=market or MarketLevers.deterministic()),
        **kwargs,
    )
