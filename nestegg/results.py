"""Month-level results produced by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Iterator, Mapping, overload

from .errors import InvalidDateRangeError, ValidationError
from .income import MonthlyIncome
from .levers import SimulationPhase
from .money import ZERO
from .months import Month
from .routing import Disbursement
from .tax import TaxSummary


@dataclass(frozen=True, slots=True)
class AccountFlow:
    account_id: str
    starting_balance: Decimal
    contributions: Decimal = ZERO
    withdrawals: Decimal = ZERO
    conversions_in: Decimal = ZERO
    conversions_out: Decimal = ZERO
    rmd_in: Decimal = ZERO
    rmd_out: Decimal = ZERO
    returns: Decimal = ZERO
    ending_balance: Decimal = ZERO

    @property
    def net_flow(self) -> Decimal:
        return (
            self.contributions
            - self.withdrawals
            + self.conversions_in
            - self.conversions_out
            + self.rmd_in
            - self.rmd_out
        )


@dataclass(frozen=True, slots=True)
class MonthlySnapshot:
    month: Month
    phase: SimulationPhase
    account_flows: Mapping[str, AccountFlow]
    income: MonthlyIncome = field(default_factory=MonthlyIncome.zero)
    expenses: Decimal = ZERO
    taxes: TaxSummary = field(default_factory=TaxSummary.empty)
    contribution_disbursements: tuple[Disbursement, ...] = ()
    withdrawal_disbursements: tuple[Disbursement, ...] = ()
    personal_contribution: Decimal = ZERO
    employer_contribution: Decimal = ZERO
    requested_withdrawal: Decimal = ZERO
    unfunded_withdrawal: Decimal = ZERO
    roth_conversion: Decimal = ZERO
    required_distribution: Decimal = ZERO
    monthly_return_rate: Decimal = ZERO
    cumulative_contributions: Decimal = ZERO
    cumulative_withdrawals: Decimal = ZERO
    events: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "account_flows", MappingProxyType(dict(self.account_flows)))
        object.__setattr__(self, "contribution_disbursements", tuple(self.contribution_disbursements))
        object.__setattr__(self, "withdrawal_disbursements", tuple(self.withdrawal_disbursements))
        object.__setattr__(self, "events", tuple(self.events))

    @property
    def starting_balance(self) -> Decimal:
        return sum((f.starting_balance for f in self.account_flows.values()), ZERO)

    @property
    def total_balance(self) -> Decimal:
        return sum((f.ending_balance for f in self.account_flows.values()), ZERO)

    @property
    def total_contributions(self) -> Decimal:
        return self.personal_contribution + self.employer_contribution

    @property
    def total_withdrawals(self) -> Decimal:
        return sum((d.amount for d in self.withdrawal_disbursements), ZERO)

    @property
    def investment_return(self) -> Decimal:
        return sum((f.returns for f in self.account_flows.values()), ZERO)

    @property
    def is_depleted(self) -> bool:
        return self.unfunded_withdrawal > 0

    def balances(self) -> dict[str, Decimal]:
        return {account_id: f.ending_balance for account_id, f in self.account_flows.items()}

    def balance_of(self, account_id: str) -> Decimal:
        return self.account_flows[account_id].ending_balance


class TimeSeries:
    """Read-only, chronologically ordered snapshots indexed by month."""

    __slots__ = ("_snapshots", "_by_month")

    def __init__(self, snapshots: tuple[MonthlySnapshot, ...] = ()) -> None:
        self._snapshots = tuple(snapshots)
        self._by_month = {s.month: i for i, s in enumerate(self._snapshots)}

    def __len__(self) -> int:
        return len(self._snapshots)

    def size(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[MonthlySnapshot]:
        return iter(self._snapshots)

    @overload
    def __getitem__(self, index: int) -> MonthlySnapshot: ...

    @overload
    def __getitem__(self, index: slice) -> "TimeSeries": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return TimeSeries(self._snapshots[index])
        return self._snapshots[index]

    def __contains__(self, month: object) -> bool:
        return month in self._by_month

    def __repr__(self) -> str:
        if not self._snapshots:
            return "TimeSeries([])"
        return f"TimeSeries({self.first.month}..{self.last.month}, {len(self)} months)"

    @property
    def first(self) -> MonthlySnapshot | None:
        return self._snapshots[0] if self._snapshots else None

    @property
    def last(self) -> MonthlySnapshot | None:
        return self._snapshots[-1] if self._snapshots else None

    def snapshots(self) -> list[MonthlySnapshot]:
        return list(self._snapshots)

    def months(self) -> list[Month]:
        return [s.month for s in self._snapshots]

    def snapshot(self, month: Month) -> MonthlySnapshot:
        try:
            return self._snapshots[self._by_month[month]]
        except KeyError:
            raise KeyError(f"no snapshot for {month}") from None

    def window(self, start: Month, end: Month) -> "TimeSeries":
        """Snapshots with ``start <= month <= end``."""
        if start > end:
            raise InvalidDateRangeError.must_not_be_after("start", "end", start, end)
        return TimeSeries(tuple(s for s in self._snapshots if start <= s.month <= end))

    def for_year(self, year: int) -> "TimeSeries":
        return TimeSeries(tuple(s for s in self._snapshots if s.month.year == year))

    def years(self) -> list[int]:
        out: list[int] = []
        for s in self._snapshots:
            if not out or out[-1] != s.month.year:
                out.append(s.month.year)
        return out


class TimeSeriesBuilder:
    def __init__(self) -> None:
        self._snapshots: list[MonthlySnapshot] = []

    def __len__(self) -> int:
        return len(self._snapshots)

    def append(self, snapshot: MonthlySnapshot) -> None:
        if self._snapshots:
            previous = self._snapshots[-1].month
            if snapshot.month == previous:
                raise ValidationError(f"duplicate snapshot for {snapshot.month}", "month")
            if snapshot.month < previous:
                raise ValidationError(f"snapshot for {snapshot.month} is out of order (after {previous})", "month")
        self._snapshots.append(snapshot)

    def build(self) -> TimeSeries:
        return TimeSeries(tuple(self._snapshots))
