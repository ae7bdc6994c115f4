"""Calendar month value used as the simulation's time index."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from .errors import ValidationError

MONTHS_PER_YEAR = 12


@dataclass(frozen=True, slots=True, order=True)
class Month:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= MONTHS_PER_YEAR:
            raise ValidationError(f"month must be between 1 and 12 (got {self.month})", "month")

    @classmethod
    def parse(cls, value: str) -> "Month":
        try:
            dt = datetime.strptime(value, "%Y-%m")
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"invalid month {value!r}: expected YYYY-MM", "month") from exc
        return cls(dt.year, dt.month)

    @classmethod
    def from_index(cls, index: int) -> "Month":
        year, offset = divmod(index, MONTHS_PER_YEAR)
        return cls(year, offset + 1)

    @property
    def index(self) -> int:
        return self.year * MONTHS_PER_YEAR + (self.month - 1)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def plus(self, months: int) -> "Month":
        return Month.from_index(self.index + months)

    def months_until(self, other: "Month") -> int:
        """Signed number of months from this month to ``other``."""
        return other.index - self.index

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

