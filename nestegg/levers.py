"""Market and economic assumptions selected once per simulation."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable

from .errors import MissingRequiredFieldError, ValidationError
from .money import Number, to_decimal

DEFAULT_EXPECTED_RETURN = Decimal("0.07")
DEFAULT_RETURN_STD_DEV = Decimal("0.15")
DEFAULT_INFLATION_RATE = Decimal("0.025")


class SimulationPhase(str, Enum):
    ACCUMULATION = "accumulation"
    DISTRIBUTION = "distribution"


class SimulationMode(str, Enum):
    DETERMINISTIC = "deterministic"
    MONTE_CARLO = "monte_carlo"
    HISTORICAL = "historical"

    @property
    def is_stochastic(self) -> bool:
        return self is SimulationMode.MONTE_CARLO


@dataclass(frozen=True, slots=True)
class MarketLevers:
    """Where monthly returns come from.

    ``historical_returns`` holds monthly rates, consumed in order.
    """

    mode: SimulationMode = SimulationMode.DETERMINISTIC
    expected_return: Decimal = DEFAULT_EXPECTED_RETURN
    return_std_dev: Decimal = DEFAULT_RETURN_STD_DEV
    historical_returns: tuple[Decimal, ...] = ()
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.mode is None:
            raise MissingRequiredFieldError("mode")
        object.__setattr__(self, "mode", SimulationMode(self.mode))
        object.__setattr__(self, "expected_return", to_decimal(self.expected_return))
        object.__setattr__(self, "return_std_dev", to_decimal(self.return_std_dev))
        object.__setattr__(self, "historical_returns", tuple(to_decimal(r) for r in self.historical_returns))
        if self.expected_return <= -1:
            raise ValidationError(
                f"expected_return must be greater than -100% (got {self.expected_return})", "expected_return"
            )
        if self.return_std_dev < 0:
            raise ValidationError(
                f"return_std_dev cannot be negative (got {self.return_std_dev})", "return_std_dev"
            )
        if self.mode is SimulationMode.HISTORICAL and not self.historical_returns:
            raise ValidationError("historical mode requires a non-empty return sequence", "historical_returns")

    @classmethod
    def deterministic(cls, expected_return: Number = DEFAULT_EXPECTED_RETURN) -> "MarketLevers":
        return cls(SimulationMode.DETERMINISTIC, expected_return=to_decimal(expected_return))

    @classmethod
    def monte_carlo(
        cls,
        expected_return: Number = DEFAULT_EXPECTED_RETURN,
        return_std_dev: Number = DEFAULT_RETURN_STD_DEV,
        seed: int | None = None,
    ) -> "MarketLevers":
        return cls(
            SimulationMode.MONTE_CARLO,
            expected_return=to_decimal(expected_return),
            return_std_dev=to_decimal(return_std_dev),
            seed=seed,
        )

    @classmethod
    def historical(cls, monthly_returns: Iterable[Number]) -> "MarketLevers":
        return cls(SimulationMode.HISTORICAL, historical_returns=tuple(to_decimal(r) for r in monthly_returns))

    def with_seed(self, seed: int) -> "MarketLevers":
        return MarketLevers(
            mode=self.mode,
            expected_return=self.expected_return,
            return_std_dev=self.return_std_dev,
            historical_returns=self.historical_returns,
            seed=seed,
        )


@dataclass(frozen=True, slots=True)
class EconomicLevers:
    inflation_rate: Decimal = DEFAULT_INFLATION_RATE

    def __post_init__(self) -> None:
        rate = to_decimal(self.inflation_rate)
        if rate <= -1:
            raise ValidationError(f"inflation_rate must be greater than -100% (got {rate})", "inflation_rate")
        object.__setattr__(self, "inflation_rate", rate)


@dataclass(frozen=True, slots=True)
class SimulationLevers:
    market: MarketLevers = field(default_factory=MarketLevers)
    economic: EconomicLevers = field(default_factory=EconomicLevers)

    @property
    def mode(self) -> SimulationMode:
        return self.market.mode
