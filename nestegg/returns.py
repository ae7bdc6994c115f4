"""Per-run source of monthly market returns."""

from __future__ import annotations

import logging
import math
import random
from decimal import Decimal
from typing import Callable

from .errors import HistoricalDataExhaustedError
from .levers import MarketLevers, SimulationMode
from .money import DEFAULT_PRECISION, Precision, compound_annual_to_monthly
from .months import MONTHS_PER_YEAR

logger = logging.getLogger(__name__)

MONTHLY_RETURN_FLOOR = -0.95


class ReturnSource:
    """Yields one monthly rate per call to :meth:`next_rate`.

    Owns its own ``random.Random`` so that two sources built from the same
    levers produce the same sequence.
    """

    def __init__(self, market: MarketLevers, precision: Precision = DEFAULT_PRECISION) -> None:
        self.market = market
        self.precision = precision
        self.seed = market.seed
        if market.mode.is_stochastic and self.seed is None:
            self.seed = random.SystemRandom().randrange(2**32)
            logger.info("no seed supplied for Monte Carlo run; using %d", self.seed)
        self._rng = random.Random(self.seed)
        self._position = 0
        self._mean = compound_annual_to_monthly(market.expected_return, precision)

    def next_rate(self) -> Decimal:
        rate = _STRATEGIES[self.market.mode](self)
        self._position += 1
        return rate

    def _deterministic(self) -> Decimal:
        return self._mean

    def _monte_carlo(self) -> Decimal:
        sigma = float(self.market.return_std_dev) / math.sqrt(MONTHS_PER_YEAR)
        sample = max(MONTHLY_RETURN_FLOOR, self._rng.gauss(float(self._mean), sigma))
        return self.precision.context().create_decimal_from_float(sample)

    def _historical(self) -> Decimal:
        sequence = self.market.historical_returns
        if self._position >= len(sequence):
            raise HistoricalDataExhaustedError(
                f"historical return sequence exhausted after {len(sequence)} months"
            )
        return sequence[self._position]


_STRATEGIES: dict[SimulationMode, Callable[[ReturnSource], Decimal]] = {
    SimulationMode.DETERMINISTIC: ReturnSource._deterministic,
    SimulationMode.MONTE_CARLO: ReturnSource._monte_carlo,
    SimulationMode.HISTORICAL: ReturnSource._historical,
}
