"""Exception hierarchy shared by every nestegg module."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, TypeVar

T = TypeVar("T")


class NestEggError(Exception):
    """Base class for all nestegg failures."""


class ConfigurationError(NestEggError):
    """Raised when a simulation cannot be configured or started."""


class ValidationError(ConfigurationError, ValueError):
    """Raised when a supplied value fails a domain rule."""

    def __init__(self, message: str, field_name: str | None = None) -> None:
        super().__init__(message)
        self.field_name = field_name


class MissingRequiredFieldError(ValidationError):
    def __init__(self, field_name: str, message: str | None = None) -> None:
        super().__init__(message or f"{field_name} is required", field_name)


class InvalidAllocationError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, "allocation")

    @classmethod
    def invalid_sum(cls, total: Decimal) -> "InvalidAllocationError":
        percent = (total * 100).quantize(Decimal("0.01"))
        return cls(f"Routing percentages must sum to 100% (got {percent}%)")


class InvalidDateRangeError(ValidationError):
    @classmethod
    def must_not_be_after(cls, earlier_name: str, later_name: str, earlier: Any, later: Any) -> "InvalidDateRangeError":
        return cls(
            f"{earlier_name} ({earlier}) cannot be after {later_name} ({later})",
            earlier_name,
        )


class CalculationError(NestEggError, ArithmeticError):
    """Raised when a derived computation reaches an invalid state mid-run."""


class HistoricalDataExhaustedError(CalculationError):
    pass


def require(value: T | None, field_name: str) -> T:
    if value is None:
        raise MissingRequiredFieldError(field_name)
    return value
