"""Default federal tax tables, supplied as configuration data."""

from __future__ import annotations

from decimal import Decimal
from typing import Final

BASE_TAX_YEAR: Final[int] = 2026
DEFAULT_BRACKET_INDEXATION: Final[Decimal] = Decimal("0.025")
DEFAULT_SOCIAL_SECURITY_TAXABLE_FRACTION: Final[Decimal] = Decimal("0.85")

FILING_STATUSES: Final[tuple[str, ...]] = (
    "single",
    "married_filing_jointly",
    "married_filing_separately",
    "head_of_household",
)

# (annual upper bound, marginal rate); an upper bound of None is open-ended.
_SINGLE = (
    ("12400", "0.10"),
    ("50400", "0.12"),
    ("105700", "0.22"),
    ("201775", "0.24"),
    ("256225", "0.32"),
    ("640600", "0.35"),
    (None, "0.37"),
)

FEDERAL_BRACKETS: Final[dict[str, tuple[tuple[str | None, str], ...]]] = {
    "single": _SINGLE,
    "married_filing_jointly": (
        ("24800", "0.10"),
        ("100800", "0.12"),
        ("211400", "0.22"),
        ("403550", "0.24"),
        ("512450", "0.32"),
        ("768700", "0.35"),
        (None, "0.37"),
    ),
    "married_filing_separately": (
        ("12400", "0.10"),
        ("50400", "0.12"),
        ("105700", "0.22"),
        ("201775", "0.24"),
        ("256225", "0.32"),
        ("384350", "0.35"),
        (None, "0.37"),
    ),
    "head_of_household": (
        ("17700", "0.10"),
        ("67450", "0.12"),
        ("105700", "0.22"),
        ("201750", "0.24"),
        ("256200", "0.32"),
        ("640600", "0.35"),
        (None, "0.37"),
    ),
}

STANDARD_DEDUCTIONS: Final[dict[str, str]] = {
    "single": "16100",
    "married_filing_jointly": "32200",
    "married_filing_separately": "16100",
    "head_of_household": "24150",
}
