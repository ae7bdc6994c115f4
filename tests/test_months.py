from datetime import date

import pytest

from nestegg.errors import ValidationError
from nestegg.months import Month


def test_parse_and_format():
    month = Month.parse("2031-04")
    assert month == Month(2031, 4)
    assert str(month) == "2031-04"
    assert month.first_day == date(2031, 4, 1)


def test_arithmetic_crosses_years():
    assert Month(2025, 11).plus(3) == Month(2026, 2)
    assert Month(2025, 1).plus(-1) == Month(2024, 12)
    assert Month(2025, 1).months_until(Month(2026, 3)) == 14
    assert Month(2026, 3).months_until(Month(2025, 1)) == -14


def test_ordering():
    assert Month(2024, 12) < Month(2025, 1)
    assert sorted([Month(2025, 3), Month(2024, 7)]) == [Month(2024, 7), Month(2025, 3)]


@pytest.mark.parametrize("value", ["2025-13", "2025", "June 2025", ""])
def test_parse_rejects_bad_values(value):
    with pytest.raises(ValidationError):
        Month.parse(value)


def test_month_out_of_range():
    with pytest.raises(ValidationError):
        Month(2025, 0)
