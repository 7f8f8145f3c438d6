from datetime import date
from decimal import Decimal

import pytest

from errors import ValidationError
from money import from_cents, to_cents
from periods import add_months, month_end, resolve_trend_period, week_start
from services import percent_change, savings_rate


def test_week_starts_on_sunday() -> None:
    assert week_start(date(2024, 1, 7)) == date(2024, 1, 7)
    assert week_start(date(2024, 1, 13)) == date(2024, 1, 7)
    assert week_start(date(2024, 1, 1)) == date(2023, 12, 31)


def test_month_arithmetic_crosses_years() -> None:
    assert add_months(date(2024, 1, 31), -1) == date(2023, 12, 1)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 1)
    assert month_end(date(2024, 2, 3)) == date(2024, 2, 29)
    assert month_end(date(2023, 12, 3)) == date(2023, 12, 31)


def test_trend_windows() -> None:
    today = date(2024, 5, 15)

    assert resolve_trend_period("month", today=today).end == date(2024, 5, 31)
    assert resolve_trend_period("year", today=today).start == date(2024, 1, 1)
    with pytest.raises(ValidationError):
        resolve_trend_period(None, today=today)


def test_money_conversion_rounds_half_up() -> None:
    assert to_cents(Decimal("45.99")) == 4599
    assert to_cents("0.005") == 1
    assert from_cents(329851) == 3298.51
    with pytest.raises(ValueError):
        to_cents("abc")


def test_ratios_guard_against_zero_denominators() -> None:
    assert percent_change(500, 0) == 0
    assert percent_change(300, 200) == pytest.approx(50.0)
    assert savings_rate(0, 100) == 0
    assert savings_rate(100, 150) == pytest.approx(-50.0)
