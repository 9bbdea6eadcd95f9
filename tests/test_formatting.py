from datetime import date
from decimal import Decimal

from budget.domain import Status
from budget.formatting import (
    STATUS_COLORS,
    category_color,
    clamp_percent,
    format_currency,
    format_percentage,
    month_label,
    progress_color,
)
from budget.periods import add_months, days_in_month, month_end, months_between, week_start


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(-20, "EUR") == "-€20.00"
    assert format_currency(Decimal("0.005")) == "$0.01"
    assert format_currency(5, "chf") == "CHF 5.00"


def test_format_percentage():
    assert format_percentage(Decimal("84.5")) == "85%"
    assert format_percentage(Decimal("33.333"), 1) == "33.3%"


def test_clamp_percent_for_progress_bars():
    assert clamp_percent(Decimal("140")) == 100
    assert clamp_percent(-5) == 0
    assert clamp_percent(Decimal("42.5")) == Decimal("42.5")


def test_colors():
    assert progress_color(100) == STATUS_COLORS[Status.DANGER]
    assert progress_color(Decimal("100.01")) == STATUS_COLORS[Status.OVERSPENT]
    assert progress_color(60) == STATUS_COLORS[Status.OK]
    assert category_color(10) == category_color(0)


def test_month_label():
    assert month_label("2025-03") == "Mar 25"


def test_periods():
    # 2026-10-16 is a Friday
    assert week_start(date(2026, 10, 16)) == date(2026, 10, 11)
    assert week_start(date(2026, 10, 11)) == date(2026, 10, 11)
    assert add_months(date(2026, 1, 31), -1) == date(2025, 12, 1)
    assert add_months(date(2026, 11, 15), 2) == date(2027, 1, 1)
    assert month_end(date(2028, 2, 3)) == date(2028, 2, 29)
    assert days_in_month(date(2026, 2, 1)) == 28
    assert months_between(date(2025, 11, 20), date(2026, 2, 1)) == 3
