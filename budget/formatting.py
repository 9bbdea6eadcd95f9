"""Formatting utilities for currency, percentages and status colours."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from budget.domain import Status

Number = Union[Decimal, float, int]

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "KZT": "₸",
}

CHART_COLORS = [
    "#22c55e",  # green
    "#8b5cf6",  # purple
    "#f59e0b",  # amber
    "#ec4899",  # pink
    "#06b6d4",  # cyan
    "#84cc16",  # lime
    "#f97316",  # orange
    "#6366f1",  # indigo
    "#14b8a6",  # teal
    "#ef4444",  # red
]

STATUS_COLORS = {
    Status.OK: "#22c55e",
    Status.WARNING: "#eab308",
    Status.DANGER: "#f97316",
    Status.OVERSPENT: "#ef4444",
}

_CENT = Decimal("0.01")


def format_currency(amount: Number, currency: str = "USD") -> str:
    """Format an amount with its currency symbol and two decimals.

    Example:
        >>> format_currency(Decimal("1234.5"))
        '$1,234.50'
        >>> format_currency(-20, "EUR")
        '-€20.00'
    """
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percentage(value: Number, decimals: int = 0) -> str:
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{rounded:.{decimals}f}%"


def clamp_percent(value: Number, lower: Number = 0, upper: Number = 100) -> Decimal:
    """Clamp a percent-used figure for display (progress bars etc.)."""
    return max(Decimal(str(lower)), min(Decimal(str(upper)), Decimal(str(value))))


def status_color(status: Status) -> str:
    return STATUS_COLORS.get(Status(status), "#6b7280")


def progress_color(percentage: Number) -> str:
    value = Decimal(str(percentage))
    if value > 100:
        return STATUS_COLORS[Status.OVERSPENT]
    if value > 80:
        return STATUS_COLORS[Status.DANGER]
    if value > 60:
        return STATUS_COLORS[Status.WARNING]
    return STATUS_COLORS[Status.OK]


def category_color(index: int) -> str:
    return CHART_COLORS[index % len(CHART_COLORS)]


def month_label(month: str) -> str:
    """``2025-03`` -> ``Mar 25``."""
    year, mon = (int(part) for part in month.split("-"))
    return date(year, mon, 1).strftime("%b %y")
