"""Number, currency and date formatting shared by pricing and proposal prose."""

import math
from datetime import datetime
from typing import Union

Number = Union[int, float]


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, halves toward positive infinity.

    Python's round() uses banker's rounding; proposal prices must round
    2.5 -> 3 and -2.5 -> -2 so repeated runs and older records agree.
    """
    return int(math.floor(value + 0.5))


def format_currency(amount: Number) -> str:
    """Format a dollar amount as en-US currency with no decimals ($12,345)."""
    whole = round_half_up(abs(amount))
    sign = "-" if amount < 0 and whole else ""
    return f"{sign}${whole:,.0f}"


def format_number(value: Number) -> str:
    """Render a measurement without a trailing '.0' (1.0 -> '1', 1.25 -> '1.25')."""
    return f"{value:g}"


def format_event_date(value: datetime) -> str:
    """Short US date (6/15/2026) used in damage narratives."""
    return f"{value.month}/{value.day}/{value.year}"
