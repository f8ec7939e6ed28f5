"""Calendar-month arithmetic used by the payment ledger."""

import calendar
from datetime import date


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping ``day`` to the last valid day of the month.

    >>> clamp_day(2025, 2, 30)
    datetime.date(2025, 2, 28)
    """
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(day, last_day)))


def add_months(d: date, months: int, day: int | None = None) -> date:
    """Shift ``d`` by whole months, keeping (or setting) the day of month.

    The day is clamped, so Jan 31 + 1 month is Feb 28/29.
    """
    index = d.year * 12 + (d.month - 1) + months
    year, month0 = divmod(index, 12)
    return clamp_day(year, month0 + 1, day if day is not None else d.day)


def month_key(d: date) -> str:
    """Billing-period label, e.g. ``"2025-01"``."""
    return f"{d.year:04d}-{d.month:02d}"


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month
