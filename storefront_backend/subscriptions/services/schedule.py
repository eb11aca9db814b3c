"""
PATH: subscriptions/services/schedule.py

Next-order date arithmetic.

Month-based steps clamp to the last day of the target month
(Jan 31 + 1 month -> Feb 28/29) instead of rolling into the next month.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta


def add_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_order_date(current: date, frequency: str, interval: int = 1) -> date:
    interval = max(int(interval or 1), 1)

    if frequency == "weekly":
        return current + timedelta(days=7 * interval)
    if frequency == "biweekly":
        return current + timedelta(days=14 * interval)
    if frequency == "monthly":
        return add_months(current, interval)
    if frequency == "quarterly":
        return add_months(current, 3 * interval)
    if frequency == "yearly":
        return add_months(current, 12 * interval)
    return current + timedelta(days=30 * interval)
