# api/invoice_pro/calculate_due_date.py
import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union

from .errors import ConfigurationError

DateLike = Union[date, datetime]

RECURRING_FREQUENCIES = ("weekly", "biweekly", "monthly", "quarterly", "yearly")


def as_date(d: DateLike) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(d, datetime):
        return d.date()
    return d


def day_difference(later: DateLike, earlier: DateLike) -> int:
    """Signed whole-day count from `earlier` to `later`. Time of day is ignored."""
    return (as_date(later) - as_date(earlier)).days


def end_of_next_month(d: date) -> date:
    y = d.year + (1 if d.month == 12 else 0)
    m = 1 if d.month == 12 else d.month + 1
    return date(y, m, calendar.monthrange(y, m)[1])


def add_months(d: date, months: int) -> date:
    idx = d.month - 1 + months
    y = d.year + idx // 12
    m = idx % 12 + 1
    # clamp e.g. Jan 31 + 1 month to Feb 28/29
    day = min(d.day, calendar.monthrange(y, m)[1])
    return date(y, m, day)


def compute_due_date(issue: DateLike, terms_type: Optional[str], terms_days: Optional[int]) -> date:
    """Return the due date based on terms."""
    issue = as_date(issue)
    if terms_type == "net_30":
        return issue + timedelta(days=30)
    if terms_type == "net_60":
        return issue + timedelta(days=60)
    if terms_type == "month_following":
        return end_of_next_month(issue)
    if terms_type == "custom" and terms_days:
        return issue + timedelta(days=int(terms_days))
    # sensible default
    return issue + timedelta(days=30)


def next_recurring_date(from_date: DateLike, frequency: str) -> date:
    d = as_date(from_date)
    if frequency == "weekly":
        return d + timedelta(days=7)
    if frequency == "biweekly":
        return d + timedelta(days=14)
    if frequency == "monthly":
        return add_months(d, 1)
    if frequency == "quarterly":
        return add_months(d, 3)
    if frequency == "yearly":
        return add_months(d, 12)
    raise ConfigurationError(f"Unknown recurring frequency: {frequency!r}")
