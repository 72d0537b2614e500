"""Calendar bucketing for expense records.

Every dated record falls into exactly one bucket per granularity:

* day   - key ``YYYY-MM-DD``
* week  - Monday-anchored, key is the Monday ``YYYY-MM-DD``
* month - key ``YYYY-MM``, labelled with the full month name
* year  - key ``YYYY``

Records without a usable date are returned separately in
``BucketSet.excluded`` so callers can report them.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .ingestion import expenses_frame
from .models import Bucket, BucketSet, ExpenseRecord, Granularity, Period

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
]
WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

RANGE_KEYS = ('7d', '1m', '3m', '1y', 'all')


def _display(day: date) -> str:
    return day.strftime('%d/%m/%Y')


def week_start(day: date) -> date:
    """Monday on or before ``day``."""
    return day - timedelta(days=day.weekday())


def period_for(day: date, granularity) -> Period:
    """Return the period of ``granularity`` containing ``day``."""
    granularity = Granularity.parse(granularity)
    if granularity is Granularity.DAY:
        return Period(granularity, day.isoformat(), _display(day), day, day)
    if granularity is Granularity.WEEK:
        start = week_start(day)
        end = start + timedelta(days=6)
        return Period(granularity, start.isoformat(), f"{_display(start)} - {_display(end)}", start, end)
    if granularity is Granularity.MONTH:
        last_day = calendar.monthrange(day.year, day.month)[1]
        return Period(
            granularity,
            f"{day.year}-{day.month:02d}",
            f"{MONTH_NAMES[day.month - 1]} {day.year}",
            date(day.year, day.month, 1),
            date(day.year, day.month, last_day),
        )
    return Period(granularity, str(day.year), str(day.year), date(day.year, 1, 1), date(day.year, 12, 31))


def month_period(year: int, month: int) -> Period:
    return period_for(date(year, month, 1), Granularity.MONTH)


def previous_period(period: Period) -> Period:
    """The immediately preceding period of the same granularity."""
    if period.granularity is Granularity.MONTH:
        return period_for(period.start - timedelta(days=1), Granularity.MONTH)
    if period.granularity is Granularity.YEAR:
        return period_for(date(period.start.year - 1, 1, 1), Granularity.YEAR)
    return period_for(period.start - timedelta(days=1), period.granularity)


def current_week(as_of: date) -> Period:
    """The "current week" view.

    When ``as_of`` is itself a Monday the week starts that same day,
    otherwise on the most recent Monday.
    """
    return period_for(as_of, Granularity.WEEK)


def _period_keys(df: pd.DataFrame, granularity: Granularity) -> pd.Series:
    dates = df['date']
    if granularity is Granularity.DAY:
        return dates.dt.strftime('%Y-%m-%d')
    if granularity is Granularity.WEEK:
        monday = dates - pd.to_timedelta(dates.dt.weekday, unit='D')
        return monday.dt.strftime('%Y-%m-%d')
    if granularity is Granularity.MONTH:
        return dates.dt.strftime('%Y-%m')
    return dates.dt.year.astype(int).astype(str)


def bucket_expenses(expenses: Sequence[ExpenseRecord], granularity) -> BucketSet:
    """Partition ``expenses`` into calendar buckets.

    Buckets come back in ascending key order and keep the input order of
    their records.
    """
    granularity = Granularity.parse(granularity)
    expenses = tuple(expenses)
    excluded = tuple(e for e in expenses if e.date is None)
    if excluded:
        logger.warning("%d expenses without a usable date left out of %s buckets",
                       len(excluded), granularity.value)

    df = expenses_frame(expenses)
    df = df.dropna(subset=['date']).copy()
    if df.empty:
        return BucketSet(granularity, (), excluded)

    df['key'] = _period_keys(df, granularity)
    buckets: List[Bucket] = []
    for key, group in df.groupby('key', sort=True):
        members = tuple(expenses[int(i)] for i in sorted(group['position']))
        buckets.append(Bucket(period_for(members[0].date, granularity), members))
    return BucketSet(granularity, tuple(buckets), excluded)


def expenses_in_period(expenses: Sequence[ExpenseRecord], period: Period) -> List[ExpenseRecord]:
    return [e for e in expenses if e.date is not None and period.contains(e.date)]


def filter_by_dates(
    expenses: Sequence[ExpenseRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[ExpenseRecord]:
    """Inclusive date filter; undated records only survive when no bound is set."""
    if start is None and end is None:
        return list(expenses)
    result = []
    for expense in expenses:
        if expense.date is None:
            continue
        if start is not None and expense.date < start:
            continue
        if end is not None and expense.date > end:
            continue
        result.append(expense)
    return result


def range_cutoff(range_key: str, as_of: date) -> Optional[date]:
    """First day included by a range selector (``None`` for ``all``)."""
    if range_key not in RANGE_KEYS:
        raise ValueError(f"Unknown range '{range_key}'")
    anchor = pd.Timestamp(as_of)
    if range_key == '7d':
        return as_of - timedelta(days=7)
    if range_key == '1m':
        return (anchor - pd.DateOffset(months=1)).date()
    if range_key == '3m':
        return (anchor - pd.DateOffset(months=3)).date()
    if range_key == '1y':
        return (anchor - pd.DateOffset(years=1)).date()
    return None


def filter_by_range(expenses: Sequence[ExpenseRecord], range_key: str, as_of: date) -> List[ExpenseRecord]:
    """Keep expenses dated on or after the cutoff of ``range_key``."""
    cutoff = range_cutoff(range_key, as_of)
    return filter_by_dates(expenses, start=cutoff)


SHORTCUT_RANGES = ('this_month', 'last_month', 'last_3_months', 'this_year')


def shortcut_range(shortcut: str, as_of: date) -> Tuple[date, date]:
    """Inclusive ``(start, end)`` for the expense list date shortcuts.

    ``last_3_months`` runs from the first day of the month three months
    back to the last day of the current month.
    """
    if shortcut not in SHORTCUT_RANGES:
        raise ValueError(f"Unknown date shortcut '{shortcut}'")
    this_month = period_for(as_of, Granularity.MONTH)
    if shortcut == 'this_month':
        return this_month.start, this_month.end
    if shortcut == 'last_month':
        last_month = previous_period(this_month)
        return last_month.start, last_month.end
    if shortcut == 'last_3_months':
        start = (pd.Timestamp(this_month.start) - pd.DateOffset(months=3)).date()
        return start, this_month.end
    return date(as_of.year, 1, 1), date(as_of.year, 12, 31)
