"""Spending aggregation and report builders.

All functions here are pure: they take sequences of
:class:`~expense_dashboard.models.ExpenseRecord` and return new derived
values.  Totals, counts and category breakdowns are computed with pandas
group-bys; percentages and averages are guarded so that an empty period
or a zero total yields ``0`` (or ``None`` for comparisons) rather than
NaN or infinity.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from . import config
from .bucketing import (
    MONTH_NAMES,
    WEEKDAY_NAMES,
    bucket_expenses,
    current_week,
    expenses_in_period,
    filter_by_dates,
    month_period,
    previous_period,
    range_cutoff,
)
from .ingestion import expenses_frame
from .models import (
    AggregatedPeriod,
    Bucket,
    BucketSet,
    CategoryBreakdown,
    ExpenseRecord,
    Granularity,
    Period,
)

SMALL_PURCHASE_THRESHOLD = 10
SMALL_PURCHASE_MIN_COUNT = 10
SMALL_PURCHASE_MIN_TOTAL = 30

SORT_FIELDS = ('amount', 'category', 'date')


# ---------------------------------------------------------------------------
# Core aggregation
# ---------------------------------------------------------------------------


def total_amount(expenses: Sequence[ExpenseRecord]) -> float:
    if not expenses:
        return 0.0
    return float(np.sum([e.amount for e in expenses]))


def percentage_change(current: float, previous: float) -> Optional[float]:
    """Percent change against ``previous``; ``None`` when there is no base."""
    if previous is None or previous <= 0:
        return None
    return (current - previous) / previous * 100


def category_breakdown(expenses: Sequence[ExpenseRecord]) -> List[CategoryBreakdown]:
    """Per-category totals sorted by total (desc) then name (asc)."""
    df = expenses_frame(expenses)
    if df.empty:
        return []
    total = float(df['amount'].sum())
    grouped = (
        df.groupby('category')['amount']
        .agg(total='sum', items='count')
        .reset_index()
        .sort_values(['total', 'category'], ascending=[False, True])
    )
    breakdown = []
    for row in grouped.itertuples(index=False):
        category_total = float(row.total)
        breakdown.append(CategoryBreakdown(
            name=str(row.category),
            total=category_total,
            count=int(row.items),
            percentage=(category_total / total * 100) if total > 0 else 0.0,
        ))
    return breakdown


def aggregate(
    expenses: Sequence[ExpenseRecord],
    previous: Optional[Sequence[ExpenseRecord]] = None,
    *,
    period: Optional[Period] = None,
    days_in_period: Optional[int] = None,
) -> AggregatedPeriod:
    """Summarize one bucket, optionally against the preceding bucket."""
    days = days_in_period or (period.days if period is not None else 1)
    total = total_amount(expenses)
    comparison = None
    if previous is not None:
        comparison = percentage_change(total, total_amount(previous))
    return AggregatedPeriod(
        total=total,
        count=len(expenses),
        average_per_day=total / days if days > 0 else 0.0,
        categories=tuple(category_breakdown(expenses)),
        comparison_to_previous=comparison,
    )


def aggregate_buckets(bucket_set: BucketSet) -> List[Tuple[Bucket, AggregatedPeriod]]:
    """Aggregate every bucket against the bucket of the preceding period."""
    results = []
    for bucket in bucket_set:
        prior = bucket_set.get(previous_period(bucket.period).key)
        results.append((
            bucket,
            aggregate(bucket.expenses, prior.expenses if prior is not None else (), period=bucket.period),
        ))
    return results


# ---------------------------------------------------------------------------
# Business-expense exclusion
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExclusionReport:
    all: AggregatedPeriod
    excluding: AggregatedPeriod
    excluded_category: str


def exclude_category(expenses: Sequence[ExpenseRecord], category: Optional[str] = None) -> List[ExpenseRecord]:
    """Drop records whose category name equals ``category``."""
    category = category or config.BUSINESS_CATEGORY
    return [e for e in expenses if e.category_name != category]


def aggregate_with_exclusion(
    current: Sequence[ExpenseRecord],
    previous: Optional[Sequence[ExpenseRecord]] = None,
    *,
    period: Optional[Period] = None,
    excluded_category: Optional[str] = None,
) -> ExclusionReport:
    excluded_category = excluded_category or config.BUSINESS_CATEGORY
    return ExclusionReport(
        all=aggregate(current, previous, period=period),
        excluding=aggregate(
            exclude_category(current, excluded_category),
            exclude_category(previous, excluded_category) if previous is not None else None,
            period=period,
        ),
        excluded_category=excluded_category,
    )


# ---------------------------------------------------------------------------
# Small purchases
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SmallPurchases:
    count: int
    total: float
    is_pattern: bool


def small_purchases(expenses: Sequence[ExpenseRecord], threshold: float = SMALL_PURCHASE_THRESHOLD) -> SmallPurchases:
    """Count and sum purchases strictly below ``threshold``."""
    small = [e for e in expenses if e.amount < threshold]
    total = total_amount(small)
    return SmallPurchases(
        count=len(small),
        total=total,
        is_pattern=len(small) > SMALL_PURCHASE_MIN_COUNT and total > SMALL_PURCHASE_MIN_TOTAL,
    )


# ---------------------------------------------------------------------------
# Report builders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DailySum:
    day: int
    date: date
    amount: float


def daily_sums(expenses: Sequence[ExpenseRecord], year: int, month: int) -> List[DailySum]:
    """Per-day totals for the days of a month that have expenses."""
    in_month = expenses_in_period(expenses, month_period(year, month))
    df = expenses_frame(in_month)
    if df.empty:
        return []
    per_day = df.groupby(df['date'].dt.date)['amount'].sum().sort_index()
    return [DailySum(day=d.day, date=d, amount=float(amount)) for d, amount in per_day.items()]


def monthly_totals(expenses: Sequence[ExpenseRecord]) -> Dict[str, float]:
    """``YYYY-MM`` -> total, oldest month first."""
    return {bucket.key: total_amount(bucket.expenses) for bucket in bucket_expenses(expenses, Granularity.MONTH)}


@dataclass(frozen=True)
class MonthSummary:
    period: Period
    aggregated: AggregatedPeriod
    expenses: Tuple[ExpenseRecord, ...]


def monthly_overview(expenses: Sequence[ExpenseRecord]) -> Dict[str, MonthSummary]:
    """Every month with expenses, most recent first."""
    overview = {}
    for bucket, aggregated in reversed(aggregate_buckets(bucket_expenses(expenses, Granularity.MONTH))):
        overview[bucket.key] = MonthSummary(bucket.period, aggregated, bucket.expenses)
    return overview


def monthly_overview_in_range(
    expenses: Sequence[ExpenseRecord],
    range_key: str,
    as_of: date,
) -> Dict[str, MonthSummary]:
    """Months reaching into the ``range_key`` window, most recent first.

    Comparisons are computed from the full history, so the oldest month
    shown still compares against its complete predecessor.
    """
    cutoff = range_cutoff(range_key, as_of)
    overview = monthly_overview(expenses)
    if cutoff is None:
        return overview
    return {key: summary for key, summary in overview.items() if summary.period.end >= cutoff}


@dataclass(frozen=True)
class MonthTopCategories:
    month: int
    label: str
    total: float
    top: Tuple[CategoryBreakdown, ...]


def year_overview(expenses: Sequence[ExpenseRecord], year: int, top_n: int = 3) -> List[MonthTopCategories]:
    """Twelve rows for ``year`` with the largest categories of each month."""
    rows = []
    for month in range(1, 13):
        in_month = expenses_in_period(expenses, month_period(year, month))
        rows.append(MonthTopCategories(
            month=month,
            label=MONTH_NAMES[month - 1][:3],
            total=total_amount(in_month),
            top=tuple(category_breakdown(in_month)[:top_n]),
        ))
    return rows


@dataclass(frozen=True)
class DayComparison:
    weekday: str
    date: date
    previous_date: date
    current: float
    previous: float
    current_excluding: float
    previous_excluding: float


@dataclass(frozen=True)
class CategoryExpenses:
    name: str
    amount: float
    percentage: float
    expenses: Tuple[ExpenseRecord, ...]


@dataclass(frozen=True)
class WeekComparison:
    period: Period
    previous_period: Period
    days: Tuple[DayComparison, ...]
    total: float
    previous_total: float
    total_excluding: float
    previous_total_excluding: float
    categories: Tuple[CategoryExpenses, ...]
    categories_excluding: Tuple[CategoryExpenses, ...]

    @property
    def comparison(self) -> Optional[float]:
        return percentage_change(self.total, self.previous_total)

    @property
    def comparison_excluding(self) -> Optional[float]:
        return percentage_change(self.total_excluding, self.previous_total_excluding)


def _category_expenses(expenses: Sequence[ExpenseRecord]) -> List[CategoryExpenses]:
    breakdown = category_breakdown(expenses)
    members: Dict[str, List[ExpenseRecord]] = {}
    for expense in expenses:
        members.setdefault(expense.category_label, []).append(expense)
    return [
        CategoryExpenses(item.name, item.total, item.percentage, tuple(members[item.name]))
        for item in breakdown
    ]


def _daily_amounts(expenses: Sequence[ExpenseRecord]) -> Dict[date, float]:
    amounts: Dict[date, float] = {}
    for expense in expenses:
        amounts[expense.date] = amounts.get(expense.date, 0.0) + expense.amount
    return amounts


def week_comparison(
    expenses: Sequence[ExpenseRecord],
    as_of: date,
    excluded_category: Optional[str] = None,
) -> WeekComparison:
    """Current week against the previous one, day by day."""
    excluded_category = excluded_category or config.BUSINESS_CATEGORY
    this_week = current_week(as_of)
    last_week = previous_period(this_week)

    current = expenses_in_period(expenses, this_week)
    previous = expenses_in_period(expenses, last_week)
    current_excl = exclude_category(current, excluded_category)
    previous_excl = exclude_category(previous, excluded_category)

    by_day = [_daily_amounts(group) for group in (current, previous, current_excl, previous_excl)]
    days = []
    for offset, weekday in enumerate(WEEKDAY_NAMES):
        day = this_week.start + timedelta(days=offset)
        prior = last_week.start + timedelta(days=offset)
        days.append(DayComparison(
            weekday=weekday,
            date=day,
            previous_date=prior,
            current=by_day[0].get(day, 0.0),
            previous=by_day[1].get(prior, 0.0),
            current_excluding=by_day[2].get(day, 0.0),
            previous_excluding=by_day[3].get(prior, 0.0),
        ))

    return WeekComparison(
        period=this_week,
        previous_period=last_week,
        days=tuple(days),
        total=total_amount(current),
        previous_total=total_amount(previous),
        total_excluding=total_amount(current_excl),
        previous_total_excluding=total_amount(previous_excl),
        categories=tuple(_category_expenses(current)),
        categories_excluding=tuple(_category_expenses(current_excl)),
    )


def sort_expenses(
    expenses: Sequence[ExpenseRecord],
    field: Optional[str] = None,
    descending: bool = False,
) -> List[ExpenseRecord]:
    """Stable sort by amount, category (case-insensitive) or date.

    Undated records always come last when sorting by date.
    """
    if field is None:
        return list(expenses)
    if field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field '{field}'")
    if field == 'amount':
        return sorted(expenses, key=lambda e: e.amount, reverse=descending)
    if field == 'category':
        return sorted(expenses, key=lambda e: (e.category_name or '').lower(), reverse=descending)
    dated = sorted((e for e in expenses if e.date is not None), key=lambda e: e.date, reverse=descending)
    return dated + [e for e in expenses if e.date is None]


@dataclass(frozen=True)
class ExpenseListing:
    expenses: Tuple[ExpenseRecord, ...]
    total: float


def list_expenses(
    expenses: Sequence[ExpenseRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
    field: Optional[str] = None,
    descending: bool = False,
) -> ExpenseListing:
    """Date-filtered, sorted expense rows with the total of what is shown."""
    rows = sort_expenses(filter_by_dates(expenses, start, end), field, descending)
    return ExpenseListing(tuple(rows), total_amount(rows))
