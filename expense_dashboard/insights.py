"""Heuristic spending tips.

This is the deterministic analyzer used whenever the AI provider is not
configured or fails.  It evaluates a fixed rule set against the current
and previous calendar month (relative to an explicit ``now``) and
returns at most three tips ranked by impact.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import List, Optional, Sequence, Union

from . import config
from .aggregation import category_breakdown, percentage_change, small_purchases, total_amount
from .bucketing import expenses_in_period, period_for, previous_period
from .ingestion import parse_expense_date
from .models import ExpenseRecord, Granularity, Tip, TipImpact, TipType

MAX_TIPS = 3
CHANGE_THRESHOLD_PCT = 10
HIGH_IMPACT_CHANGE_PCT = 25
SMALL_PURCHASE_SAVINGS_RATE = 0.25


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rank_tips(tips: Sequence[Tip], limit: int = MAX_TIPS) -> List[Tip]:
    """Order by impact (high first), keeping discovery order on ties."""
    return sorted(tips, key=lambda tip: -tip.impact.rank)[:limit]


def highest_category_tip(current: Sequence[ExpenseRecord]) -> Optional[Tip]:
    breakdown = category_breakdown(current)
    if not breakdown or breakdown[0].total <= 0:
        return None
    top = breakdown[0]
    return Tip(
        id='highest-category',
        type=TipType.INSIGHT,
        title=f"{top.name} leads your spending",
        message=(
            f"${top.total:.2f} spent on {top.name} this month. "
            "Consider if this aligns with your financial priorities."
        ),
        impact=TipImpact.MEDIUM,
        actionable=True,
        category=top.name,
    )


def month_comparison_tip(current: Sequence[ExpenseRecord], previous: Sequence[ExpenseRecord]) -> Optional[Tip]:
    current_total = total_amount(current)
    previous_total = total_amount(previous)
    change = percentage_change(current_total, previous_total)
    if change is None or abs(change) <= CHANGE_THRESHOLD_PCT:
        return None

    increased = change > 0
    difference = abs(current_total - previous_total)
    return Tip(
        id='month-comparison',
        type=TipType.WARNING if increased else TipType.ACHIEVEMENT,
        title=f"Spending {'increased' if increased else 'decreased'} by {abs(change):.1f}%",
        message=(
            f"Compared to last month, you've {'spent' if increased else 'saved'} "
            f"${difference:.2f} {'more' if increased else 'less'}."
        ),
        impact=TipImpact.HIGH if abs(change) > HIGH_IMPACT_CHANGE_PCT else TipImpact.MEDIUM,
        actionable=increased,
        savings=None if increased else difference,
    )


def small_purchases_tip(current: Sequence[ExpenseRecord]) -> Optional[Tip]:
    summary = small_purchases(current)
    if not summary.is_pattern:
        return None
    return Tip(
        id='small-purchases',
        type=TipType.OPPORTUNITY,
        title='Small purchases adding up',
        message=(
            f"{summary.count} purchases under $10 totaled ${summary.total:.2f}. "
            "Tracking these could reveal savings opportunities."
        ),
        impact=TipImpact.MEDIUM,
        actionable=True,
        savings=_round_half_up(summary.total * SMALL_PURCHASE_SAVINGS_RATE),
    )


def generate_tips(
    expenses: Sequence[ExpenseRecord],
    now: Union[date, datetime],
    tz: Optional[str] = None,
) -> List[Tip]:
    """Run the rule set for the month containing ``now``."""
    today = parse_expense_date(now, tz or config.TIMEZONE)
    if today is None:
        raise ValueError(f"Cannot resolve a calendar date from {now!r}")
    this_month = period_for(today, Granularity.MONTH)
    current = expenses_in_period(expenses, this_month)
    previous = expenses_in_period(expenses, previous_period(this_month))

    candidates = [
        highest_category_tip(current),
        month_comparison_tip(current, previous),
        small_purchases_tip(current),
    ]
    return rank_tips([tip for tip in candidates if tip is not None])
