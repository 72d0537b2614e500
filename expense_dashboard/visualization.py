"""Plotly visualisation helpers for the expense dashboard.

Each function accepts an object returned by :mod:`aggregation` and
produces an interactive Plotly figure that Streamlit renders via
``st.plotly_chart``.  Empty inputs return a blank figure titled
"No data to display" instead of raising.
"""

from __future__ import annotations

from typing import Dict, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .aggregation import DailySum, MonthTopCategories, WeekComparison
from .formatting import format_month_label
from .models import CategoryBreakdown


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_daily_area_chart(sums: Sequence[DailySum], title: str | None = None) -> go.Figure:
    """Area chart of daily totals for one month.

    Parameters
    ----------
    sums : sequence of DailySum
        Output of :func:`aggregation.daily_sums`.
    title : str, optional
        Chart title.
    """
    if not sums:
        return _empty_figure()
    df = pd.DataFrame({'Day': [s.day for s in sums], 'Amount': [s.amount for s in sums]})
    fig = px.area(df, x='Day', y='Amount')
    fig.update_layout(
        title=title or "Daily Expenses",
        xaxis_title="Day of Month",
        yaxis_title="Daily Total",
    )
    return fig


def create_monthly_bar_chart(totals: Dict[str, float], title: str | None = None) -> go.Figure:
    """Bar chart of ``YYYY-MM`` totals in chronological order."""
    if not totals:
        return _empty_figure()
    df = pd.DataFrame({
        'Month': [format_month_label(key) for key in totals],
        'Amount': list(totals.values()),
    })
    fig = px.bar(df, x='Month', y='Amount')
    fig.update_layout(title=title or "Monthly Expenses", xaxis_tickangle=-45)
    return fig


def create_week_comparison_chart(
    comparison: WeekComparison,
    include_excluded: bool = True,
    title: str | None = None,
) -> go.Figure:
    """Grouped bars of this week against last week, Monday to Sunday."""
    days = [d.weekday[:3] for d in comparison.days]
    if include_excluded:
        current = [d.current for d in comparison.days]
        previous = [d.previous for d in comparison.days]
        suffix = ''
    else:
        current = [d.current_excluding for d in comparison.days]
        previous = [d.previous_excluding for d in comparison.days]
        suffix = ' (excl. business)'
    fig = go.Figure()
    fig.add_trace(go.Bar(x=days, y=current, name=f"Current Week{suffix}"))
    fig.add_trace(go.Bar(x=days, y=previous, name=f"Previous Week{suffix}"))
    fig.update_layout(
        title=title or f"Week {comparison.period.label}",
        barmode='group',
        xaxis_title="Day",
        yaxis_title="Amount",
    )
    return fig


def create_category_pie_chart(categories: Sequence[CategoryBreakdown], title: str | None = None) -> go.Figure:
    """Pie chart of category totals."""
    if not categories:
        return _empty_figure()
    df = pd.DataFrame({'Category': [c.name for c in categories], 'Total': [c.total for c in categories]})
    fig = px.pie(df, names='Category', values='Total')
    fig.update_layout(title=title or "Spending by Category")
    return fig


def create_year_overview_chart(rows: Sequence[MonthTopCategories], title: str | None = None) -> go.Figure:
    """Stacked bars of the top categories for each month of a year."""
    if not rows or not any(row.total for row in rows):
        return _empty_figure()
    records = [
        {'Month': row.label, 'Category': item.name, 'Total': item.total}
        for row in rows
        for item in row.top
    ]
    df = pd.DataFrame(records, columns=['Month', 'Category', 'Total'])
    fig = px.bar(
        df,
        x='Month',
        y='Total',
        color='Category',
        category_orders={'Month': [row.label for row in rows]},
    )
    fig.update_layout(title=title or "Year Overview - Top Categories per Month", barmode='stack')
    return fig
