"""Streamlit app for the expense dashboard.

Run from the command line::

    streamlit run expense_dashboard/dashboard.py

or use ``run_dashboard.py`` at the project root.  The app reads a JSON
or CSV export of the expense table, then renders the current week,
current month, monthly and yearly views plus the daily tips panel.
"""

from __future__ import annotations

import os
import sys
from datetime import date, datetime, timezone
from typing import List, Optional

import streamlit as st

if __package__:
    from . import aggregation as agg
    from . import config
    from . import visualization as viz
    from .bucketing import RANGE_KEYS, SHORTCUT_RANGES, filter_by_range, shortcut_range
    from .formatting import escape_dollar_for_markdown, format_amount, format_change, format_display_date
    from .ingestion import normalize_expenses, parse_expense_date, read_expenses_file
    from .models import ExpenseRecord, IngestionResult
    from .tips_service import TipsService
else:
    # Allow ``streamlit run expense_dashboard/dashboard.py`` without
    # raising ``ImportError: attempted relative import``.
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from expense_dashboard import aggregation as agg  # type: ignore
    from expense_dashboard import config  # type: ignore
    from expense_dashboard import visualization as viz  # type: ignore
    from expense_dashboard.bucketing import (  # type: ignore
        RANGE_KEYS,
        SHORTCUT_RANGES,
        filter_by_range,
        shortcut_range,
    )
    from expense_dashboard.formatting import (  # type: ignore
        escape_dollar_for_markdown,
        format_amount,
        format_change,
        format_display_date,
    )
    from expense_dashboard.ingestion import (  # type: ignore
        normalize_expenses,
        parse_expense_date,
        read_expenses_file,
    )
    from expense_dashboard.models import ExpenseRecord, IngestionResult  # type: ignore
    from expense_dashboard.tips_service import TipsService  # type: ignore

RANGE_LABELS = {
    '7d': 'Last 7 days',
    '1m': 'Last month',
    '3m': 'Last 3 months',
    '1y': 'Last year',
    'all': 'All time',
}
TIP_ICONS = {'insight': '💡', 'warning': '⚠️', 'opportunity': '🎯', 'achievement': '🏆'}
SHORTCUT_LABELS = {
    'this_month': 'This month',
    'last_month': 'Last month',
    'last_3_months': 'Last 3 months',
    'this_year': 'This year',
}
SORT_LABELS = {None: 'Unsorted', 'amount': 'Amount', 'category': 'Category', 'date': 'Date'}


@st.cache_resource
def get_tips_service() -> TipsService:
    """One service (and tip cache) per server process."""
    return TipsService()


def load_rows(uploaded_file) -> Optional[list]:
    """Read an uploaded export, falling back to ``DATA_DIR/expenses.json``."""
    try:
        if uploaded_file is not None:
            return read_expenses_file(uploaded_file)
        sample = config.DATA_DIR / 'expenses.json'
        if sample.exists():
            return read_expenses_file(sample)
    except Exception as exc:  # pragma: no cover - UI display only
        st.error(f"Failed to read file: {exc}")
    return None


def _today() -> date:
    return parse_expense_date(datetime.now(timezone.utc), config.TIMEZONE)


def render_week(expenses: List[ExpenseRecord], today: date, include_business: bool) -> None:
    comparison = agg.week_comparison(expenses, today)
    total = comparison.total if include_business else comparison.total_excluding
    previous = comparison.previous_total if include_business else comparison.previous_total_excluding
    change = comparison.comparison if include_business else comparison.comparison_excluding

    col1, col2 = st.columns(2)
    col1.metric("This Week", f"${total:,.2f}", format_change(change))
    col2.metric("Previous Week", f"${previous:,.2f}")
    st.plotly_chart(viz.create_week_comparison_chart(comparison, include_business), use_container_width=True)

    categories = comparison.categories if include_business else comparison.categories_excluding
    for category in categories:
        with st.expander(f"{category.name}: {escape_dollar_for_markdown(category.amount)} ({category.percentage:.1f}%)"):
            for expense in category.expenses:
                st.write(f"{format_display_date(expense.date)} · {expense.comment or '-'} · "
                         f"{escape_dollar_for_markdown(expense.amount)}")


def render_month(expenses: List[ExpenseRecord], today: date) -> None:
    sums = agg.daily_sums(expenses, today.year, today.month)
    month_total = sum(s.amount for s in sums)
    st.markdown(f"**Total:** {escape_dollar_for_markdown(month_total)}")
    st.plotly_chart(viz.create_daily_area_chart(sums), use_container_width=True)


def render_monthly(expenses: List[ExpenseRecord], visible: List[ExpenseRecord],
                   range_key: str, today: date) -> None:
    overview = agg.monthly_overview_in_range(expenses, range_key, today)
    if not overview:
        st.info("No dated expenses to summarize.")
        return
    selected = st.selectbox(
        "Month",
        list(overview),
        format_func=lambda key: overview[key].period.label,
    )
    summary = overview[selected]
    col1, col2, col3 = st.columns(3)
    col1.metric("Total", f"${summary.aggregated.total:,.2f}",
                format_change(summary.aggregated.comparison_to_previous))
    col2.metric("Transactions", summary.aggregated.count)
    col3.metric("Average / Day", f"${summary.aggregated.average_per_day:,.2f}")
    st.plotly_chart(viz.create_category_pie_chart(summary.aggregated.categories), use_container_width=True)
    st.plotly_chart(viz.create_monthly_bar_chart(agg.monthly_totals(visible)), use_container_width=True)


def render_year(expenses: List[ExpenseRecord], today: date) -> None:
    st.plotly_chart(viz.create_year_overview_chart(agg.year_overview(expenses, today.year)), use_container_width=True)


def render_expenses(expenses: List[ExpenseRecord], today: date) -> None:
    col1, col2, col3 = st.columns(3)
    shortcut = col1.selectbox("Shortcut", (None,) + SHORTCUT_RANGES,
                              format_func=lambda key: SHORTCUT_LABELS.get(key, 'Custom'))
    if shortcut is None:
        start = col2.date_input("From", value=None)
        end = col3.date_input("To", value=None)
    else:
        start, end = shortcut_range(shortcut, today)
        col2.write(f"From {format_display_date(start)}")
        col3.write(f"To {format_display_date(end)}")

    col4, col5 = st.columns(2)
    field = col4.selectbox("Sort by", list(SORT_LABELS), format_func=SORT_LABELS.get)
    descending = col5.radio("Order", ["Ascending", "Descending"], horizontal=True) == "Descending"

    listing = agg.list_expenses(expenses, start, end, field, descending)
    st.markdown(f"**Total:** {escape_dollar_for_markdown(listing.total)} ({len(listing.expenses)} expenses)")
    st.dataframe(
        [
            {
                'Date': format_display_date(e.date),
                'Comment': e.comment,
                'Category': e.category_label,
                'Amount': e.amount,
            }
            for e in listing.expenses
        ],
        use_container_width=True,
    )


def render_tips(rows: list) -> None:
    status, payload = get_tips_service().handle({'expenses': rows})
    if status != 200:
        st.error(payload.get('error', 'Failed to generate daily tips'))
        return
    source = "AI" if payload['aiEnabled'] else "pattern analysis"
    st.caption(f"Daily tips from {source} · {'cached' if payload['cached'] else 'fresh'}")
    for tip in payload['tips']:
        icon = TIP_ICONS.get(tip['type'], '💡')
        st.markdown(f"{icon} **{tip['title']}**  \n{tip['message']}")
        if tip.get('savings') is not None:
            st.caption(f"Potential savings: \\${format_amount(tip['savings'])}")


def render_issues(ingested: IngestionResult) -> None:
    if ingested.issues:
        with st.sidebar.expander(f"⚠️ {len(ingested.issues)} data issues"):
            for issue in ingested.issues:
                st.write(issue)


def main() -> None:
    """Entry point for the Streamlit app."""
    config.configure_logging()
    st.set_page_config(
        page_title="Expense Dashboard",
        page_icon="💰",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.title("Expense Dashboard")

    uploaded_file = st.sidebar.file_uploader("Upload expenses (JSON or CSV)", type=["json", "csv"])
    rows = load_rows(uploaded_file)
    if not rows:
        st.info("Upload an expense export to get started.")
        return

    ingested = normalize_expenses(rows)
    render_issues(ingested)
    include_business = st.sidebar.checkbox(f"Include {config.BUSINESS_CATEGORY} Expenses", value=True)
    range_key = st.sidebar.radio("Range", RANGE_KEYS, index=len(RANGE_KEYS) - 1,
                                 format_func=RANGE_LABELS.get)

    today = _today()
    expenses = list(ingested.expenses)
    scoped = expenses if include_business else agg.exclude_category(expenses)
    visible = filter_by_range(scoped, range_key, today)

    week_tab, month_tab, monthly_tab, year_tab, list_tab, tips_tab = st.tabs(
        ["Current Week", "Current Month", "Monthly", "Year", "Expenses", "Daily Tips"]
    )
    with week_tab:
        render_week(expenses, today, include_business)
    with month_tab:
        render_month(visible, today)
    with monthly_tab:
        render_monthly(scoped, visible, range_key, today)
    with year_tab:
        render_year(visible, today)
    with list_tab:
        render_expenses(scoped, today)
    with tips_tab:
        render_tips(rows)


if __name__ == "__main__":
    main()
