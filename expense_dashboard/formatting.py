"""Formatting utilities for amounts, dates and month labels."""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

from .bucketing import MONTH_NAMES


def escape_dollar_for_markdown(amount: float) -> str:
    """Format a dollar amount and escape the dollar sign for markdown rendering.

    Streamlit markdown treats ``$`` as a LaTeX delimiter, which italicizes
    everything between two amounts.

    Example:
        >>> escape_dollar_for_markdown(1234.56)
        '\\\\$1,234.56'
    """
    return f"${amount:,.2f}".replace("$", "\\$")


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators and two decimals.

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{amount:,.2f}"
    return f"${formatted}" if include_sign else formatted


def format_amount(amount: Union[float, int]) -> str:
    """Whole amounts without decimals, everything else with two.

    Example:
        >>> format_amount(42.0)
        '42'
        >>> format_amount(3.5)
        '3.50'
    """
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def format_display_date(value: Optional[date]) -> str:
    """DD/MM/YYYY, or a placeholder for missing dates."""
    if value is None:
        return 'Unknown date'
    return value.strftime('%d/%m/%Y')


def format_month_label(year_month: str) -> str:
    """``2024-01`` -> ``Jan 2024``."""
    year, month = year_month.split('-')
    return f"{MONTH_NAMES[int(month) - 1][:3]} {year}"


def format_change(change: Optional[float]) -> str:
    if change is None:
        return 'n/a'
    return f"{change:+.1f}%"
