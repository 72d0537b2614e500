"""Expense ingestion helpers.

The hosted database owns the expense schema; this module only turns the
rows it hands back into :class:`~expense_dashboard.models.ExpenseRecord`
values.  Rows are validated on the way in (amounts must be non-negative
numbers) and dates are resolved to calendar dates in one configured time
zone so that every later bucketing step agrees on which day an expense
belongs to.

Rows whose date cannot be parsed are kept with ``date=None``.  They still
count as expenses but are left out of every date bucket, and each one is
reported through the returned issues list and a warning log record.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence

import pandas as pd

from . import config
from .models import ExpenseRecord, IngestionResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------


def parse_expense_date(value: Any, tz: Optional[str] = None) -> Optional[date]:
    """Resolve ``value`` to a calendar date in ``tz``.

    Timezone-aware timestamps are converted into ``tz`` before the time of
    day is dropped; naive values are taken as already local.  Anything
    that cannot be parsed yields ``None``.
    """
    tz = tz or config.TIMEZONE
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return pd.Timestamp(value).tz_convert(tz).date()
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    ts = pd.to_datetime(value.strip(), errors='coerce')
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz)
    return ts.date()


def parse_amount(value: Any) -> Optional[float]:
    """Convert an amount into a finite float, or ``None`` when impossible."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        cleaned = value.strip().replace('$', '').replace(',', '')
        if not cleaned:
            return None
        number = pd.to_numeric(pd.Series([cleaned]), errors='coerce').iloc[0]
        if pd.isna(number):
            return None
        try:
            number = float(number)
        except OverflowError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def _category_fields(row: Mapping) -> tuple:
    category = row.get('category')
    if isinstance(category, Mapping):
        return _clean_text(category.get('id')), _clean_text(category.get('name'))
    name = _clean_text(category) if category is not None else None
    return (
        _clean_text(row.get('category_id')),
        name or _clean_text(row.get('category_name')),
    )


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_expenses(rows: Iterable[Any], tz: Optional[str] = None) -> IngestionResult:
    """Validate raw rows and build immutable expense records."""
    tz = tz or config.TIMEZONE
    result = IngestionResult()
    records: List[ExpenseRecord] = []

    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            result.rejected += 1
            result.issues.append(f"Row {index}: expected an object, got {type(row).__name__}")
            continue

        expense_id = _clean_text(row.get('id')) or f'expense-{index}'
        amount = parse_amount(row.get('amount'))
        if amount is None or amount < 0:
            result.rejected += 1
            result.issues.append(f"Expense {expense_id}: invalid amount {row.get('amount')!r}")
            continue

        expense_date = parse_expense_date(row.get('date'), tz)
        if expense_date is None:
            result.unparseable_dates += 1
            result.issues.append(f"Expense {expense_id}: unparseable date {row.get('date')!r}")
            logger.warning("Expense %s has an unparseable date %r; excluded from date buckets",
                           expense_id, row.get('date'))

        category_id, category_name = _category_fields(row)
        records.append(ExpenseRecord(
            id=expense_id,
            comment=_clean_text(row.get('comment')) or '',
            amount=amount,
            category_id=category_id,
            category_name=category_name,
            date=expense_date,
        ))

    if result.rejected:
        logger.warning("Rejected %d malformed expense rows", result.rejected)
    result.expenses = tuple(records)
    return result


def fetch_all_expenses(
    fetch_page: Callable[[int, int], Optional[Sequence[Any]]],
    page_size: Optional[int] = None,
) -> List[Any]:
    """Drain a paginated source.

    ``fetch_page(offset, limit)`` returns at most ``limit`` rows; a page
    shorter than ``limit`` (or an empty one) signals the end of the data.
    """
    page_size = page_size or config.PAGE_SIZE
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    rows: List[Any] = []
    offset = 0
    while True:
        page = list(fetch_page(offset, page_size) or [])
        rows.extend(page)
        if len(page) < page_size:
            break
        offset += page_size
    logger.debug("Fetched %d expense rows in pages of %d", len(rows), page_size)
    return rows


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def read_expenses_file(path_or_buffer) -> List[dict]:
    """Load a JSON or CSV expense export into raw rows."""
    if hasattr(path_or_buffer, 'read'):
        name = getattr(path_or_buffer, 'name', 'uploaded_file.json').lower()
        if name.endswith('.csv'):
            return _frame_to_rows(pd.read_csv(path_or_buffer, dtype=str))
        raw = path_or_buffer.read()
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        return _json_rows(json.loads(raw))

    path = Path(path_or_buffer)
    ext = path.suffix.lower()
    if ext == '.csv':
        return _frame_to_rows(pd.read_csv(path, dtype=str))
    if ext == '.json':
        with path.open('r', encoding='utf-8') as handle:
            return _json_rows(json.load(handle))
    raise ValueError(f"Unsupported file extension '{ext}'.")


def _json_rows(data: Any) -> List[dict]:
    if isinstance(data, Mapping):
        data = data.get('expenses')
    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of expenses")
    return data


def _frame_to_rows(df: pd.DataFrame) -> List[dict]:
    df = df.rename(columns={c: c.strip().lower() for c in df.columns})
    df = df.astype(object).where(df.notna(), None)
    rows = []
    for record in df.to_dict(orient='records'):
        rows.append({
            'id': record.get('id'),
            'comment': record.get('comment') or '',
            'amount': record.get('amount'),
            'category': {
                'id': record.get('category_id'),
                'name': record.get('category') or record.get('category_name'),
            },
            'date': record.get('date'),
        })
    return rows


# ---------------------------------------------------------------------------
# DataFrame view
# ---------------------------------------------------------------------------


def expenses_frame(expenses: Sequence[ExpenseRecord]) -> pd.DataFrame:
    """Tabular view of ``expenses`` used by the grouping helpers."""
    if not expenses:
        return pd.DataFrame({
            'position': pd.Series(dtype='int64'),
            'id': pd.Series(dtype=object),
            'amount': pd.Series(dtype='float64'),
            'category': pd.Series(dtype=object),
            'date': pd.Series(dtype='datetime64[ns]'),
        })
    df = pd.DataFrame({
        'position': range(len(expenses)),
        'id': [e.id for e in expenses],
        'amount': [float(e.amount) for e in expenses],
        'category': [e.category_label for e in expenses],
        'date': [e.date for e in expenses],
    })
    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    return df
