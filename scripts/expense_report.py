#!/usr/bin/env python3
"""Print a monthly spending overview and today's tips for an expense export."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from expense_dashboard import aggregation, config
from expense_dashboard.formatting import format_change, format_currency
from expense_dashboard.ingestion import normalize_expenses, read_expenses_file
from expense_dashboard.insights import generate_tips


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Summarize an expense export by month.')
    parser.add_argument('path', type=Path, help='JSON or CSV export of the expense table')
    parser.add_argument('--as-of', type=date.fromisoformat, default=None,
                        help='Reference day for tips (YYYY-MM-DD, default today)')
    parser.add_argument('--exclude-business', action='store_true',
                        help=f'Leave out the "{config.BUSINESS_CATEGORY}" category')
    args = parser.parse_args(argv)

    config.configure_logging()
    try:
        rows = read_expenses_file(args.path)
    except (OSError, ValueError) as exc:
        print(f"Failed to read {args.path}: {exc}", file=sys.stderr)
        return 1

    ingested = normalize_expenses(rows)
    expenses = list(ingested.expenses)
    if args.exclude_business:
        expenses = aggregation.exclude_category(expenses)
    as_of = args.as_of or date.today()

    overview = aggregation.monthly_overview(expenses)
    if not overview:
        print("No dated expenses found.")
    for summary in overview.values():
        agg = summary.aggregated
        print(f"\n{summary.period.label}: {format_currency(agg.total)} "
              f"across {agg.count} expenses ({format_change(agg.comparison_to_previous)})")
        for category in agg.categories:
            print(f"  {category.name:<24} {format_currency(category.total):>12} {category.percentage:5.1f}%")

    print("\nTips:")
    tips = generate_tips(expenses, as_of)
    if not tips:
        print("  Not enough data for tips yet.")
    for tip in tips:
        print(f"  [{tip.impact.value}] {tip.title}: {tip.message}")

    if ingested.issues:
        print(f"\n{len(ingested.issues)} rows had issues:")
        for issue in ingested.issues:
            print(f"  {issue}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
