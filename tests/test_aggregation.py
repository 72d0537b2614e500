from datetime import date

import pytest

from expense_dashboard import aggregation as agg
from expense_dashboard.bucketing import bucket_expenses, month_period
from expense_dashboard.models import ExpenseRecord


def _expense(id, amount, category='Food', day=date(2024, 3, 10)):
    return ExpenseRecord(id=id, comment='', amount=amount, category_name=category, date=day)


def _mixed():
    return [
        _expense('1', 40.0, 'Food'),
        _expense('2', 25.5, 'Transport'),
        _expense('3', 10.0, 'Food'),
        _expense('4', 24.5, None),
        _expense('5', 100.0, 'Business'),
    ]


def test_category_breakdown_reconciles_with_total():
    expenses = _mixed()
    breakdown = agg.category_breakdown(expenses)

    assert sum(item.total for item in breakdown) == pytest.approx(agg.total_amount(expenses), abs=1e-6)
    assert sum(item.percentage for item in breakdown) == pytest.approx(100.0)
    assert sum(item.count for item in breakdown) == len(expenses)
    assert [item.name for item in breakdown] == ['Business', 'Food', 'Transport', 'Uncategorized']
    assert breakdown[1].total == 50.0
    assert breakdown[1].count == 2


def test_category_breakdown_breaks_ties_by_name():
    breakdown = agg.category_breakdown([_expense('1', 5, 'Zoo'), _expense('2', 5, 'Art')])
    assert [item.name for item in breakdown] == ['Art', 'Zoo']


def test_category_breakdown_zero_total_has_zero_percentages():
    breakdown = agg.category_breakdown([_expense('1', 0, 'Food')])
    assert breakdown[0].percentage == 0.0


def test_aggregate_empty_input():
    result = agg.aggregate([])

    assert result.total == 0
    assert result.count == 0
    assert result.average_per_day == 0
    assert result.categories == ()
    assert result.comparison_to_previous is None


def test_aggregate_average_and_comparison():
    march = month_period(2024, 3)
    result = agg.aggregate([_expense('1', 150.0)], [_expense('0', 100.0)], period=march)

    assert result.total == 150.0
    assert result.average_per_day == pytest.approx(150.0 / 31)
    assert result.comparison_to_previous == pytest.approx(50.0)
    assert result.to_dict()['comparisonToPrevious'] == pytest.approx(50.0)


def test_aggregate_comparison_absent_when_previous_is_zero():
    result = agg.aggregate([_expense('1', 10.0)], [])
    assert result.comparison_to_previous is None
    assert 'comparisonToPrevious' not in result.to_dict()


def test_aggregate_buckets_compare_against_preceding_period():
    expenses = [
        _expense('jan', 100.0, day=date(2024, 1, 5)),
        _expense('feb', 150.0, day=date(2024, 2, 5)),
        _expense('apr', 50.0, day=date(2024, 4, 5)),
    ]
    results = dict(
        (bucket.key, aggregated)
        for bucket, aggregated in agg.aggregate_buckets(bucket_expenses(expenses, 'month'))
    )

    assert results['2024-01'].comparison_to_previous is None
    assert results['2024-02'].comparison_to_previous == pytest.approx(50.0)
    # March has no bucket, so April has nothing to compare against
    assert results['2024-04'].comparison_to_previous is None
    assert results['2024-02'].average_per_day == pytest.approx(150.0 / 29)


def test_aggregate_is_pure():
    expenses = _mixed()
    snapshot = list(expenses)
    first = agg.aggregate(expenses)
    second = agg.aggregate(expenses)

    assert first == second
    assert expenses == snapshot


def test_exclusion_report():
    report = agg.aggregate_with_exclusion(_mixed(), excluded_category='Business')

    assert report.all.total == pytest.approx(200.0)
    assert report.excluding.total == pytest.approx(100.0)
    assert 'Business' not in [c.name for c in report.excluding.categories]
    assert report.excluded_category == 'Business'


def test_exclude_category_keeps_uncategorized():
    kept = agg.exclude_category(_mixed(), 'Business')
    assert [e.id for e in kept] == ['1', '2', '3', '4']


def test_small_purchases_pattern_thresholds():
    eleven = [_expense(str(i), 3.0) for i in range(11)]
    ten = [_expense(str(i), 3.0) for i in range(10)]

    assert agg.small_purchases(eleven) == agg.SmallPurchases(count=11, total=33.0, is_pattern=True)
    assert agg.small_purchases(ten).is_pattern is False
    # exactly the threshold is not a small purchase
    assert agg.small_purchases([_expense('x', 10.0)]).count == 0


def test_daily_sums():
    expenses = [
        _expense('1', 5.0, day=date(2024, 3, 2)),
        _expense('2', 7.5, day=date(2024, 3, 2)),
        _expense('3', 1.0, day=date(2024, 3, 20)),
        _expense('4', 9.0, day=date(2024, 4, 1)),
        _expense('5', 9.0, day=None),
    ]
    sums = agg.daily_sums(expenses, 2024, 3)

    assert [(s.day, s.amount) for s in sums] == [(2, 12.5), (20, 1.0)]
    assert agg.daily_sums(expenses, 2024, 5) == []


def test_monthly_totals_and_overview_order():
    expenses = [
        _expense('1', 30.0, day=date(2024, 2, 1)),
        _expense('2', 20.0, day=date(2024, 1, 15)),
        _expense('3', 10.0, day=date(2024, 2, 28)),
    ]

    assert list(agg.monthly_totals(expenses).items()) == [('2024-01', 20.0), ('2024-02', 40.0)]
    overview = agg.monthly_overview(expenses)
    assert list(overview) == ['2024-02', '2024-01']
    assert overview['2024-02'].aggregated.comparison_to_previous == pytest.approx(100.0)
    assert overview['2024-02'].period.label == 'February 2024'


def test_year_overview_top_categories():
    expenses = [
        _expense('1', 10.0, 'A', date(2024, 3, 1)),
        _expense('2', 20.0, 'B', date(2024, 3, 2)),
        _expense('3', 30.0, 'C', date(2024, 3, 3)),
        _expense('4', 40.0, 'D', date(2024, 3, 4)),
        _expense('5', 99.0, 'A', date(2023, 3, 1)),
    ]
    rows = agg.year_overview(expenses, 2024)

    assert len(rows) == 12
    march = rows[2]
    assert march.label == 'Mar'
    assert march.total == 100.0
    assert [c.name for c in march.top] == ['D', 'C', 'B']
    assert rows[0].total == 0 and rows[0].top == ()


def test_week_comparison():
    expenses = [
        _expense('tue', 20.0, 'Food', date(2024, 3, 12)),
        _expense('wed', 30.0, 'Business', date(2024, 3, 13)),
        _expense('prev', 10.0, 'Food', date(2024, 3, 5)),
        _expense('old', 99.0, 'Food', date(2024, 2, 1)),
    ]
    result = agg.week_comparison(expenses, date(2024, 3, 15), excluded_category='Business')

    assert result.period.start == date(2024, 3, 11)
    assert result.previous_period.start == date(2024, 3, 4)
    assert result.total == 50.0
    assert result.previous_total == 10.0
    assert result.total_excluding == 20.0
    assert result.comparison == pytest.approx(400.0)
    assert result.comparison_excluding == pytest.approx(100.0)
    assert [d.weekday for d in result.days][0] == 'Monday'
    assert result.days[1].current == 20.0
    assert result.days[1].previous == 10.0
    assert result.days[2].current_excluding == 0.0
    assert [c.name for c in result.categories] == ['Business', 'Food']
    assert [e.id for e in result.categories[1].expenses] == ['tue']


def test_sort_expenses():
    expenses = [
        _expense('a', 5.0, 'food', date(2024, 3, 2)),
        _expense('b', 1.0, 'Bills', None),
        _expense('c', 9.0, 'Car', date(2024, 3, 1)),
    ]

    assert [e.id for e in agg.sort_expenses(expenses, 'amount')] == ['b', 'a', 'c']
    assert [e.id for e in agg.sort_expenses(expenses, 'category')] == ['b', 'c', 'a']
    assert [e.id for e in agg.sort_expenses(expenses, 'date', descending=True)] == ['a', 'c', 'b']
    assert [e.id for e in agg.sort_expenses(expenses)] == ['a', 'b', 'c']
    with pytest.raises(ValueError):
        agg.sort_expenses(expenses, 'comment')


def test_list_expenses_filters_sorts_and_totals():
    expenses = [
        _expense('feb', 30.0, day=date(2024, 2, 20)),
        _expense('mar-small', 5.0, day=date(2024, 3, 2)),
        _expense('mar-big', 50.0, day=date(2024, 3, 9)),
        _expense('undated', 7.0, day=None),
    ]

    listing = agg.list_expenses(expenses, date(2024, 3, 1), date(2024, 3, 31), 'amount', descending=True)
    assert [e.id for e in listing.expenses] == ['mar-big', 'mar-small']
    assert listing.total == pytest.approx(55.0)

    everything = agg.list_expenses(expenses)
    assert len(everything.expenses) == 4
    assert everything.total == pytest.approx(92.0)


def test_monthly_overview_in_range_keeps_full_comparison():
    expenses = [
        _expense('jan', 100.0, day=date(2024, 1, 20)),
        _expense('feb', 150.0, day=date(2024, 2, 20)),
        _expense('mar', 75.0, day=date(2024, 3, 5)),
    ]
    overview = agg.monthly_overview_in_range(expenses, '1m', date(2024, 3, 15))

    assert list(overview) == ['2024-03', '2024-02']
    # February still compares against all of January
    assert overview['2024-02'].aggregated.comparison_to_previous == pytest.approx(50.0)
    assert overview['2024-02'].aggregated.total == pytest.approx(150.0)
    assert list(agg.monthly_overview_in_range(expenses, 'all', date(2024, 3, 15))) == [
        '2024-03', '2024-02', '2024-01',
    ]
