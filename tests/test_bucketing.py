from datetime import date

import pytest

from expense_dashboard.bucketing import (
    bucket_expenses,
    current_week,
    filter_by_dates,
    filter_by_range,
    month_period,
    period_for,
    previous_period,
    range_cutoff,
    shortcut_range,
)
from expense_dashboard.models import ExpenseRecord, Granularity


def _expense(id, day, amount=10.0, category='Food'):
    return ExpenseRecord(id=id, comment='', amount=amount, category_name=category, date=day)


def _sample():
    return [
        _expense('a', date(2024, 3, 17)),
        _expense('b', date(2024, 3, 18)),
        _expense('c', date(2024, 3, 11)),
        _expense('d', date(2023, 12, 31)),
        _expense('e', None),
        _expense('f', date(2024, 3, 17)),
    ]


def test_period_keys_and_labels():
    day = date(2024, 3, 17)  # Sunday

    assert period_for(day, 'day').key == '2024-03-17'
    assert period_for(day, 'day').label == '17/03/2024'
    week = period_for(day, Granularity.WEEK)
    assert week.key == '2024-03-11'
    assert week.label == '11/03/2024 - 17/03/2024'
    assert period_for(day, 'month').key == '2024-03'
    assert period_for(day, 'month').label == 'March 2024'
    assert period_for(day, 'year').key == '2024'


def test_period_days():
    assert month_period(2024, 2).days == 29
    assert month_period(2023, 2).days == 28
    assert period_for(date(2024, 5, 1), 'year').days == 366
    assert period_for(date(2023, 5, 1), 'week').days == 7


def test_unknown_granularity():
    with pytest.raises(ValueError):
        period_for(date(2024, 1, 1), 'fortnight')


def test_previous_period_crosses_year_boundary():
    assert previous_period(month_period(2024, 1)).key == '2023-12'
    assert previous_period(period_for(date(2024, 1, 3), 'week')).key == '2023-12-25'
    assert previous_period(period_for(date(2024, 1, 1), 'day')).key == '2023-12-31'
    assert previous_period(period_for(date(2024, 6, 1), 'year')).key == '2023'


def test_current_week_starts_on_monday():
    assert current_week(date(2024, 3, 18)).start == date(2024, 3, 18)
    assert current_week(date(2024, 3, 17)).start == date(2024, 3, 11)
    assert current_week(date(2024, 3, 17)).end == date(2024, 3, 17)


@pytest.mark.parametrize('granularity', list(Granularity))
def test_bucketing_partitions_dated_records(granularity):
    expenses = _sample()
    result = bucket_expenses(expenses, granularity)

    assert sum(len(bucket) for bucket in result) + len(result.excluded) == len(expenses)
    assert [e.id for e in result.excluded] == ['e']
    seen = [e.id for bucket in result for e in bucket.expenses]
    assert sorted(seen) == ['a', 'b', 'c', 'd', 'f']
    for bucket in result:
        assert all(bucket.period.contains(e.date) for e in bucket.expenses)


def test_week_buckets_are_ordered_and_keep_input_order():
    result = bucket_expenses(_sample(), 'week')

    assert result.keys() == ['2023-12-25', '2024-03-11', '2024-03-18']
    assert [e.id for e in result.get('2024-03-11').expenses] == ['a', 'c', 'f']
    assert result.get('2024-03-04') is None


def test_bucket_expenses_empty_input():
    result = bucket_expenses([], 'month')
    assert len(result) == 0
    assert result.excluded == ()


def test_range_cutoff():
    as_of = date(2024, 3, 31)
    assert range_cutoff('7d', as_of) == date(2024, 3, 24)
    assert range_cutoff('1m', as_of) == date(2024, 2, 29)
    assert range_cutoff('3m', as_of) == date(2023, 12, 31)
    assert range_cutoff('1y', as_of) == date(2023, 3, 31)
    assert range_cutoff('all', as_of) is None
    with pytest.raises(ValueError):
        range_cutoff('2w', as_of)


def test_filter_by_range_and_dates():
    expenses = _sample()

    assert [e.id for e in filter_by_range(expenses, '7d', date(2024, 3, 18))] == ['a', 'b', 'c', 'f']
    assert len(filter_by_range(expenses, 'all', date(2024, 3, 18))) == len(expenses)
    window = filter_by_dates(expenses, start=date(2024, 3, 12), end=date(2024, 3, 17))
    assert [e.id for e in window] == ['a', 'f']


def test_shortcut_ranges():
    as_of = date(2024, 3, 15)

    assert shortcut_range('this_month', as_of) == (date(2024, 3, 1), date(2024, 3, 31))
    assert shortcut_range('last_month', as_of) == (date(2024, 2, 1), date(2024, 2, 29))
    assert shortcut_range('last_3_months', as_of) == (date(2023, 12, 1), date(2024, 3, 31))
    assert shortcut_range('this_year', as_of) == (date(2024, 1, 1), date(2024, 12, 31))


def test_shortcut_ranges_cross_year_boundary():
    as_of = date(2024, 1, 31)

    assert shortcut_range('last_month', as_of) == (date(2023, 12, 1), date(2023, 12, 31))
    assert shortcut_range('last_3_months', as_of) == (date(2023, 10, 1), date(2024, 1, 31))
    with pytest.raises(ValueError):
        shortcut_range('next_week', as_of)
