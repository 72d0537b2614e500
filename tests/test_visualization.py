from datetime import date

from expense_dashboard import aggregation as agg
from expense_dashboard import visualization as viz
from expense_dashboard.models import ExpenseRecord


def _expense(id, amount, category, day):
    return ExpenseRecord(id=id, comment='', amount=amount, category_name=category, date=day)


EXPENSES = [
    _expense('1', 12.0, 'Food', date(2024, 3, 12)),
    _expense('2', 40.0, 'Business', date(2024, 3, 13)),
    _expense('3', 8.0, 'Food', date(2024, 3, 5)),
    _expense('4', 60.0, 'Rent', date(2024, 2, 1)),
]


def test_empty_inputs_give_placeholder_figures():
    for fig in (
        viz.create_daily_area_chart([]),
        viz.create_monthly_bar_chart({}),
        viz.create_category_pie_chart([]),
        viz.create_year_overview_chart(agg.year_overview([], 2024)),
    ):
        assert fig.layout.title.text == 'No data to display'
        assert len(fig.data) == 0


def test_daily_area_chart():
    fig = viz.create_daily_area_chart(agg.daily_sums(EXPENSES, 2024, 3))
    assert len(fig.data) == 1
    assert list(fig.data[0].x) == [5, 12, 13]


def test_monthly_bar_chart_labels():
    fig = viz.create_monthly_bar_chart(agg.monthly_totals(EXPENSES))
    assert list(fig.data[0].x) == ['Feb 2024', 'Mar 2024']


def test_week_comparison_chart_traces():
    comparison = agg.week_comparison(EXPENSES, date(2024, 3, 14), excluded_category='Business')

    fig = viz.create_week_comparison_chart(comparison)
    assert [trace.name for trace in fig.data] == ['Current Week', 'Previous Week']
    assert list(fig.data[0].y)[1:3] == [12.0, 40.0]

    fig = viz.create_week_comparison_chart(comparison, include_excluded=False)
    assert fig.data[0].name == 'Current Week (excl. business)'
    assert list(fig.data[0].y)[1:3] == [12.0, 0.0]
    assert fig.layout.barmode == 'group'


def test_category_pie_and_year_overview():
    pie = viz.create_category_pie_chart(agg.category_breakdown(EXPENSES))
    assert set(pie.data[0].labels) == {'Food', 'Business', 'Rent'}

    year = viz.create_year_overview_chart(agg.year_overview(EXPENSES, 2024))
    assert {trace.name for trace in year.data} == {'Food', 'Business', 'Rent'}
    assert year.layout.barmode == 'stack'
