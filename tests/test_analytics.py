from datetime import date, datetime, time
from types import SimpleNamespace as Row
import pytest

import analytics

TODAY = date(2024, 3, 15)


def sale(day, amount=100.0, commission=10.0, status="Pending", affiliate_id="a1", product_id=1):
    return Row(date=day, sale_amount=amount, commission_amount=commission, status=status,
               affiliate_id=affiliate_id, product_id=product_id)


@pytest.mark.parametrize("preset,start,end", [
    ("today", date(2024, 3, 15), date(2024, 3, 15)),
    ("7d", date(2024, 3, 9), date(2024, 3, 15)),
    ("30d", date(2024, 2, 15), date(2024, 3, 15)),
    ("this_month", date(2024, 3, 1), date(2024, 3, 15)),
    ("last_month", date(2024, 2, 1), date(2024, 2, 29)),
    ("this_year", date(2024, 1, 1), date(2024, 3, 15)),
    ("last_year", date(2023, 1, 1), date(2023, 12, 31)),
])
def test_date_range_presets(preset, start, end):
    range_start, range_end = analytics.resolve_date_range(preset, TODAY)
    assert range_start == datetime.combine(start, time.min)
    assert range_end == datetime.combine(end, time.max)


def test_custom_range_and_fallback():
    start, end = analytics.resolve_date_range("custom", TODAY, date(2024, 1, 10), date(2024, 1, 20))
    assert start == datetime(2024, 1, 10)
    assert end.date() == date(2024, 1, 20) and end.microsecond == 999999
    assert analytics.resolve_date_range("custom", TODAY) == analytics.resolve_date_range("30d", TODAY)


def test_unknown_preset_is_rejected():
    with pytest.raises(ValueError):
        analytics.resolve_date_range("fortnight", TODAY)


def test_previous_period_has_equal_length():
    start, end = analytics.resolve_date_range("7d", TODAY)
    prev_start, prev_end = analytics.previous_period(start, end)
    assert prev_end < start
    assert prev_end - prev_start == end - start
    assert prev_start.date() == date(2024, 3, 2)


def test_monthly_sales_series_has_twelve_labelled_buckets():
    sales = [sale(date(2024, 3, 1), 50), sale(date(2024, 3, 10), 25), sale(date(2023, 4, 2), 10),
             sale(date(2023, 3, 31), 999)]
    series = analytics.monthly_sales_series(sales, TODAY)
    assert len(series) == 12
    assert series[0] == {"name": "Apr '23", "sales": 10}
    assert series[-1] == {"name": "Mar '24", "sales": 75}


def test_commission_split_by_status_inside_range():
    start, end = analytics.resolve_date_range("this_month", TODAY)
    sales = [
        sale(date(2024, 3, 2), commission=10, status="Cleared"),
        sale(date(2024, 3, 3), commission=5, status="Pending"),
        sale(date(2024, 3, 4), commission=7, status="Refunded"),
        sale(date(2024, 2, 28), commission=100, status="Cleared"),
    ]
    assert analytics.commission_split(sales, start, end) == {"payable": 10, "pending": 5}


def test_top_affiliates_only_active_sorted_by_commission():
    affiliates = [
        {"id": "1", "status": "Active", "commission": 10},
        {"id": "2", "status": "Pending", "commission": 99},
        {"id": "3", "status": "Active", "commission": 30},
    ]
    assert [a["id"] for a in analytics.top_affiliates(affiliates)] == ["3", "1"]


def test_reports_conversion_and_sorting():
    affiliates = [{"id": "a1", "name": "Ann", "clicks": 200}, {"id": "a2", "name": "Bo", "clicks": 0}]
    sales = [sale(TODAY, commission=10, affiliate_id="a1"), sale(TODAY, commission=12, affiliate_id="a1"),
             sale(TODAY, commission=50, affiliate_id="a2")]
    rows = analytics.affiliate_report(affiliates, sales)
    assert [r["name"] for r in rows] == ["Bo", "Ann"]
    assert rows[0]["conversionRate"] == 0.0
    assert rows[1]["conversionRate"] == 1.0
    assert rows[1]["commission"] == 22


def test_report_windows():
    sales = [sale(date(2024, 3, 1)), sale(date(2023, 12, 1)), sale(date(2022, 1, 1))]
    assert len(analytics.report_sales(sales, "30d", TODAY)) == 1
    assert len(analytics.report_sales(sales, "90d", TODAY)) == 1
    assert len(analytics.report_sales(sales, "all", TODAY)) == 3
    with pytest.raises(ValueError):
        analytics.report_sales(sales, "7d", TODAY)


def test_mrr_counts_annual_plans_monthly():
    end = datetime(2024, 3, 31, 23, 59)
    clients = [
        Row(join_date=date(2024, 1, 1), billing_cycle="monthly", current_plan="Growth Plan"),
        Row(join_date=date(2024, 1, 1), billing_cycle="annual", current_plan="Pro Plan"),
        Row(join_date=date(2024, 4, 1), billing_cycle="monthly", current_plan="Pro Plan"),
        Row(join_date=date(2024, 1, 1), billing_cycle=None, current_plan="Starter Plan"),
    ]
    assert analytics.calculate_mrr(clients, end) == round(49 + 950 / 12, 2)


def test_change_percent():
    assert analytics.change_percent(10, 0) == "100.0%"
    assert analytics.change_percent(0, 0) == "0.0%"
    assert analytics.change_percent(150, 100) == "50.0%"
    assert analytics.change_percent(50, 100) == "-50.0%"


def test_revenue_series_switches_to_monthly_after_ninety_days():
    payments = [Row(date=date(2024, 3, 1), amount=19), Row(date=date(2024, 3, 1), amount=49),
                Row(date=date(2024, 1, 5), amount=99)]
    start, end = analytics.resolve_date_range("30d", TODAY)
    assert analytics.revenue_series(payments, start, end) == [{"name": "2024-03-01", "revenue": 68}]
    start, end = analytics.resolve_date_range("custom", TODAY, date(2023, 10, 1), TODAY)
    assert analytics.revenue_series(payments, start, end) == [
        {"name": "2024-01", "revenue": 99},
        {"name": "2024-03", "revenue": 68},
    ]


def test_admin_overview_compares_with_previous_period():
    start, end = analytics.resolve_date_range("7d", TODAY)
    payments = [Row(date=date(2024, 3, 10), amount=100, user_id="c1"),
                Row(date=date(2024, 3, 5), amount=50, user_id="c2")]
    clients = [Row(join_date=date(2024, 3, 10), billing_cycle="monthly", current_plan="Starter Plan")]
    overview = analytics.admin_overview(payments, clients, start, end)
    assert overview["current"]["totalRevenue"] == 100
    assert overview["previous"]["totalRevenue"] == 50
    assert overview["change"]["totalRevenue"] == "100.0%"
    assert overview["change"]["newCustomers"] == "100.0%"


def test_user_growth_is_cumulative_and_cut_at_range_end():
    users = [
        Row(join_date=date(2024, 1, 3), roles=["creator"]),
        Row(join_date=date(2024, 1, 9), roles=["affiliate"]),
        Row(join_date=date(2024, 2, 1), roles=["creator", "affiliate"]),
        Row(join_date=date(2024, 5, 1), roles=["creator"]),
    ]
    growth = analytics.user_growth(users, datetime(2024, 3, 31))
    assert growth == [
        {"name": "2024-01", "creators": 1, "affiliates": 1},
        {"name": "2024-02", "creators": 2, "affiliates": 2},
    ]


def test_onboarding_funnel():
    users = [Row(roles=["creator"], onboarding_step_completed=step) for step in (0, 2, 5, 5)]
    users.append(Row(roles=["affiliate"], onboarding_step_completed=5))
    funnel = analytics.onboarding_funnel(users)
    assert funnel["completionRate"] == 50.0
    assert [s["count"] for s in funnel["steps"]] == [3, 3, 2, 2, 2]
    assert funnel["steps"][0]["previousCount"] == 4
    assert analytics.onboarding_funnel([]) == {"completionRate": 0.0, "steps": []}
