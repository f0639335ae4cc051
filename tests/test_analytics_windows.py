# tests/test_analytics_windows.py
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from agencycrm.domain import analytics as a

NOW = datetime(2026, 10, 19, 15, 30)  # a Monday


def _signed(day: datetime, commission: float, type_: str = "SALE", user_id=None) -> a.SignedContract:
    return a.SignedContract(signed_date=day, commission=commission, type=type_, user_id=user_id)


def test_ratios_never_divide_by_zero():
    assert a.growth_pct(1000, 0) == 0.0
    assert a.growth_pct(0, 0) == 0.0
    assert a.growth_pct(1000, 2000) == -50.0
    assert a.growth_pct(3, 2) == 50.0

    assert a.conversion_rate(3, 0) == 0.0
    assert a.conversion_rate(1, 4) == 25.0

    # points, not a relative change; zero when last month had no rate
    assert a.conversion_change(50.0, 0.0) == 0.0
    assert a.conversion_change(50.0, 100.0) == -50.0


def test_resolve_period_defaults_to_year():
    p = a.resolve_period(None, None, None, NOW)
    assert p.type == "year"
    assert p.start == datetime(2026, 1, 1)
    assert p.end == NOW


def test_resolve_period_named_windows():
    week = a.resolve_period("week", None, None, NOW)
    assert week.start == NOW - timedelta(days=7)

    month = a.resolve_period("MONTH", None, None, NOW)
    assert month.start == datetime(2026, 10, 1)
    assert month.end == NOW


def test_both_dates_select_a_custom_window():
    p = a.resolve_period("week", date(2026, 3, 1), date(2026, 3, 31), NOW)
    assert p.type == "custom"
    assert p.start == datetime(2026, 3, 1)
    assert p.end.date() == date(2026, 3, 31)
    assert (p.end.hour, p.end.minute, p.end.second) == (23, 59, 59)


@pytest.mark.parametrize(
    "period,start,end,field",
    [
        ("fortnight", None, None, "period"),
        ("custom", date(2026, 3, 1), None, "startDate"),
        ("custom", date(2026, 3, 5), date(2026, 3, 1), "endDate"),
    ],
)
def test_invalid_periods(period, start, end, field):
    with pytest.raises(a.InvalidPeriod) as e:
        a.resolve_period(period, start, end, NOW)
    assert e.value.field == field


def test_last_month_includes_its_whole_last_day():
    start, end = a.last_month_bounds(NOW)
    assert start == datetime(2026, 9, 1)
    assert end.date() == date(2026, 9, 30)
    assert end.hour == 23

    # January rolls back into the previous year
    start, end = a.last_month_bounds(datetime(2026, 1, 10))
    assert start == datetime(2025, 12, 1)
    assert end.date() == date(2025, 12, 31)

    rows = [_signed(datetime(2026, 9, 30, 22, 45), 700.0)]
    s, e = a.last_month_bounds(NOW)
    assert a.sum_between(rows, s, e) == 700.0


def test_shift_month():
    assert a.shift_month(2026, 1, -1) == (2025, 12)
    assert a.shift_month(2026, 10, -11) == (2025, 11)
    assert a.shift_month(2026, 12, 1) == (2027, 1)


def test_year_trend_has_twelve_monthly_buckets():
    rows = [_signed(datetime(2026, 10, 2), 1000.0), _signed(datetime(2025, 11, 15), 300.0), _signed(datetime(2025, 10, 15), 999.0)]
    trend = a.revenue_trend(a.resolve_period("year", None, None, NOW), NOW, rows)
    assert len(trend) == 12
    assert trend[0]["month"] == "2025-11"
    assert trend[0]["revenue"] == 300.0
    assert trend[-1] == {"month": "2026-10", "revenue": 1000.0, "count": 1}


def test_month_trend_has_one_bucket_per_day():
    trend = a.revenue_trend(a.resolve_period("month", None, None, NOW), NOW, [])
    assert len(trend) == 31
    assert trend[0]["month"] == "2026-10-01"
    assert all(b["revenue"] == 0.0 for b in trend)


def test_daily_trends_are_capped_at_thirty_buckets():
    week = a.revenue_trend(a.resolve_period("week", None, None, NOW), NOW, [])
    assert len(week) == 7
    assert week[-1]["month"] == "2026-10-19"

    quarter = a.resolve_period("custom", date(2026, 1, 1), date(2026, 3, 31), NOW)
    trend = a.revenue_trend(quarter, NOW, [])
    assert len(trend) == a.MAX_DAILY_BUCKETS
    assert trend[0]["month"] == "2026-03-02"
    assert trend[-1]["month"] == "2026-03-31"
    assert a.trend_window_start(quarter, NOW) == datetime(2026, 3, 2)


def test_daily_revenue_series():
    rows = [_signed(datetime(2026, 10, 5, 9), 600.0), _signed(datetime(2026, 10, 5, 17), 400.0)]
    series = a.daily_revenue_series(NOW, rows, 1000.0)
    assert len(series) == 31
    assert series[4] == {"name": "05", "value": 1000.0, "targets": pytest.approx(1000.0 / 31)}
    assert series[0]["value"] == 0.0


def test_weekly_revenue_series_uses_french_day_names():
    rows = [_signed(datetime(2026, 10, 18, 11), 500.0)]
    series = a.weekly_revenue_series(NOW, rows)
    assert [x["name"] for x in series] == ["Mar", "Mer", "Jeu", "Ven", "Sam", "Dim", "Lun"]
    assert series[-2]["value"] == 500.0


def test_property_type_label():
    assert a.property_type_label("APARTMENT") == "Appartements"
    assert a.property_type_label("CASTLE") == "CASTLE"


def test_classification_prefers_stored_kind():
    assert a.classify_task("Appeler M. Moreau") == "call"
    assert a.classify_task("Rappeler la banque") == "call"
    assert a.classify_task("Préparer visite") == "visit"
    assert a.classify_task("RDV notaire") == "visit"
    assert a.classify_task("Classer les dossiers") == "admin"
    assert a.classify_task("Appeler M. Moreau", kind="admin") == "admin"

    assert a.classify_appointment("Signature compromis") == "signature"
    assert a.classify_appointment("Estimation maison") == "estimation"
    assert a.classify_appointment("Passage chez le client") == "visite"
    assert a.classify_appointment("Signature compromis", kind="visite") == "visite"


def test_priority_bucket_and_formatting():
    assert a.priority_bucket("URGENT") == "high"
    assert a.priority_bucket("HIGH") == "high"
    assert a.priority_bucket("MEDIUM") == "medium"
    assert a.priority_bucket("LOW") == "low"

    assert a.hhmm(datetime(2026, 10, 19, 9, 5)) == "09:05"
    assert a.hhmm(None) == "--:--"


@pytest.mark.parametrize(
    "minutes,label",
    [(0, "0 min"), (59, "59 min"), (60, "1h"), (1439, "23h"), (1440, "1j"), (4320, "3j"), (-10, "0 min")],
)
def test_time_ago(minutes, label):
    assert a.time_ago(NOW - timedelta(minutes=minutes), NOW) == label


def test_message_preview():
    assert a.message_preview("Offre reçue", "long text") == "Offre reçue"
    assert a.message_preview(None, "x" * 80) == "x" * 50
    assert a.message_preview(None, None) == "Sans sujet"
