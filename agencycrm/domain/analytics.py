# agencycrm/domain/analytics.py
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from .statuses import AppointmentKind, PropertyType, PROPERTY_TYPE_LABELS, TaskKind, TaskPriority

PERIODS = ("week", "month", "year", "custom")
MAX_DAILY_BUCKETS = 30
WEEKDAY_NAMES = ["Dim", "Lun", "Mar", "Mer", "Jeu", "Ven", "Sam"]


class InvalidPeriod(ValueError):
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class Period:
    type: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class SignedContract:
    """Minimal projection of a COMPLETED contract used for revenue math."""

    signed_date: datetime
    commission: float
    type: str
    user_id: Optional[int] = None


# -------------------- windows --------------------

def _as_date(d: date | datetime) -> date:
    return d.date() if isinstance(d, datetime) else d


def start_of_day(d: date | datetime) -> datetime:
    return datetime.combine(_as_date(d), time.min)


def end_of_day(d: date | datetime) -> datetime:
    return datetime.combine(_as_date(d), time.max)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_start(now: datetime) -> datetime:
    return datetime(now.year, now.month, 1)


def month_end(now: datetime) -> datetime:
    return end_of_day(date(now.year, now.month, days_in_month(now.year, now.month)))


def year_start(now: datetime) -> datetime:
    return datetime(now.year, 1, 1)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def last_month_bounds(now: datetime) -> tuple[datetime, datetime]:
    # the whole last day is included
    y, m = shift_month(now.year, now.month, -1)
    return datetime(y, m, 1), end_of_day(date(y, m, days_in_month(y, m)))


def resolve_period(
    period: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
    now: datetime,
) -> Period:
    kind = (period or "year").strip().lower()
    if kind not in PERIODS:
        raise InvalidPeriod("period", f"period must be one of {', '.join(PERIODS)}")

    if start_date is not None and end_date is not None:
        kind = "custom"

    if kind == "custom":
        if start_date is None or end_date is None:
            raise InvalidPeriod("startDate", "startDate and endDate are required for a custom period")
        if end_date < start_date:
            raise InvalidPeriod("endDate", "endDate must not be before startDate")
        return Period(type=kind, start=start_of_day(start_date), end=end_of_day(end_date))

    if kind == "week":
        return Period(type=kind, start=now - timedelta(days=7), end=now)
    if kind == "month":
        return Period(type=kind, start=month_start(now), end=now)
    return Period(type=kind, start=year_start(now), end=now)


# -------------------- ratios --------------------

def growth_pct(current: float, previous: float) -> float:
    if not previous:
        return 0.0
    return (float(current) - float(previous)) / float(previous) * 100.0


def conversion_rate(sales: int, new_mandates: int) -> float:
    if new_mandates <= 0:
        return 0.0
    return float(sales) / float(new_mandates) * 100.0


def conversion_change(current_rate: float, last_rate: float) -> float:
    # difference in points, not a relative change
    if last_rate <= 0:
        return 0.0
    return float(current_rate) - float(last_rate)


# -------------------- sums over a single fetch --------------------

def sum_between(rows: Iterable[SignedContract], start: datetime, end: datetime) -> float:
    return float(sum(r.commission or 0.0 for r in rows if start <= r.signed_date <= end))


def count_between(rows: Iterable[SignedContract], start: datetime, end: datetime, contract_type: Optional[str] = None) -> int:
    return sum(
        1
        for r in rows
        if start <= r.signed_date <= end and (contract_type is None or r.type == contract_type)
    )


def _bucket(rows: list[SignedContract], start: datetime, end: datetime, label: str) -> dict:
    inside = [r for r in rows if start <= r.signed_date <= end]
    return {"month": label, "revenue": float(sum(r.commission or 0.0 for r in inside)), "count": len(inside)}


def revenue_trend(period: Period, now: datetime, rows: list[SignedContract]) -> list[dict]:
    """
    week/custom: one bucket per day, at most the last 30 days of the window.
    month: one bucket per day of the current month.
    year: the last 12 calendar months.
    """
    out: list[dict] = []
    if period.type in ("week", "custom"):
        n = math.ceil((period.end - period.start).total_seconds() / 86400)
        n = max(1, min(n, MAX_DAILY_BUCKETS))
        last = period.end.date()
        for i in range(n - 1, -1, -1):
            d = last - timedelta(days=i)
            out.append(_bucket(rows, start_of_day(d), end_of_day(d), d.isoformat()))
        return out

    if period.type == "month":
        for day in range(1, days_in_month(now.year, now.month) + 1):
            d = date(now.year, now.month, day)
            out.append(_bucket(rows, start_of_day(d), end_of_day(d), d.isoformat()))
        return out

    for i in range(11, -1, -1):
        y, m = shift_month(now.year, now.month, -i)
        start = datetime(y, m, 1)
        end = end_of_day(date(y, m, days_in_month(y, m)))
        out.append(_bucket(rows, start, end, f"{y:04d}-{m:02d}"))
    return out


def trend_window_start(period: Period, now: datetime) -> datetime:
    """Earliest signed date any trend bucket can look at."""
    if period.type in ("week", "custom"):
        n = math.ceil((period.end - period.start).total_seconds() / 86400)
        n = max(1, min(n, MAX_DAILY_BUCKETS))
        return start_of_day(period.end.date() - timedelta(days=n - 1))
    if period.type == "month":
        return month_start(now)
    y, m = shift_month(now.year, now.month, -11)
    return datetime(y, m, 1)


def daily_revenue_series(now: datetime, rows: list[SignedContract], month_total: float) -> list[dict]:
    n = days_in_month(now.year, now.month)
    per_day: dict[int, float] = {}
    start, end = month_start(now), month_end(now)
    for r in rows:
        if start <= r.signed_date <= end:
            per_day[r.signed_date.day] = per_day.get(r.signed_date.day, 0.0) + float(r.commission or 0.0)

    target = float(month_total) / n
    return [{"name": f"{day:02d}", "value": per_day.get(day, 0.0), "targets": target} for day in range(1, n + 1)]


def weekly_revenue_series(now: datetime, rows: list[SignedContract]) -> list[dict]:
    out = []
    for i in range(6, -1, -1):
        d = (now - timedelta(days=i)).date()
        # isoweekday: Mon=1..Sun=7
        name = WEEKDAY_NAMES[d.isoweekday() % 7]
        out.append({"name": name, "value": sum_between(rows, start_of_day(d), end_of_day(d))})
    return out


def property_type_label(value: str) -> str:
    try:
        return PROPERTY_TYPE_LABELS[PropertyType(value)]
    except ValueError:
        return value


# -------------------- operational dashboard --------------------

def classify_task(title: str, kind: Optional[str] = None) -> str:
    if kind in {k.value for k in TaskKind}:
        return str(kind)
    t = (title or "").lower()
    if "appel" in t or "rappeler" in t or "appeler" in t:
        return TaskKind.CALL.value
    if "visite" in t or "rdv" in t:
        return TaskKind.VISIT.value
    return TaskKind.ADMIN.value


def classify_appointment(title: str, kind: Optional[str] = None) -> str:
    if kind in {k.value for k in AppointmentKind}:
        return str(kind)
    t = (title or "").lower()
    if "signature" in t:
        return AppointmentKind.SIGNATURE.value
    if "estimation" in t or "estimer" in t:
        return AppointmentKind.ESTIMATION.value
    return AppointmentKind.VISITE.value


def priority_bucket(priority: str) -> str:
    if priority in (TaskPriority.URGENT.value, TaskPriority.HIGH.value):
        return "high"
    if priority == TaskPriority.LOW.value:
        return "low"
    return "medium"


def hhmm(dt: Optional[datetime]) -> str:
    return dt.strftime("%H:%M") if dt else "--:--"


def time_ago(sent_at: datetime, now: datetime) -> str:
    minutes = max(0, int((now - sent_at).total_seconds() // 60))
    if minutes < 60:
        return f"{minutes} min"
    if minutes < 1440:
        return f"{minutes // 60}h"
    return f"{minutes // 1440}j"


def message_preview(subject: Optional[str], content: Optional[str]) -> str:
    return subject or (content or "")[:50] or "Sans sujet"
