# agencycrm/services/analytics_service.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, selectinload

from ..domain import analytics as a
from ..domain.roles import PRODUCING_ROLES
from ..domain.statuses import (
    OPEN_TASK_STATUSES,
    UNREAD_COMMUNICATION_STATUSES,
    UPCOMING_APPOINTMENT_STATUSES,
    CommunicationType,
    ContractStatus,
    ContractType,
    PaymentStatus,
    TaskPriority,
)
from ..domain.tenancy import scope_clause
from ..errors import ValidationFailed
from ..models import Appointment, Communication, Contract, Mandate, Payment, Property, Task, User
from .records import priority_rank

_OPEN_TASKS = [s.value for s in OPEN_TASK_STATUSES]
_UNREAD = [s.value for s in UNREAD_COMMUNICATION_STATUSES]
_UPCOMING = [s.value for s in UPCOMING_APPOINTMENT_STATUSES]


def _now() -> datetime:
    return datetime.now()


def _ensure_scope(p) -> None:
    if not p.is_super_admin and p.agency_id is None:
        raise ValidationFailed("agencyId", "No agency attached to this account")


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _name(person, default: str) -> str:
    if person is None:
        return default
    return f"{person.first_name} {person.last_name}".strip()


def _signed_contracts(db: Session, p, start: datetime, end: datetime) -> list[a.SignedContract]:
    rows = db.execute(
        select(Contract.signed_date, Contract.commission, Contract.type, Contract.user_id).where(
            scope_clause(p, Contract),
            Contract.status == ContractStatus.COMPLETED.value,
            Contract.signed_date.is_not(None),
            Contract.signed_date >= start,
            Contract.signed_date <= end,
        )
    ).all()
    return [
        a.SignedContract(signed_date=r.signed_date, commission=float(r.commission or 0.0), type=r.type, user_id=r.user_id)
        for r in rows
    ]


def _count(db: Session, p, model, *where) -> int:
    return int(db.scalar(select(func.count()).select_from(model).where(scope_clause(p, model), *where)) or 0)


def _deal_status(status: str) -> str:
    if status == ContractStatus.COMPLETED.value:
        return "Signed"
    if status == ContractStatus.ACTIVE.value:
        return "Negotiation"
    return "Pending"


# -------------------- /analytics/dashboard --------------------

def dashboard(
    db: Session,
    p,
    *,
    period: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    _ensure_scope(p)
    now = now or _now()
    try:
        window = a.resolve_period(period, start_date, end_date, now)
    except a.InvalidPeriod as e:
        raise ValidationFailed(e.field, e.message)

    m_start = a.month_start(now)
    y_start = a.year_start(now)
    lm_start, lm_end = a.last_month_bounds(now)

    # one fetch covers every revenue figure below
    earliest = min(window.start, a.trend_window_start(window, now), lm_start, y_start)
    latest = max(window.end, a.month_end(now))
    signed = _signed_contracts(db, p, earliest, latest)

    current_month = a.sum_between(signed, m_start, now)
    last_month = a.sum_between(signed, lm_start, lm_end)
    year_to_date = a.sum_between(signed, y_start, now)

    sales_this_month = a.count_between(signed, m_start, now, ContractType.SALE.value)
    rentals_this_month = a.count_between(signed, m_start, now, ContractType.RENTAL.value)
    sales_last_month = a.count_between(signed, lm_start, lm_end, ContractType.SALE.value)

    mandates_this_month = _count(db, p, Mandate, Mandate.created_at >= m_start, Mandate.created_at <= now)
    mandates_last_month = _count(db, p, Mandate, Mandate.created_at >= lm_start, Mandate.created_at <= lm_end)

    conversion = a.conversion_rate(sales_this_month, mandates_this_month)
    conversion_last = a.conversion_rate(sales_last_month, mandates_last_month)

    pending_amount, pending_count = db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0.0), func.count(Payment.id)).where(
            scope_clause(p, Payment), Payment.status == PaymentStatus.PENDING.value
        )
    ).one()
    paid_this_month = db.scalar(
        select(func.coalesce(func.sum(Payment.amount), 0.0)).where(
            scope_clause(p, Payment),
            Payment.status == PaymentStatus.PAID.value,
            Payment.paid_date >= m_start,
            Payment.paid_date <= now,
        )
    )

    # agent ranking over the selected window; users without deals rank at 0
    agents = db.scalars(
        select(User).where(
            scope_clause(p, User),
            User.is_active.is_(True),
            User.role.in_([r.value for r in PRODUCING_ROLES]),
        ).order_by(User.id)
    ).all()
    per_user: dict[int, tuple[float, int]] = {}
    for r in signed:
        if r.user_id is None or not (window.start <= r.signed_date <= window.end):
            continue
        total, n = per_user.get(r.user_id, (0.0, 0))
        per_user[r.user_id] = (total + r.commission, n + 1)
    agent_performance = [
        {
            "user": {"id": u.id, "firstName": u.first_name, "lastName": u.last_name, "email": u.email},
            "totalCommission": per_user.get(u.id, (0.0, 0))[0],
            "totalContracts": per_user.get(u.id, (0.0, 0))[1],
        }
        for u in agents
    ]
    agent_performance.sort(key=lambda x: x["totalCommission"], reverse=True)

    status_rows = db.execute(
        select(Property.status, func.count(Property.id)).where(scope_clause(p, Property)).group_by(Property.status)
    ).all()
    type_rows = db.execute(
        select(Property.type, func.count(Property.id)).where(scope_clause(p, Property)).group_by(Property.type)
    ).all()

    recent_contracts = db.scalars(
        select(Contract)
        .where(scope_clause(p, Contract))
        .options(selectinload(Contract.property), selectinload(Contract.client))
        .order_by(desc(Contract.created_at), desc(Contract.id))
        .limit(10)
    ).all()
    recent_mandates = db.scalars(
        select(Mandate)
        .where(scope_clause(p, Mandate))
        .options(selectinload(Mandate.user), selectinload(Mandate.property))
        .order_by(desc(Mandate.created_at), desc(Mandate.id))
        .limit(5)
    ).all()

    return {
        "period": {"type": window.type, "startDate": _iso(window.start), "endDate": _iso(window.end)},
        "kpi": [
            {
                "key": "monthlyRevenue",
                "label": "Revenu Mensuel",
                "value": current_month,
                "change": a.growth_pct(current_month, last_month),
                "type": "currency",
            },
            {
                "key": "newMandates",
                "label": "Nouveaux Mandats",
                "value": mandates_this_month,
                "change": a.growth_pct(mandates_this_month, mandates_last_month),
                "type": "number",
            },
            {
                "key": "completedSales",
                "label": "Ventes Finalisées",
                "value": sales_this_month,
                "change": a.growth_pct(sales_this_month, sales_last_month),
                "type": "number",
            },
            {
                "key": "conversionRate",
                "label": "Taux de Conversion",
                "value": conversion,
                "change": a.conversion_change(conversion, conversion_last),
                "type": "percent",
            },
        ],
        "revenue": {
            "currentMonth": current_month,
            "lastMonth": last_month,
            "yearToDate": year_to_date,
            "growth": a.growth_pct(current_month, last_month),
            "monthlyTrend": a.revenue_trend(window, now, signed),
        },
        "revenueData": a.daily_revenue_series(now, signed, current_month),
        "payments": {
            "pending": {"amount": float(pending_amount or 0.0), "count": int(pending_count or 0)},
            "paidThisMonth": float(paid_this_month or 0.0),
        },
        "contracts": {"salesThisMonth": sales_this_month, "rentalsThisMonth": rentals_this_month},
        "agentPerformance": agent_performance,
        "propertyStats": [{"status": s, "count": int(n)} for s, n in status_rows],
        "propertyTypeData": [{"type": t, "name": a.property_type_label(t), "value": int(n)} for t, n in type_rows],
        "recentDeals": [
            {
                "id": c.id,
                "contractNumber": c.contract_number,
                "property": c.property.title if c.property else "N/A",
                "client": _name(c.client, "N/A"),
                "amount": float(c.price or 0.0),
                "status": _deal_status(c.status),
                "date": (c.signed_date or c.created_at).date().isoformat(),
            }
            for c in recent_contracts
        ],
        "teamActivity": [
            {
                "id": m.id,
                "user": {
                    "firstName": m.user.first_name if m.user else "N/A",
                    "lastName": m.user.last_name if m.user else "N/A",
                },
                "property": m.property.title if m.property else "N/A",
                "createdAt": _iso(m.created_at),
            }
            for m in recent_mandates
        ],
    }


# -------------------- /analytics/operational-dashboard --------------------

def operational_dashboard(db: Session, p, *, now: Optional[datetime] = None) -> dict[str, Any]:
    _ensure_scope(p)
    now = now or _now()
    sod, eod = a.start_of_day(now), a.end_of_day(now)

    today_appts = (
        Appointment.start_date >= sod,
        Appointment.start_date <= eod,
        Appointment.status.in_(_UPCOMING),
    )

    stats = {
        "callsToMake": _count(
            db, p, Task, Task.status.in_(_OPEN_TASKS), Task.priority.in_([TaskPriority.HIGH.value, TaskPriority.URGENT.value])
        ),
        "emailsUnread": _count(
            db, p, Communication,
            Communication.type == CommunicationType.EMAIL.value,
            Communication.status.in_(_UNREAD),
        ),
        "todaysAppointments": _count(db, p, Appointment, *today_appts),
        "pendingDeals": _count(
            db, p, Contract, Contract.status.in_([ContractStatus.DRAFT.value, ContractStatus.ACTIVE.value])
        ),
    }

    tasks = db.scalars(
        select(Task)
        .where(scope_clause(p, Task), Task.status.in_(_OPEN_TASKS), Task.due_date <= eod)
        .order_by(desc(priority_rank(Task.priority)), Task.due_date.asc(), Task.id.asc())
        .limit(10)
    ).all()

    messages = db.scalars(
        select(Communication)
        .where(scope_clause(p, Communication), Communication.type == CommunicationType.EMAIL.value)
        .options(selectinload(Communication.user))
        .order_by(desc(Communication.sent_at), desc(Communication.id))
        .limit(5)
    ).all()

    agenda = db.scalars(
        select(Appointment)
        .where(scope_clause(p, Appointment), *today_appts)
        .options(selectinload(Appointment.client), selectinload(Appointment.property))
        .order_by(Appointment.start_date.asc(), Appointment.id.asc())
    ).all()

    week_start = a.start_of_day(now - timedelta(days=6))
    signed = _signed_contracts(db, p, week_start, eod)

    return {
        "stats": stats,
        "tasks": [
            {
                "id": t.id,
                "title": t.title,
                "time": a.hhmm(t.due_date),
                "priority": a.priority_bucket(t.priority),
                "completed": False,
                "type": a.classify_task(t.title, t.kind),
            }
            for t in tasks
        ],
        "messages": [
            {
                "id": m.id,
                "sender": _name(m.user, "Système"),
                "preview": a.message_preview(m.subject, m.content),
                "time": a.time_ago(m.sent_at, now),
                "unread": m.status in _UNREAD,
            }
            for m in messages
        ],
        "agenda": [
            {
                "id": ap.id,
                "title": ap.title,
                "client": _name(ap.client, "Client non spécifié"),
                "time": f"{a.hhmm(ap.start_date)} - {a.hhmm(ap.end_date)}",
                "location": ap.location or (ap.property.city if ap.property and ap.property.city else "Non spécifié"),
                "type": a.classify_appointment(ap.title, ap.kind),
            }
            for ap in agenda
        ],
        "revenueData": a.weekly_revenue_series(now, signed),
    }


# -------------------- /analytics/revenue --------------------

def revenue_report(
    db: Session,
    p,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict[str, Any]:
    _ensure_scope(p)
    if start_date and end_date and end_date < start_date:
        raise ValidationFailed("endDate", "endDate must not be before startDate")

    q = select(Contract).where(scope_clause(p, Contract), Contract.status == ContractStatus.COMPLETED.value)
    if start_date:
        q = q.where(Contract.signed_date >= a.start_of_day(start_date))
    if end_date:
        q = q.where(Contract.signed_date <= a.end_of_day(end_date))
    q = q.options(
        selectinload(Contract.user),
        selectinload(Contract.property),
        selectinload(Contract.client),
    ).order_by(desc(Contract.signed_date), desc(Contract.id))

    contracts = list(db.scalars(q).all())
    return {
        "contracts": contracts,
        "total_commission": float(sum(c.commission or 0.0 for c in contracts)),
        "start_date": start_date,
        "end_date": end_date,
    }
