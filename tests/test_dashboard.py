# tests/test_dashboard.py
from __future__ import annotations

from datetime import datetime

import pytest

from agencycrm.errors import ValidationFailed
from agencycrm.models import Appointment, Communication, Contract, Mandate, Payment, Task
from agencycrm.services import analytics_service

from conftest import at, auth_headers, principal

NOW = datetime(2026, 10, 19, 12, 0)


@pytest.fixture()
def portfolio(db, make_agency, make_user, make_property, make_client):
    """Agency A with one sale this month, one last month, and noise in agency B."""
    a = make_agency()
    b = make_agency()
    agent = make_user(a, first_name="Jean", last_name="Dupont")
    idle = make_user(a, first_name="Sophie", last_name="Bernard")
    other = make_user(b)

    flat = make_property(a, title="Appartement centre", type="APARTMENT")
    house = make_property(a, title="Maison jardin", type="HOUSE", status="SOLD")
    cl = make_client(a)
    foreign_prop = make_property(b)
    foreign_client = make_client(b)

    def contract(agency, prop, client, number, *, status="COMPLETED", signed=None, commission=None, type_="SALE", user=None):
        db.add(
            Contract(
                agency_id=agency.id,
                user_id=user.id if user else None,
                property_id=prop.id,
                client_id=client.id,
                contract_number=number,
                type=type_,
                status=status,
                start_date=at(2026, 9, 1),
                signed_date=signed,
                price=300000,
                commission=commission,
                created_at=signed or at(2026, 10, 10),
            )
        )

    contract(a, flat, cl, "CTR-000001", signed=at(2026, 10, 5), commission=1000.0, user=agent)
    # the last minutes of last month still count as last month
    contract(a, house, cl, "CTR-000002", signed=at(2026, 9, 30, 23, 30), commission=2000.0, user=agent)
    contract(a, flat, cl, "CTR-000003", signed=at(2026, 10, 7), commission=250.0, type_="RENTAL", user=agent)
    contract(a, flat, cl, "CTR-000004", status="ACTIVE", commission=9999.0, user=agent)
    contract(b, foreign_prop, foreign_client, "CTR-000001", signed=at(2026, 10, 6), commission=5000.0, user=other)

    for created in (at(2026, 10, 2), at(2026, 10, 3), at(2026, 9, 10)):
        db.add(
            Mandate(
                agency_id=a.id,
                user_id=agent.id,
                property_id=flat.id,
                client_id=cl.id,
                mandate_number=f"MAND-{created.day:06d}",
                type="EXCLUSIVE",
                start_date=created,
                created_at=created,
            )
        )

    db.add(Payment(agency_id=a.id, payment_number="PAY-000001", amount=1200.0, type="COMMISSION", status="PENDING"))
    db.add(Payment(agency_id=a.id, payment_number="PAY-000002", amount=300.0, type="FEE", status="PENDING"))
    db.add(
        Payment(
            agency_id=a.id,
            payment_number="PAY-000003",
            amount=800.0,
            type="RENT",
            status="PAID",
            paid_date=at(2026, 10, 12),
        )
    )
    db.commit()
    return {"a": a, "b": b, "agent": agent, "idle": idle}


def _kpi(out, key):
    return next(k for k in out["kpi"] if k["key"] == key)


def test_revenue_growth_and_kpis(db, portfolio):
    out = analytics_service.dashboard(db, principal(portfolio["agent"]), now=NOW)

    rev = out["revenue"]
    assert rev["currentMonth"] == 1250.0
    assert rev["lastMonth"] == 2000.0
    assert rev["yearToDate"] == 3250.0
    assert rev["growth"] == pytest.approx(-37.5)

    assert _kpi(out, "monthlyRevenue")["value"] == 1250.0
    assert _kpi(out, "newMandates")["value"] == 2
    assert _kpi(out, "newMandates")["change"] == pytest.approx(100.0)
    assert _kpi(out, "completedSales")["value"] == 1
    assert _kpi(out, "completedSales")["change"] == 0.0

    # 1 sale / 2 mandates this month vs 1 / 1 last month
    conv = _kpi(out, "conversionRate")
    assert conv["value"] == pytest.approx(50.0)
    assert conv["change"] == pytest.approx(-50.0)

    assert out["contracts"] == {"salesThisMonth": 1, "rentalsThisMonth": 1}
    assert out["payments"] == {"pending": {"amount": 1500.0, "count": 2}, "paidThisMonth": 800.0}


def test_trends_and_series(db, portfolio):
    out = analytics_service.dashboard(db, principal(portfolio["agent"]), now=NOW)

    assert out["period"]["type"] == "year"
    trend = out["revenue"]["monthlyTrend"]
    assert len(trend) == 12
    assert trend[-1] == {"month": "2026-10", "revenue": 1250.0, "count": 2}
    assert trend[-2] == {"month": "2026-09", "revenue": 2000.0, "count": 1}

    daily = out["revenueData"]
    assert len(daily) == 31
    assert daily[4]["name"] == "05"
    assert daily[4]["value"] == 1000.0
    assert daily[0]["targets"] == pytest.approx(1250.0 / 31)


def test_breakdowns_and_rankings(db, portfolio):
    out = analytics_service.dashboard(db, principal(portfolio["agent"]), now=NOW)

    ranking = out["agentPerformance"]
    assert [r["user"]["firstName"] for r in ranking] == ["Jean", "Sophie"]
    assert ranking[0]["totalCommission"] == 3250.0
    assert ranking[0]["totalContracts"] == 3
    assert ranking[1]["totalCommission"] == 0.0

    stats = {s["status"]: s["count"] for s in out["propertyStats"]}
    assert stats == {"AVAILABLE": 1, "SOLD": 1}
    types = {t["name"]: t["value"] for t in out["propertyTypeData"]}
    assert types == {"Appartements": 1, "Maisons": 1}

    deals = {d["contractNumber"]: d for d in out["recentDeals"]}
    assert deals["CTR-000001"]["status"] == "Signed"
    assert deals["CTR-000001"]["property"] == "Appartement centre"
    assert deals["CTR-000001"]["client"] == "Alain Moreau"
    assert deals["CTR-000004"]["status"] == "Negotiation"

    assert len(out["teamActivity"]) == 3
    assert out["teamActivity"][0]["user"]["firstName"] == "Jean"


def test_custom_window_drives_trend_and_ranking(db, portfolio):
    out = analytics_service.dashboard(
        db,
        principal(portfolio["agent"]),
        start_date=datetime(2026, 10, 1).date(),
        end_date=datetime(2026, 10, 10).date(),
        now=NOW,
    )
    assert out["period"]["type"] == "custom"
    assert len(out["revenue"]["monthlyTrend"]) == 10
    assert out["agentPerformance"][0]["totalCommission"] == 1250.0
    # month figures do not depend on the window
    assert out["revenue"]["lastMonth"] == 2000.0


def test_super_admin_sees_every_agency(db, portfolio, make_user):
    sa = make_user(None, role="SUPER_ADMIN")
    out = analytics_service.dashboard(db, principal(sa), now=NOW)
    assert out["revenue"]["currentMonth"] == 6250.0


def test_invalid_period_is_a_validation_error(db, portfolio):
    with pytest.raises(ValidationFailed) as e:
        analytics_service.dashboard(db, principal(portfolio["agent"]), period="decade", now=NOW)
    assert e.value.detail[0]["field"] == "period"


def test_empty_agency_reports_zeros(db, make_agency, make_user):
    u = make_user(make_agency())
    out = analytics_service.dashboard(db, principal(u), now=NOW)
    assert out["revenue"]["growth"] == 0.0
    assert _kpi(out, "conversionRate")["value"] == 0.0
    assert out["payments"]["pending"] == {"amount": 0.0, "count": 0}
    assert all(d["value"] == 0.0 for d in out["revenueData"])


def test_dashboard_endpoint(client, portfolio):
    h = auth_headers(portfolio["agent"])
    r = client.get("/api/analytics/dashboard", params={"period": "month"}, headers=h)
    assert r.status_code == 200
    assert r.json()["period"]["type"] == "month"
    assert len(r.json()["kpi"]) == 4

    r = client.get("/api/analytics/dashboard", params={"period": "custom", "startDate": "2026-10-01"}, headers=h)
    assert r.status_code == 400


def test_revenue_report(client, portfolio):
    h = auth_headers(portfolio["agent"])
    r = client.get("/api/analytics/revenue", params={"startDate": "2026-10-01", "endDate": "2026-10-31"}, headers=h)
    assert r.status_code == 200
    body = r.json()
    assert body["totalCommission"] == 1250.0
    assert [c["contractNumber"] for c in body["contracts"]] == ["CTR-000003", "CTR-000001"]


# -------------------- operational dashboard --------------------

OPS_NOW = datetime(2026, 10, 19, 10, 0)


@pytest.fixture()
def day(db, make_agency, make_user, make_client, make_property):
    a = make_agency()
    u = make_user(a, first_name="Jean", last_name="Dupont")
    cl = make_client(a, first_name="Catherine", last_name="Lefebvre")
    prop = make_property(a, city="Lyon")

    db.add_all(
        [
            Task(agency_id=a.id, user_id=u.id, title="Appeler M. Moreau", priority="HIGH", due_date=at(2026, 10, 19, 9, 30)),
            Task(agency_id=a.id, user_id=u.id, title="Classer dossiers", priority="LOW", due_date=at(2026, 10, 19, 8, 0)),
            Task(agency_id=a.id, user_id=u.id, title="Visite appartement", priority="URGENT", due_date=at(2026, 10, 20)),
            Task(agency_id=a.id, user_id=u.id, title="Déjà fait", priority="HIGH", status="COMPLETED", due_date=at(2026, 10, 19, 7)),
            Communication(
                agency_id=a.id, user_id=u.id, type="EMAIL", subject="Offre reçue", recipient="c@email.com",
                status="SENT", sent_at=at(2026, 10, 19, 8, 30),
            ),
            Communication(
                agency_id=a.id, type="EMAIL", content="Merci pour la visite", recipient="c@email.com",
                status="READ", sent_at=at(2026, 10, 17, 9, 0),
            ),
            Communication(agency_id=a.id, type="SMS", recipient="0600000000", status="SENT", sent_at=at(2026, 10, 19, 9)),
            Appointment(
                agency_id=a.id, user_id=u.id, client_id=cl.id, property_id=prop.id, title="Signature compromis",
                start_date=at(2026, 10, 19, 14), end_date=at(2026, 10, 19, 15),
            ),
            Appointment(
                agency_id=a.id, user_id=u.id, property_id=prop.id, title="Passage agence",
                start_date=at(2026, 10, 19, 11), end_date=at(2026, 10, 19, 11, 30), kind="estimation",
            ),
            Appointment(
                agency_id=a.id, user_id=u.id, title="Annulé", status="CANCELLED",
                start_date=at(2026, 10, 19, 16), end_date=at(2026, 10, 19, 17),
            ),
            Contract(
                agency_id=a.id, property_id=prop.id, client_id=cl.id, contract_number="CTR-000001", type="SALE",
                status="DRAFT", start_date=at(2026, 10, 1), price=1,
            ),
            Contract(
                agency_id=a.id, property_id=prop.id, client_id=cl.id, contract_number="CTR-000002", type="SALE",
                status="COMPLETED", start_date=at(2026, 10, 1), signed_date=at(2026, 10, 18, 11), price=1, commission=500.0,
            ),
        ]
    )
    db.commit()
    return u


def test_operational_dashboard(db, day):
    out = analytics_service.operational_dashboard(db, principal(day), now=OPS_NOW)

    assert out["stats"] == {"callsToMake": 2, "emailsUnread": 1, "todaysAppointments": 2, "pendingDeals": 1}

    assert [t["title"] for t in out["tasks"]] == ["Appeler M. Moreau", "Classer dossiers"]
    first = out["tasks"][0]
    assert first == {"id": first["id"], "title": "Appeler M. Moreau", "time": "09:30", "priority": "high", "completed": False, "type": "call"}
    assert out["tasks"][1]["type"] == "admin"

    msgs = out["messages"]
    assert [m["time"] for m in msgs] == ["1h", "2j"]
    assert msgs[0]["sender"] == "Jean Dupont"
    assert msgs[0]["preview"] == "Offre reçue"
    assert msgs[0]["unread"] is True
    assert msgs[1]["sender"] == "Système"
    assert msgs[1]["unread"] is False

    agenda = out["agenda"]
    assert [x["type"] for x in agenda] == ["estimation", "signature"]
    assert agenda[0]["client"] == "Client non spécifié"
    assert agenda[0]["location"] == "Lyon"
    assert agenda[1]["client"] == "Catherine Lefebvre"
    assert agenda[1]["time"] == "14:00 - 15:00"

    week = out["revenueData"]
    assert len(week) == 7
    assert week[-1]["name"] == "Lun"
    assert week[-2] == {"name": "Dim", "value": 500.0}


def test_operational_dashboard_endpoint(client, day):
    r = client.get("/api/analytics/operational-dashboard", headers=auth_headers(day))
    assert r.status_code == 200
    assert set(r.json()) == {"stats", "tasks", "messages", "agenda", "revenueData"}


def test_account_without_agency_cannot_read_analytics(client, make_user):
    orphan = make_user(None, role="ADMIN")
    r = client.get("/api/analytics/dashboard", headers=auth_headers(orphan))
    assert r.status_code == 400
