# tests/test_records_api.py
from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from conftest import auth_headers


@pytest.fixture()
def ctx(make_agency, make_user, make_client, make_property):
    a = make_agency()
    u = make_user(a)
    return {
        "agency": a,
        "user": u,
        "h": auth_headers(u),
        "client": make_client(a),
        "property": make_property(a),
    }


def test_pagination_envelope(client, ctx):
    for i in range(5):
        r = client.post(
            "/api/clients",
            json={"firstName": f"Client{i}", "lastName": "Test", "phone": f"06000000{i:02d}"},
            headers=ctx["h"],
        )
        assert r.status_code == 201

    r = client.get("/api/clients", params={"page": 2, "limit": 2}, headers=ctx["h"])
    assert r.status_code == 200
    body = r.json()
    # the fixture client plus five new ones
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 6, "pages": 3}
    assert len(body["items"]) == 2

    r = client.get("/api/clients", params={"page": 4, "limit": 2}, headers=ctx["h"])
    assert r.json()["items"] == []

    assert client.get("/api/clients", params={"limit": 101}, headers=ctx["h"]).status_code == 422
    assert client.get("/api/clients", params={"page": 0}, headers=ctx["h"]).status_code == 422


def test_client_search_and_filters(client, ctx):
    client.post(
        "/api/clients",
        json={"firstName": "Catherine", "lastName": "Lefebvre", "phone": "0622334455", "clientType": "SELLER"},
        headers=ctx["h"],
    )
    r = client.get("/api/clients", params={"search": "lefeb"}, headers=ctx["h"])
    assert [c["lastName"] for c in r.json()["items"]] == ["Lefebvre"]

    r = client.get("/api/clients", params={"clientType": "SELLER"}, headers=ctx["h"])
    assert r.json()["pagination"]["total"] == 1

    # LIKE wildcards in the search text are literal
    r = client.get("/api/clients", params={"search": "%"}, headers=ctx["h"])
    assert r.json()["pagination"]["total"] == 0


def test_property_filters(client, ctx, make_property):
    make_property(ctx["agency"], title="Studio étudiant", type="STUDIO", price=90000, surface=20, city="Paris")
    make_property(ctx["agency"], title="Villa vue mer", type="VILLA", price=900000, surface=200, city="Nice")

    def titles(**params):
        r = client.get("/api/properties", params=params, headers=ctx["h"])
        assert r.status_code == 200
        return sorted(x["title"] for x in r.json()["items"])

    assert titles(type="VILLA") == ["Villa vue mer"]
    assert titles(minPrice=100000, maxPrice=500000) == ["Appartement T3"]
    assert titles(maxSurface=50) == ["Studio étudiant"]
    assert titles(city="pari") == ["Studio étudiant"]
    assert titles(search="vue") == ["Villa vue mer"]


def test_schema_errors_are_422_before_any_write(client, ctx):
    r = client.post("/api/properties", json={"title": "Sans prix", "type": "HOUSE"}, headers=ctx["h"])
    assert r.status_code == 422

    r = client.post(
        "/api/properties",
        json={"title": "x", "type": "CASTLE", "address": "a", "city": "b", "price": 1, "surface": 1},
        headers=ctx["h"],
    )
    assert r.status_code == 422

    r = client.get("/api/properties", headers=ctx["h"])
    assert r.json()["pagination"]["total"] == 1


def test_contract_completion_stamps_signed_date(client, ctx):
    r = client.post(
        "/api/contracts",
        json={
            "propertyId": ctx["property"].id,
            "clientId": ctx["client"].id,
            "type": "SALE",
            "startDate": "2026-10-01T09:00:00",
            "price": 250000,
            "commission": 7500,
        },
        headers=ctx["h"],
    )
    cid = r.json()["id"]
    assert r.json()["signedDate"] is None

    r = client.put(f"/api/contracts/{cid}", json={"status": "COMPLETED"}, headers=ctx["h"])
    assert r.status_code == 200
    assert r.json()["signedDate"] is not None

    r = client.put(f"/api/contracts/{cid}", json={"status": "ACTIVE"}, headers=ctx["h"])
    assert r.status_code == 400
    assert r.json()["detail"][0]["field"] == "status"


def test_offer_response_date(client, ctx):
    r = client.post(
        "/api/offers",
        json={"propertyId": ctx["property"].id, "clientId": ctx["client"].id, "amount": 240000},
        headers=ctx["h"],
    )
    assert r.status_code == 201
    offer = r.json()
    assert offer["offerNumber"] == "OFF-000001"
    assert offer["status"] == "PENDING"
    assert offer["responseDate"] is None

    r = client.put(f"/api/offers/{offer['id']}", json={"status": "COUNTER_OFFER"}, headers=ctx["h"])
    assert r.json()["responseDate"] is not None

    r = client.get("/api/offers", params={"propertyId": ctx["property"].id}, headers=ctx["h"])
    assert r.json()["pagination"]["total"] == 1


def test_payment_paid_date(client, ctx):
    r = client.post("/api/payments", json={"amount": 1500, "type": "COMMISSION"}, headers=ctx["h"])
    pay = r.json()
    assert pay["paymentNumber"] == "PAY-000001"
    assert pay["paidDate"] is None

    r = client.put(f"/api/payments/{pay['id']}", json={"status": "PAID"}, headers=ctx["h"])
    assert r.json()["paidDate"] is not None

    # PAID is terminal
    assert client.put(f"/api/payments/{pay['id']}", json={"status": "PENDING"}, headers=ctx["h"]).status_code == 400

    r = client.post("/api/payments", json={"amount": 50, "type": "FEE", "status": "PAID"}, headers=ctx["h"])
    assert r.json()["paidDate"] is not None


def test_task_completion_and_ordering(client, ctx):
    now = datetime.now().replace(microsecond=0)
    h = ctx["h"]

    def create(title, priority, due=None):
        body = {"title": title, "priority": priority}
        if due is not None:
            body["dueDate"] = due.isoformat()
        r = client.post("/api/tasks", json=body, headers=h)
        assert r.status_code == 201
        return r.json()

    low = create("Classer", "LOW", now + timedelta(days=1))
    create("Urgent sans date", "URGENT")
    create("Relance", "HIGH", now)

    r = client.get("/api/tasks", headers=h)
    assert [t["title"] for t in r.json()["items"]] == ["Urgent sans date", "Relance", "Classer"]
    assert low["userId"] == ctx["user"].id

    r = client.put(f"/api/tasks/{low['id']}", json={"status": "COMPLETED"}, headers=h)
    assert r.json()["completedAt"] is not None

    r = client.put(f"/api/tasks/{low['id']}", json={"status": "PENDING"}, headers=h)
    assert r.json()["completedAt"] is None

    r = client.get("/api/tasks", params={"priority": "HIGH"}, headers=h)
    assert [t["title"] for t in r.json()["items"]] == ["Relance"]


def test_appointment_dates(client, ctx):
    h = ctx["h"]
    body = {"title": "Visite", "startDate": "2026-10-20T10:00:00", "endDate": "2026-10-20T09:00:00"}
    assert client.post("/api/appointments", json=body, headers=h).status_code == 422

    body["endDate"] = "2026-10-20T11:00:00"
    r = client.post("/api/appointments", json=body, headers=h)
    assert r.status_code == 201
    appt = r.json()
    assert appt["status"] == "SCHEDULED"

    r = client.put(f"/api/appointments/{appt['id']}", json={"endDate": "2026-10-20T08:00:00"}, headers=h)
    assert r.status_code == 400

    r = client.get("/api/appointments", params={"startDate": "2026-10-20", "endDate": "2026-10-20"}, headers=h)
    assert r.json()["pagination"]["total"] == 1
    r = client.get("/api/appointments", params={"startDate": "2026-10-21"}, headers=h)
    assert r.json()["pagination"]["total"] == 0


def test_communications(client, ctx):
    h = ctx["h"]
    r = client.post(
        "/api/communications",
        json={"type": "EMAIL", "subject": "Offre", "recipient": "alain@email.com", "clientId": ctx["client"].id},
        headers=h,
    )
    assert r.status_code == 201
    comm = r.json()
    assert comm["sentAt"]
    assert comm["userId"] == ctx["user"].id
    assert comm["status"] == "SENT"

    r = client.put(f"/api/communications/{comm['id']}", json={"status": "READ"}, headers=h)
    assert r.json()["status"] == "READ"

    r = client.get("/api/communications", params={"status": "READ"}, headers=h)
    assert r.json()["pagination"]["total"] == 1


def test_mandate_numbers_and_delete(client, ctx):
    h = ctx["h"]
    body = {
        "propertyId": ctx["property"].id,
        "clientId": ctx["client"].id,
        "type": "EXCLUSIVE",
        "startDate": "2026-10-01T00:00:00",
    }
    first = client.post("/api/mandates", json=body, headers=h).json()
    second = client.post("/api/mandates", json=body, headers=h).json()
    assert (first["mandateNumber"], second["mandateNumber"]) == ("MAND-000001", "MAND-000002")

    assert client.delete(f"/api/mandates/{first['id']}", headers=h).json() == {"ok": True}
    assert client.get(f"/api/mandates/{first['id']}", headers=h).status_code == 404

    # numbers are never reused after a delete
    third = client.post("/api/mandates", json=body, headers=h).json()
    assert third["mandateNumber"] == "MAND-000003"


def _contract(client, ctx):
    r = client.post(
        "/api/contracts",
        json={
            "propertyId": ctx["property"].id,
            "clientId": ctx["client"].id,
            "type": "SALE",
            "startDate": "2026-10-01T09:00:00",
            "endDate": "2026-12-01T09:00:00",
            "price": 250000,
        },
        headers=ctx["h"],
    )
    assert r.status_code == 201
    return r.json()


def test_explicit_null_for_required_field_is_rejected(client, ctx):
    contract = _contract(client, ctx)

    r = client.put(f"/api/contracts/{contract['id']}", json={"status": None, "notes": "x"}, headers=ctx["h"])
    assert r.status_code == 400
    assert r.json()["detail"] == [{"field": "status", "message": "may not be null"}]
    # nothing from the rejected payload was written
    assert client.get(f"/api/contracts/{contract['id']}", headers=ctx["h"]).json()["notes"] is None

    r = client.put(f"/api/properties/{ctx['property'].id}", json={"title": None}, headers=ctx["h"])
    assert r.status_code == 400
    assert r.json()["detail"][0]["field"] == "title"

    r = client.put(f"/api/tasks/{_task(client, ctx)['id']}", json={"priority": None}, headers=ctx["h"])
    assert r.status_code == 400

    # nullable columns may still be cleared
    r = client.put(f"/api/contracts/{contract['id']}", json={"endDate": None}, headers=ctx["h"])
    assert r.status_code == 200
    assert r.json()["endDate"] is None


def _task(client, ctx):
    return client.post("/api/tasks", json={"title": "Relance"}, headers=ctx["h"]).json()


def test_referenced_rows_cannot_be_deleted(client, ctx):
    contract = _contract(client, ctx)

    r = client.delete(f"/api/properties/{ctx['property'].id}", headers=ctx["h"])
    assert r.status_code == 409
    r = client.delete(f"/api/clients/{ctx['client'].id}", headers=ctx["h"])
    assert r.status_code == 409

    # the contract still points at live rows
    body = client.get(f"/api/contracts/{contract['id']}", headers=ctx["h"]).json()
    assert body["propertyId"] == ctx["property"].id
    assert client.get(f"/api/properties/{ctx['property'].id}", headers=ctx["h"]).status_code == 200

    assert client.delete(f"/api/contracts/{contract['id']}", headers=ctx["h"]).json() == {"ok": True}
    assert client.delete(f"/api/properties/{ctx['property'].id}", headers=ctx["h"]).json() == {"ok": True}
