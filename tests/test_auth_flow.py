# tests/test_auth_flow.py
from __future__ import annotations

from agencycrm.models import User
from agencycrm.services import auth_service

from conftest import PASSWORD, auth_headers


def _login(client, email, code, password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password, "agencyCode": code})


def test_verify_agency(client, make_agency):
    make_agency(code="6165", name="Mon Agence")
    make_agency(code="7890", is_active=False)

    r = client.post("/api/auth/verify-agency", json={"code": "6165"})
    assert r.status_code == 200
    assert r.json()["agency"]["name"] == "Mon Agence"

    # unknown and deactivated codes look the same
    for code in ("0000", "7890"):
        r = client.post("/api/auth/verify-agency", json={"code": code})
        assert r.status_code == 404
        assert r.json()["detail"] == "Agency not found"


def test_login_returns_token_user_and_agency(client, db, make_agency, make_user):
    a = make_agency(code="6165")
    u = make_user(a, role="ADMIN", email="admin@agence.fr")

    r = _login(client, "  Admin@Agence.fr ", "6165")
    assert r.status_code == 200
    body = r.json()
    assert body["token"]
    assert body["user"]["email"] == "admin@agence.fr"
    assert body["user"]["role"] == "ADMIN"
    assert "passwordHash" not in body["user"]
    assert body["agency"]["code"] == "6165"

    db.expire_all()
    assert db.get(User, u.id).last_login_at is not None

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == u.id
    assert me.json()["agency"]["id"] == a.id


def test_every_login_failure_looks_the_same(client, make_agency, make_user):
    a = make_agency(code="6165")
    b = make_agency(code="7890")
    make_agency(code="5555", is_active=False)
    make_user(a, email="agent@agence.fr")
    make_user(a, email="parti@agence.fr", is_active=False)
    make_user(b, email="autre@agence.fr")

    attempts = [
        ("agent@agence.fr", "0000", PASSWORD),  # unknown agency
        ("agent@agence.fr", "5555", PASSWORD),  # inactive agency
        ("nobody@agence.fr", "6165", PASSWORD),  # unknown user
        ("parti@agence.fr", "6165", PASSWORD),  # inactive user
        ("agent@agence.fr", "6165", "wrong-password"),
        ("autre@agence.fr", "6165", PASSWORD),  # member of another agency
    ]
    for email, code, password in attempts:
        r = _login(client, email, code, password)
        assert r.status_code == 401, (email, code)
        assert r.json()["detail"] == "Invalid credentials"


def test_super_admin_logs_in_through_any_agency(client, make_agency, make_user):
    make_agency(code="6165")
    make_agency(code="7890")
    make_user(None, role="SUPER_ADMIN", email="root@agence.fr")

    assert _login(client, "root@agence.fr", "6165").status_code == 200
    assert _login(client, "root@agence.fr", "7890").status_code == 200


def test_missing_fields_are_schema_errors(client):
    r = client.post("/api/auth/login", json={"email": "a@agence.fr", "password": "x"})
    assert r.status_code == 422


def test_token_checks(client, db, make_agency, make_user):
    a = make_agency()
    u = make_user(a)

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Token abc"}).status_code == 401

    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"

    r = client.get("/api/auth/me", headers=auth_headers(u, minutes=-5))
    assert r.status_code == 401
    assert r.json()["detail"] == "Token expired"


def test_deactivation_revokes_existing_tokens(client, db, make_agency, make_user):
    a = make_agency()
    u = make_user(a)
    h = auth_headers(u)
    assert client.get("/api/auth/me", headers=h).status_code == 200

    a.is_active = False
    db.commit()
    assert client.get("/api/auth/me", headers=h).status_code == 401

    a.is_active = True
    u.is_active = False
    db.commit()
    assert client.get("/api/auth/me", headers=h).status_code == 401


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "abc-123"
    assert client.get("/api/health").headers["X-Request-ID"]


def test_unsafe_request_ids_are_replaced(client):
    r = client.get("/api/health", headers={"X-Request-ID": "bad id\"}{"})
    rid = r.headers["X-Request-ID"]
    assert rid != "bad id\"}{"
    assert len(rid) == 32

    r = client.get("/api/health", headers={"X-Request-ID": "x" * 200})
    assert len(r.headers["X-Request-ID"]) == 32


def test_failed_logins_still_pay_for_a_password_check(client, make_agency, monkeypatch):
    make_agency(code="6165")
    calls = []
    real = auth_service.verify_password

    def counting(password, stored):
        calls.append(password)
        return real(password, stored)

    monkeypatch.setattr(auth_service, "verify_password", counting)

    assert _login(client, "nobody@agence.fr", "0000").status_code == 401
    assert _login(client, "nobody@agence.fr", "6165").status_code == 401
    assert calls == [PASSWORD, PASSWORD]
