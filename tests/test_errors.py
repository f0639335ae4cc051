# tests/test_errors.py
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from agencycrm.config import settings
from agencycrm.errors import ValidationFailed, internal_error_body

from conftest import auth_headers


@pytest.fixture()
def boom_client(app):
    @app.get("/api/boom")
    def boom():
        raise RuntimeError("database exploded")

    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def test_unhandled_errors_expose_details_outside_prod(boom_client, monkeypatch):
    monkeypatch.setattr(settings, "app_env", "local")
    r = boom_client.get("/api/boom")
    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "Internal server error"
    assert body["type"] == "RuntimeError"
    assert body["message"] == "database exploded"
    assert "Traceback" in body["details"]


def test_unhandled_errors_are_opaque_in_prod(boom_client, monkeypatch):
    monkeypatch.setattr(settings, "app_env", "prod")
    r = boom_client.get("/api/boom", headers={"X-Request-ID": "trace-42"})
    assert r.status_code == 500
    # the request id is the only thing a prod caller gets back
    assert r.json() == {"error": "Internal server error", "requestId": "trace-42"}


def test_store_error_code_is_reported(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "dev")

    class _Orig(Exception):
        sqlite_errorname = "SQLITE_CONSTRAINT_UNIQUE"

    exc = RuntimeError("unique failed")
    exc.orig = _Orig()
    assert internal_error_body(exc)["code"] == "SQLITE_CONSTRAINT_UNIQUE"


def test_validation_failures_list_every_field():
    exc = ValidationFailed("price", "must be positive", ("surface", "must be positive"))
    assert exc.status_code == 400
    assert exc.detail == [
        {"field": "price", "message": "must be positive"},
        {"field": "surface", "message": "must be positive"},
    ]


def test_unknown_routes_and_records(client, make_agency, make_user):
    u = make_user(make_agency())
    r = client.get("/api/properties/999", headers=auth_headers(u))
    assert r.status_code == 404
    assert r.json()["detail"] == "Property not found"
