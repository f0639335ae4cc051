# tests/conftest.py
from __future__ import annotations

from datetime import datetime
from itertools import count
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agencycrm.auth import Principal, principal_from_user
from agencycrm.config import settings
from agencycrm.db import Base, enable_sqlite_foreign_keys, get_db
from agencycrm.main import create_app
from agencycrm.models import Agency, Client, Property, User
from agencycrm.services.auth_service import create_access_token, hash_password

PASSWORD = "secret123"

_seq = count(1)


@pytest.fixture(autouse=True)
def _fast_hashes(monkeypatch):
    monkeypatch.setattr(settings, "password_pbkdf2_iters", 1_000)


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture()
def app(session_factory, upload_dir):
    app = create_app()

    def _get_db():
        s = session_factory()
        try:
            yield s
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    return app


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


# -------------------- factories --------------------

@pytest.fixture()
def make_agency(db):
    def _make(code: Optional[str] = None, name: str = "Agence Test", is_active: bool = True) -> Agency:
        row = Agency(code=code or f"A{next(_seq):04d}", name=name, is_active=is_active)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


@pytest.fixture()
def make_user(db):
    def _make(
        agency: Optional[Agency],
        role: str = "AGENT",
        email: Optional[str] = None,
        password: str = PASSWORD,
        is_active: bool = True,
        first_name: str = "Marie",
        last_name: str = "Martin",
    ) -> User:
        row = User(
            email=email or f"user{next(_seq)}@agence.fr",
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            agency_id=agency.id if agency is not None else None,
            is_active=is_active,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


@pytest.fixture()
def make_client(db):
    def _make(agency: Agency, first_name: str = "Alain", last_name: str = "Moreau", **kw) -> Client:
        row = Client(
            agency_id=agency.id,
            first_name=first_name,
            last_name=last_name,
            phone=kw.pop("phone", "+33 6 11 22 33 44"),
            **kw,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


@pytest.fixture()
def make_property(db):
    def _make(agency: Agency, title: str = "Appartement T3", **kw) -> Property:
        row = Property(
            agency_id=agency.id,
            reference=kw.pop("reference", f"REF-{next(_seq):06d}"),
            title=title,
            type=kw.pop("type", "APARTMENT"),
            address=kw.pop("address", "15 Rue de la République"),
            city=kw.pop("city", "Lyon"),
            price=kw.pop("price", 250000.0),
            surface=kw.pop("surface", 70.0),
            **kw,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


def auth_headers(user: User, minutes: Optional[int] = None) -> dict[str, str]:
    token = create_access_token(user_id=user.id, role=user.role, agency_id=user.agency_id, minutes=minutes)
    return {"Authorization": f"Bearer {token}"}


def principal(user: User) -> Principal:
    return principal_from_user(user)


def at(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute)
