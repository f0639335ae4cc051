# agencycrm/services/auth_service.py
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any

import jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.roles import Role
from ..errors import AgencyNotFound, InvalidCredentials
from ..models import Agency, User

log = logging.getLogger("agencycrm.auth")


def _now() -> datetime:
    return datetime.now()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(settings.password_pbkdf2_iters)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        iters = int(iters_s)
        salt = base64.b64decode(salt_b64.encode())
        dk = base64.b64decode(dk_b64.encode())
        test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
        return hmac.compare_digest(test, dk)
    except (ValueError, TypeError):
        return False


# cached per iteration count; hash_password reads the same setting
@lru_cache(maxsize=4)
def _dummy_hash(iters: int) -> str:
    return hash_password("agencycrm-dummy-password")


def burn_password_check(password: str) -> None:
    """Same PBKDF2 cost as a real check, for login branches with no user to check against."""
    verify_password(password, _dummy_hash(int(settings.password_pbkdf2_iters)))


def create_access_token(*, user_id: int, role: str, agency_id: int | None, minutes: int | None = None) -> str:
    now = _now()
    ttl = int(minutes if minutes is not None else settings.jwt_exp_minutes)
    payload: dict[str, Any] = {
        "sub": str(int(user_id)),
        "role": str(role),
        "agency_id": agency_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    # raises jwt.PyJWTError on bad signature or expiry
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def find_active_agency(db: Session, code: str) -> Agency | None:
    code = (code or "").strip()
    if not code:
        return None
    return db.scalar(select(Agency).where(Agency.code == code, Agency.is_active.is_(True)))


def verify_agency(db: Session, code: str) -> Agency:
    """
    First login step. The 404 body never says whether the code exists but is
    deactivated.
    """
    agency = find_active_agency(db, code)
    if agency is None:
        raise AgencyNotFound()
    return agency


def login(db: Session, *, email: str, password: str, agency_code: str) -> dict[str, Any]:
    """
    Second login step. Every failing factor collapses into InvalidCredentials
    so the response cannot be used to enumerate agencies or accounts.
    """
    agency = find_active_agency(db, agency_code)
    if agency is None:
        burn_password_check(password)
        log.info("login_rejected", extra={"entity": "agency"})
        raise InvalidCredentials()

    user = db.scalar(select(User).where(User.email == normalize_email(email)))
    if user is None or not user.is_active:
        burn_password_check(password)
        log.info("login_rejected", extra={"entity": "user", "agency_id": agency.id})
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        log.info("login_rejected", extra={"entity": "password", "agency_id": agency.id, "user_id": user.id})
        raise InvalidCredentials()

    # users are pinned to their agency; only super admins log in anywhere
    if user.role != Role.SUPER_ADMIN.value and user.agency_id != agency.id:
        log.info("login_rejected", extra={"entity": "agency_mismatch", "agency_id": agency.id, "user_id": user.id})
        raise InvalidCredentials()

    user.last_login_at = _now()
    db.commit()
    db.refresh(user)

    token = create_access_token(user_id=user.id, role=user.role, agency_id=user.agency_id)
    log.info("login_ok", extra={"agency_id": agency.id, "user_id": user.id})
    return {"token": token, "user": user, "agency": agency}
