# agencycrm/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .db import get_db
from .domain.roles import Capability, Role, has_capability
from .errors import Forbidden, Unauthenticated
from .models import Agency, User
from .services.auth_service import decode_access_token


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: str
    agency_id: int | None
    is_super_admin: bool = False


def _bearer_token(authorization: str | None) -> str:
    if not authorization or not str(authorization).lower().startswith("bearer "):
        raise Unauthenticated("Not authenticated")
    token = str(authorization).split(" ", 1)[1].strip()
    if not token:
        raise Unauthenticated("Not authenticated")
    return token


def principal_from_user(user: User) -> Principal:
    return Principal(
        user_id=int(user.id),
        email=str(user.email),
        role=str(user.role),
        agency_id=int(user.agency_id) if user.agency_id is not None else None,
        is_super_admin=user.role == Role.SUPER_ADMIN.value,
    )


def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Bearer token only. Identity is reloaded from the users table on every
    request so deactivation takes effect without waiting for token expiry.
    """
    token = _bearer_token(authorization)
    try:
        claims = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.PyJWTError:
        raise Unauthenticated("Invalid token")

    sub = str(claims.get("sub") or "")
    if not sub.isdigit():
        raise Unauthenticated("Invalid token")

    user = db.get(User, int(sub))
    if user is None or not user.is_active:
        raise Unauthenticated("User not found or inactive")

    p = principal_from_user(user)
    if not p.is_super_admin and p.agency_id is not None:
        agency = db.get(Agency, p.agency_id)
        if agency is None or not agency.is_active:
            raise Unauthenticated("Agency inactive")

    # read back by StructuredLoggingMiddleware
    request.state.user_id = p.user_id
    request.state.agency_id = p.agency_id
    return p


def require(capability: Capability):
    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if not has_capability(p.role, capability):
            raise Forbidden("Insufficient permissions")
        return p

    return _dep
