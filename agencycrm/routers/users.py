# agencycrm/routers/users.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require
from ..db import get_db
from ..domain.roles import Capability, Role, can_grant, has_capability
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import Conflict, Forbidden, ValidationFailed
from ..models import Agency, User
from ..schemas import Page, UserCreate, UserOut, UserUpdate
from ..services.auth_service import hash_password, normalize_email
from ..services.ownership import must_get
from ..services.records import PageParams, page_params, paginate

log = logging.getLogger("agencycrm.users")

router = APIRouter(prefix="/users", tags=["users"])


def _email_taken(db: Session, email: str, exclude_id: int | None = None) -> bool:
    q = select(User.id).where(User.email == email)
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    return db.scalar(q) is not None


@router.get("", response_model=Page[UserOut])
def list_users(
    role: Optional[Role] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(require(Capability.USER_LIST)),
):
    q = select(User).where(scope_clause(p, User))
    if role:
        q = q.where(User.role == role.value)
    if is_active is not None:
        q = q.where(User.is_active.is_(is_active))
    q = q.order_by(desc(User.created_at), desc(User.id))
    return paginate(db, q, params)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, User, user_id, p, "User")


@router.post("", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require(Capability.USER_CREATE)),
):
    if not can_grant(p.role, payload.role):
        raise Forbidden(f"Cannot assign role {payload.role}")

    # super admins are the only accounts without an agency
    agency_id = None if payload.role == Role.SUPER_ADMIN.value else write_agency_id(p, payload.agency_id)

    email = normalize_email(payload.email)
    if _email_taken(db, email):
        raise Conflict("Email already in use")

    row = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=payload.role,
        agency_id=agency_id,
        is_active=payload.is_active,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already in use")
    db.refresh(row)

    log.info("user_created", extra={"agency_id": agency_id, "user_id": p.user_id, "entity": "user", "entity_id": row.id})
    return row


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, User, user_id, p, "User")
    is_self = row.id == p.user_id

    if not is_self:
        if not has_capability(p.role, Capability.USER_EDIT_ANY):
            raise Forbidden("Access denied")
        if not can_grant(p.role, row.role):
            raise Forbidden("Cannot edit a user of equal or higher role")

    changes = payload.model_dump(exclude_unset=True)

    new_role = changes.pop("role", None)
    requested_agency = changes.pop("agency_id", None)
    if new_role is not None and new_role != row.role:
        if not has_capability(p.role, Capability.USER_EDIT_ANY) or not can_grant(p.role, new_role):
            raise Forbidden(f"Cannot assign role {new_role}")
        # only super admins live outside an agency
        if new_role == Role.SUPER_ADMIN.value:
            row.agency_id = None
        elif row.agency_id is None:
            agency_id = write_agency_id(p, requested_agency)
            if db.get(Agency, agency_id) is None:
                raise ValidationFailed("agencyId", "Unknown agency")
            row.agency_id = agency_id
        row.role = new_role

    if "is_active" in changes:
        active = changes.pop("is_active")
        if active is not None and active != row.is_active:
            if is_self or not has_capability(p.role, Capability.USER_EDIT_ANY):
                raise Forbidden("Cannot change activation of this account")
            row.is_active = active

    password = changes.pop("password", None)
    if password:
        row.password_hash = hash_password(password)

    if changes.get("email") is not None:
        email = normalize_email(changes.pop("email"))
        if _email_taken(db, email, exclude_id=row.id):
            raise Conflict("Email already in use")
        row.email = email

    for k, v in changes.items():
        if v is not None:
            setattr(row, k, v)

    db.commit()
    db.refresh(row)
    return row


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(require(Capability.USER_DELETE)),
):
    if user_id == p.user_id:
        raise ValidationFailed("id", "You cannot delete your own account")

    row = must_get(db, User, user_id, p, "User")
    if not can_grant(p.role, row.role):
        raise Forbidden("Cannot delete a user of equal or higher role")

    db.delete(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User still owns records; deactivate the account instead")
    return {"ok": True}
