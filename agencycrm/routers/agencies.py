# agencycrm/routers/agencies.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Principal, require
from ..db import get_db
from ..domain.roles import Capability
from ..errors import Conflict, NotFound
from ..models import Agency
from ..schemas import AgencyCreate, AgencyOut, AgencyUpdate, Page
from ..services.records import PageParams, apply_updates, page_params, paginate

log = logging.getLogger("agencycrm.agencies")

router = APIRouter(prefix="/agencies", tags=["agencies"])

manage = require(Capability.AGENCY_MANAGE)


def _code_taken(db: Session, code: str, exclude_id: int | None = None) -> bool:
    q = select(Agency.id).where(Agency.code == code)
    if exclude_id is not None:
        q = q.where(Agency.id != exclude_id)
    return db.scalar(q) is not None


def _must_get_agency(db: Session, agency_id: int) -> Agency:
    row = db.get(Agency, agency_id)
    if row is None:
        raise NotFound("Agency")
    return row


@router.get("", response_model=Page[AgencyOut])
def list_agencies(
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(manage),
):
    q = select(Agency).order_by(desc(Agency.created_at), desc(Agency.id))
    return paginate(db, q, params)


@router.get("/{agency_id}", response_model=AgencyOut)
def get_agency(agency_id: int, db: Session = Depends(get_db), p: Principal = Depends(manage)):
    return _must_get_agency(db, agency_id)


@router.post("", response_model=AgencyOut, status_code=201)
def create_agency(payload: AgencyCreate, db: Session = Depends(get_db), p: Principal = Depends(manage)):
    code = payload.code.strip()
    if _code_taken(db, code):
        raise Conflict("Agency code already in use")

    row = Agency(**payload.model_dump(exclude={"code"}), code=code, is_active=True)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Agency code already in use")
    db.refresh(row)

    log.info("agency_created", extra={"agency_id": row.id, "user_id": p.user_id})
    return row


@router.put("/{agency_id}", response_model=AgencyOut)
def update_agency(
    agency_id: int,
    payload: AgencyUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(manage),
):
    row = _must_get_agency(db, agency_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("code") is not None:
        changes["code"] = changes["code"].strip()
        if _code_taken(db, changes["code"], exclude_id=row.id):
            raise Conflict("Agency code already in use")

    apply_updates(row, changes)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{agency_id}", response_model=AgencyOut)
def deactivate_agency(agency_id: int, db: Session = Depends(get_db), p: Principal = Depends(manage)):
    """Soft delete. Members can no longer log in or use existing tokens."""
    row = _must_get_agency(db, agency_id)
    row.is_active = False
    db.commit()
    db.refresh(row)
    log.info("agency_deactivated", extra={"agency_id": row.id, "user_id": p.user_id})
    return row
