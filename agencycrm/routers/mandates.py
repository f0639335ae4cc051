# agencycrm/routers/mandates.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import MandateStatus, MandateType
from ..domain.tenancy import scope_clause, write_agency_id
from ..models import Client, Mandate, Property, User
from ..schemas import MandateCreate, MandateOut, MandateUpdate, Page
from ..services.numbering import next_number
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, apply_updates, guard_transition, page_params, paginate

router = APIRouter(prefix="/mandates", tags=["mandates"])


@router.get("", response_model=Page[MandateOut])
def list_mandates(
    status: Optional[MandateStatus] = None,
    type: Optional[MandateType] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Mandate).where(scope_clause(p, Mandate))
    if status:
        q = q.where(Mandate.status == status.value)
    if type:
        q = q.where(Mandate.type == type.value)
    q = q.options(
        selectinload(Mandate.property),
        selectinload(Mandate.client),
        selectinload(Mandate.user),
    ).order_by(desc(Mandate.created_at), desc(Mandate.id))
    return paginate(db, q, params)


@router.get("/{mandate_id}", response_model=MandateOut)
def get_mandate(mandate_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Mandate, mandate_id, p, "Mandate")


@router.post("", response_model=MandateOut, status_code=201)
def create_mandate(payload: MandateCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    prop = must_get(db, Property, payload.property_id, p, "Property")
    client = must_get(db, Client, payload.client_id, p, "Client")
    user = must_get_optional(db, User, payload.user_id, p, "User")
    assert_same_agency(agency_id, prop, client, user)

    row = Mandate(
        **payload.model_dump(exclude={"agency_id", "user_id"}),
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
        mandate_number=next_number(db, "MAND", agency_id),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{mandate_id}", response_model=MandateOut)
def update_mandate(
    mandate_id: int,
    payload: MandateUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Mandate, mandate_id, p, "Mandate")
    changes = payload.model_dump(exclude_unset=True)
    guard_transition("mandate", row.status, changes.get("status"))
    if changes.get("user_id") is not None:
        assert_same_agency(row.agency_id, must_get(db, User, changes["user_id"], p, "User"))

    apply_updates(row, changes)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{mandate_id}")
def delete_mandate(mandate_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Mandate, mandate_id, p, "Mandate")
    db.delete(row)
    db.commit()
    return {"ok": True}
