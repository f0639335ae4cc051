# agencycrm/routers/offers.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import OFFER_RESPONSE_STATUSES, OfferStatus
from ..domain.tenancy import scope_clause, write_agency_id
from ..models import Client, Offer, Property, User
from ..schemas import OfferCreate, OfferOut, OfferUpdate, Page
from ..services.numbering import next_number
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, apply_updates, guard_transition, page_params, paginate

router = APIRouter(prefix="/offers", tags=["offers"])

_RESPONSES = {s.value for s in OFFER_RESPONSE_STATUSES}


@router.get("", response_model=Page[OfferOut])
def list_offers(
    status: Optional[OfferStatus] = None,
    property_id: Optional[int] = Query(default=None, alias="propertyId"),
    client_id: Optional[int] = Query(default=None, alias="clientId"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Offer).where(scope_clause(p, Offer))
    if status:
        q = q.where(Offer.status == status.value)
    if property_id is not None:
        q = q.where(Offer.property_id == property_id)
    if client_id is not None:
        q = q.where(Offer.client_id == client_id)
    q = q.options(selectinload(Offer.property), selectinload(Offer.client)).order_by(
        desc(Offer.submitted_date), desc(Offer.id)
    )
    return paginate(db, q, params)


@router.get("/{offer_id}", response_model=OfferOut)
def get_offer(offer_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Offer, offer_id, p, "Offer")


@router.post("", response_model=OfferOut, status_code=201)
def create_offer(payload: OfferCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    prop = must_get(db, Property, payload.property_id, p, "Property")
    client = must_get(db, Client, payload.client_id, p, "Client")
    user = must_get_optional(db, User, payload.user_id, p, "User")
    assert_same_agency(agency_id, prop, client, user)

    row = Offer(
        **payload.model_dump(exclude={"agency_id", "user_id", "submitted_date"}),
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
        submitted_date=payload.submitted_date or datetime.now(),
        offer_number=next_number(db, "OFF", agency_id),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{offer_id}", response_model=OfferOut)
def update_offer(
    offer_id: int,
    payload: OfferUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Offer, offer_id, p, "Offer")
    changes = payload.model_dump(exclude_unset=True)
    target = changes.get("status")
    guard_transition("offer", row.status, target)

    if target in _RESPONSES and target != row.status:
        row.response_date = datetime.now()

    apply_updates(row, changes)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{offer_id}")
def delete_offer(offer_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Offer, offer_id, p, "Offer")
    db.delete(row)
    db.commit()
    return {"ok": True}
