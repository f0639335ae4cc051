# agencycrm/routers/communications.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import CommunicationStatus, CommunicationType
from ..domain.tenancy import scope_clause, write_agency_id
from ..models import Client, Communication, Property
from ..schemas import CommunicationCreate, CommunicationOut, CommunicationUpdate, Page
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, page_params, paginate

router = APIRouter(prefix="/communications", tags=["communications"])


@router.get("", response_model=Page[CommunicationOut])
def list_communications(
    type: Optional[CommunicationType] = None,
    status: Optional[CommunicationStatus] = None,
    client_id: Optional[int] = Query(default=None, alias="clientId"),
    property_id: Optional[int] = Query(default=None, alias="propertyId"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Communication).where(scope_clause(p, Communication))
    if type:
        q = q.where(Communication.type == type.value)
    if status:
        q = q.where(Communication.status == status.value)
    if client_id is not None:
        q = q.where(Communication.client_id == client_id)
    if property_id is not None:
        q = q.where(Communication.property_id == property_id)
    q = q.options(selectinload(Communication.user), selectinload(Communication.client)).order_by(
        desc(Communication.sent_at), desc(Communication.id)
    )
    return paginate(db, q, params)


@router.get("/{communication_id}", response_model=CommunicationOut)
def get_communication(communication_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Communication, communication_id, p, "Communication")


@router.post("", response_model=CommunicationOut, status_code=201)
def create_communication(
    payload: CommunicationCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    agency_id = write_agency_id(p, payload.agency_id)
    client = must_get_optional(db, Client, payload.client_id, p, "Client")
    prop = must_get_optional(db, Property, payload.property_id, p, "Property")
    assert_same_agency(agency_id, client, prop)

    row = Communication(
        **payload.model_dump(exclude={"agency_id"}),
        agency_id=agency_id,
        user_id=p.user_id,
        sent_at=datetime.now(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{communication_id}", response_model=CommunicationOut)
def update_communication(
    communication_id: int,
    payload: CommunicationUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Communication, communication_id, p, "Communication")
    row.status = payload.status
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{communication_id}")
def delete_communication(communication_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Communication, communication_id, p, "Communication")
    db.delete(row)
    db.commit()
    return {"ok": True}
