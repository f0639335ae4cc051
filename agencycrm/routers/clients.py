# agencycrm/routers/clients.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import ClientType
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import Conflict
from ..models import Client, User
from ..schemas import ClientCreate, ClientOut, ClientUpdate, Page
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, apply_updates, contains, page_params, paginate

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=Page[ClientOut])
def list_clients(
    client_type: Optional[ClientType] = Query(default=None, alias="clientType"),
    search: Optional[str] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Client).where(scope_clause(p, Client))
    if client_type:
        q = q.where(Client.client_type == client_type.value)
    if search:
        q = q.where(
            or_(
                contains(Client.first_name, search),
                contains(Client.last_name, search),
                contains(Client.email, search),
                contains(Client.phone, search),
            )
        )
    q = q.options(selectinload(Client.user)).order_by(desc(Client.created_at), desc(Client.id))
    return paginate(db, q, params)


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Client, client_id, p, "Client")


@router.post("", response_model=ClientOut, status_code=201)
def create_client(payload: ClientCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    user = must_get_optional(db, User, payload.user_id, p, "User")
    assert_same_agency(agency_id, user)

    row = Client(
        **payload.model_dump(exclude={"agency_id", "user_id"}),
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{client_id}", response_model=ClientOut)
def update_client(
    client_id: int,
    payload: ClientUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Client, client_id, p, "Client")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("user_id") is not None:
        assert_same_agency(row.agency_id, must_get(db, User, changes["user_id"], p, "User"))

    apply_updates(row, changes)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{client_id}")
def delete_client(client_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Client, client_id, p, "Client")
    db.delete(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Client is still referenced by other records")
    return {"ok": True}
