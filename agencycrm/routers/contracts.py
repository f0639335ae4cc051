# agencycrm/routers/contracts.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import ContractStatus, ContractType
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import Conflict
from ..models import Client, Contract, Property, User
from ..schemas import ContractCreate, ContractOut, ContractUpdate, Page
from ..services.numbering import next_number
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, apply_updates, guard_transition, page_params, paginate

router = APIRouter(prefix="/contracts", tags=["contracts"])


def _with_refs(stmt):
    return stmt.options(
        selectinload(Contract.property),
        selectinload(Contract.client),
        selectinload(Contract.user),
    )


@router.get("", response_model=Page[ContractOut])
def list_contracts(
    type: Optional[ContractType] = None,
    status: Optional[ContractStatus] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Contract).where(scope_clause(p, Contract))
    if type:
        q = q.where(Contract.type == type.value)
    if status:
        q = q.where(Contract.status == status.value)
    q = _with_refs(q).order_by(desc(Contract.created_at), desc(Contract.id))
    return paginate(db, q, params)


@router.get("/{contract_id}", response_model=ContractOut)
def get_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Contract, contract_id, p, "Contract")


@router.post("", response_model=ContractOut, status_code=201)
def create_contract(payload: ContractCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    prop = must_get(db, Property, payload.property_id, p, "Property")
    client = must_get(db, Client, payload.client_id, p, "Client")
    user = must_get_optional(db, User, payload.user_id, p, "User")
    assert_same_agency(agency_id, prop, client, user)

    row = Contract(
        **payload.model_dump(exclude={"agency_id", "user_id"}),
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
        contract_number=next_number(db, "CTR", agency_id),
    )
    if row.status == ContractStatus.COMPLETED.value and row.signed_date is None:
        row.signed_date = datetime.now()

    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{contract_id}", response_model=ContractOut)
def update_contract(
    contract_id: int,
    payload: ContractUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Contract, contract_id, p, "Contract")
    changes = payload.model_dump(exclude_unset=True)
    guard_transition("contract", row.status, changes.get("status"))
    if changes.get("user_id") is not None:
        assert_same_agency(row.agency_id, must_get(db, User, changes["user_id"], p, "User"))

    apply_updates(row, changes)
    # revenue is keyed on signed_date; a completed contract always has one
    if row.status == ContractStatus.COMPLETED.value and row.signed_date is None:
        row.signed_date = datetime.now()

    db.commit()
    db.refresh(row)
    return row


@router.delete("/{contract_id}")
def delete_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Contract, contract_id, p, "Contract")
    db.delete(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Contract is still referenced by payments or documents")
    return {"ok": True}
