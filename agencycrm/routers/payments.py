# agencycrm/routers/payments.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import PaymentStatus, PaymentType
from ..domain.tenancy import scope_clause, write_agency_id
from ..models import Client, Contract, Payment, User
from ..schemas import Page, PaymentCreate, PaymentOut, PaymentUpdate
from ..services.numbering import next_number
from ..services.ownership import assert_same_agency, must_get_optional, must_get
from ..services.records import PageParams, apply_updates, guard_transition, page_params, paginate

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=Page[PaymentOut])
def list_payments(
    status: Optional[PaymentStatus] = None,
    type: Optional[PaymentType] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Payment).where(scope_clause(p, Payment))
    if status:
        q = q.where(Payment.status == status.value)
    if type:
        q = q.where(Payment.type == type.value)
    q = q.options(selectinload(Payment.client)).order_by(desc(Payment.created_at), desc(Payment.id))
    return paginate(db, q, params)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(payment_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Payment, payment_id, p, "Payment")


@router.post("", response_model=PaymentOut, status_code=201)
def create_payment(payload: PaymentCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    contract = must_get_optional(db, Contract, payload.contract_id, p, "Contract")
    client = must_get_optional(db, Client, payload.client_id, p, "Client")
    user = must_get_optional(db, User, payload.user_id, p, "User")
    assert_same_agency(agency_id, contract, client, user)

    row = Payment(
        **payload.model_dump(exclude={"agency_id", "user_id"}),
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
        payment_number=next_number(db, "PAY", agency_id),
    )
    if row.status == PaymentStatus.PAID.value:
        row.paid_date = datetime.now()

    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{payment_id}", response_model=PaymentOut)
def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Payment, payment_id, p, "Payment")
    changes = payload.model_dump(exclude_unset=True)
    target = changes.get("status")
    guard_transition("payment", row.status, target)

    if target == PaymentStatus.PAID.value and row.status != PaymentStatus.PAID.value:
        row.paid_date = datetime.now()

    apply_updates(row, changes)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{payment_id}")
def delete_payment(payment_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Payment, payment_id, p, "Payment")
    db.delete(row)
    db.commit()
    return {"ok": True}
