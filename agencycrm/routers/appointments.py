# agencycrm/routers/appointments.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.analytics import end_of_day, start_of_day
from ..domain.statuses import AppointmentStatus
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import ValidationFailed
from ..models import Appointment, Client, Property, User
from ..schemas import AppointmentCreate, AppointmentOut, AppointmentUpdate, Page
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, apply_updates, guard_transition, page_params, paginate

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=Page[AppointmentOut])
def list_appointments(
    status: Optional[AppointmentStatus] = None,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Appointment).where(scope_clause(p, Appointment))
    if status:
        q = q.where(Appointment.status == status.value)
    if user_id is not None:
        q = q.where(Appointment.user_id == user_id)
    if start_date is not None:
        q = q.where(Appointment.start_date >= start_of_day(start_date))
    if end_date is not None:
        q = q.where(Appointment.start_date <= end_of_day(end_date))
    q = q.options(
        selectinload(Appointment.user),
        selectinload(Appointment.client),
        selectinload(Appointment.property),
    ).order_by(Appointment.start_date.asc(), Appointment.id.asc())
    return paginate(db, q, params)


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_appointment(appointment_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Appointment, appointment_id, p, "Appointment")


@router.post("", response_model=AppointmentOut, status_code=201)
def create_appointment(payload: AppointmentCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    linked = [
        must_get_optional(db, User, payload.user_id, p, "User"),
        must_get_optional(db, Client, payload.client_id, p, "Client"),
        must_get_optional(db, Property, payload.property_id, p, "Property"),
    ]
    assert_same_agency(agency_id, *linked)

    row = Appointment(
        **payload.model_dump(exclude={"agency_id", "user_id"}),
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{appointment_id}", response_model=AppointmentOut)
def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Appointment, appointment_id, p, "Appointment")
    changes = payload.model_dump(exclude_unset=True)
    guard_transition("appointment", row.status, changes.get("status"))
    if changes.get("user_id") is not None:
        assert_same_agency(row.agency_id, must_get(db, User, changes["user_id"], p, "User"))

    start = changes.get("start_date", row.start_date)
    end = changes.get("end_date", row.end_date)
    if start and end and end < start:
        raise ValidationFailed("endDate", "endDate must not be before startDate")

    apply_updates(row, changes)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{appointment_id}")
def delete_appointment(appointment_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Appointment, appointment_id, p, "Appointment")
    db.delete(row)
    db.commit()
    return {"ok": True}
