# agencycrm/routers/agency.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal, require
from ..db import get_db
from ..domain.roles import Capability
from ..domain.statuses import UPCOMING_APPOINTMENT_STATUSES, ContractStatus, PropertyStatus
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import AgencyNotFound, Forbidden
from ..models import Agency, Appointment, Client, Contract, Property
from ..schemas import AgencyOut, AgencySettingsUpdate, AgencyStatsOut
from ..services.records import apply_updates

router = APIRouter(prefix="/agency", tags=["agency"])

_UPCOMING = [s.value for s in UPCOMING_APPOINTMENT_STATUSES]


def _own_agency(db: Session, p: Principal, requested: Optional[int]) -> Agency:
    agency_id = write_agency_id(p, requested)
    if not p.is_super_admin and requested is not None and requested != agency_id:
        raise Forbidden("Access denied")
    row = db.get(Agency, agency_id)
    if row is None:
        raise AgencyNotFound()
    return row


@router.get("/settings", response_model=AgencyOut)
def get_settings(
    agency_id: Optional[int] = Query(default=None, alias="agencyId"),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return _own_agency(db, p, agency_id)


@router.put("/settings", response_model=AgencyOut)
def update_settings(
    payload: AgencySettingsUpdate,
    agency_id: Optional[int] = Query(default=None, alias="agencyId"),
    db: Session = Depends(get_db),
    p: Principal = Depends(require(Capability.AGENCY_SETTINGS_EDIT)),
):
    row = _own_agency(db, p, agency_id)
    apply_updates(row, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(row)
    return row


@router.get("/stats", response_model=AgencyStatsOut)
def get_stats(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    now = datetime.now()

    def count(model, *where) -> int:
        q = select(func.count()).select_from(model).where(scope_clause(p, model), *where)
        return int(db.scalar(q) or 0)

    upcoming_where = (Appointment.start_date >= now, Appointment.status.in_(_UPCOMING))

    stats = {
        "total_properties": count(Property),
        "available_properties": count(Property, Property.status == PropertyStatus.AVAILABLE.value),
        "sold_properties": count(Property, Property.status == PropertyStatus.SOLD.value),
        "total_contracts": count(Contract),
        "active_contracts": count(Contract, Contract.status == ContractStatus.ACTIVE.value),
        "total_clients": count(Client),
        "total_appointments": count(Appointment),
        "upcoming_appointments": count(Appointment, *upcoming_where),
    }

    recent_properties = db.scalars(
        select(Property)
        .where(scope_clause(p, Property))
        .options(selectinload(Property.photos), selectinload(Property.user), selectinload(Property.client))
        .order_by(desc(Property.created_at), desc(Property.id))
        .limit(5)
    ).all()

    upcoming = db.scalars(
        select(Appointment)
        .where(scope_clause(p, Appointment), *upcoming_where)
        .options(selectinload(Appointment.client), selectinload(Appointment.property), selectinload(Appointment.user))
        .order_by(Appointment.start_date.asc())
        .limit(5)
    ).all()

    return {
        "stats": stats,
        "recent_properties": list(recent_properties),
        "upcoming_appointments": list(upcoming),
    }
