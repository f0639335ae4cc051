# agencycrm/routers/properties.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy import desc, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import PropertyStatus, PropertyType
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import Conflict, NotFound
from ..models import Client, Property, PropertyPhoto, User
from ..schemas import Page, PhotoOut, PropertyCreate, PropertyOut, PropertyUpdate
from ..services import photos as photo_service
from ..services.numbering import next_number
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, apply_updates, contains, page_params, paginate
from ..services.storage import LocalFileStorage, get_storage

log = logging.getLogger("agencycrm.properties")

router = APIRouter(prefix="/properties", tags=["properties"])


def _with_refs(stmt):
    return stmt.options(
        selectinload(Property.photos),
        selectinload(Property.user),
        selectinload(Property.client),
    )


@router.get("", response_model=Page[PropertyOut])
def list_properties(
    status: Optional[PropertyStatus] = None,
    type: Optional[PropertyType] = None,
    city: Optional[str] = None,
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    min_surface: Optional[float] = Query(default=None, alias="minSurface"),
    max_surface: Optional[float] = Query(default=None, alias="maxSurface"),
    search: Optional[str] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Property).where(scope_clause(p, Property))
    if status:
        q = q.where(Property.status == status.value)
    if type:
        q = q.where(Property.type == type.value)
    if city:
        q = q.where(contains(Property.city, city))
    if min_price is not None:
        q = q.where(Property.price >= min_price)
    if max_price is not None:
        q = q.where(Property.price <= max_price)
    if min_surface is not None:
        q = q.where(Property.surface >= min_surface)
    if max_surface is not None:
        q = q.where(Property.surface <= max_surface)
    if search:
        q = q.where(
            or_(
                contains(Property.title, search),
                contains(Property.description, search),
                contains(Property.address, search),
                contains(Property.reference, search),
            )
        )
    q = _with_refs(q).order_by(desc(Property.created_at), desc(Property.id))
    return paginate(db, q, params)


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Property, property_id, p, "Property")


@router.post("", response_model=PropertyOut, status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    client = must_get_optional(db, Client, payload.client_id, p, "Client")
    user = must_get_optional(db, User, payload.user_id, p, "User")
    assert_same_agency(agency_id, client, user)

    data = payload.model_dump(exclude={"agency_id", "user_id"})
    row = Property(
        **data,
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
        reference=next_number(db, "PROP", agency_id),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("property_created", extra={"agency_id": agency_id, "entity": "property", "entity_id": row.id})
    return row


@router.put("/{property_id}", response_model=PropertyOut)
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Property, property_id, p, "Property")
    changes = payload.model_dump(exclude_unset=True)

    linked = []
    if changes.get("client_id") is not None:
        linked.append(must_get(db, Client, changes["client_id"], p, "Client"))
    if changes.get("user_id") is not None:
        linked.append(must_get(db, User, changes["user_id"], p, "User"))
    assert_same_agency(row.agency_id, *linked)

    apply_updates(row, changes)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{property_id}")
def delete_property(
    property_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: LocalFileStorage = Depends(get_storage),
):
    row = must_get(db, Property, property_id, p, "Property")
    files = [storage.path_for(ph.filename) for ph in row.photos]

    db.delete(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Property is still referenced by contracts, mandates or offers")

    for path in files:
        storage.delete(db, path)
    return {"ok": True}


# -------------------- photos --------------------

def _must_get_photo(db: Session, prop: Property, photo_id: int, p: Principal) -> PropertyPhoto:
    photo = must_get(db, PropertyPhoto, photo_id, p, "Photo")
    if photo.property_id != prop.id:
        raise NotFound("Photo")
    return photo


@router.get("/{property_id}/photos", response_model=list[PhotoOut])
def list_photos(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    prop = must_get(db, Property, property_id, p, "Property")
    return list(prop.photos)


@router.post("/{property_id}/photos", response_model=PhotoOut, status_code=201)
def upload_photo(
    property_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: LocalFileStorage = Depends(get_storage),
):
    prop = must_get(db, Property, property_id, p, "Property")
    stored = storage.save(file, image_only=True)
    try:
        return photo_service.add_photo(db, prop, stored)
    except Exception:
        db.rollback()
        storage.discard(stored)
        raise


@router.put("/{property_id}/photos/{photo_id}/main", response_model=PhotoOut)
def set_main_photo(
    property_id: int,
    photo_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get(db, Property, property_id, p, "Property")
    photo = _must_get_photo(db, prop, photo_id, p)
    return photo_service.set_main(db, photo)


@router.delete("/{property_id}/photos/{photo_id}")
def delete_photo(
    property_id: int,
    photo_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: LocalFileStorage = Depends(get_storage),
):
    prop = must_get(db, Property, property_id, p, "Property")
    photo = _must_get_photo(db, prop, photo_id, p)
    path = storage.path_for(photo.filename)

    promoted = photo_service.remove_photo(db, photo)
    storage.delete(db, path)
    return {"ok": True, "promotedPhotoId": promoted.id if promoted else None}
