# agencycrm/services/photos.py
"""
Property photos. A property with photos has exactly one main photo; one
without photos has none. Every mutation below ends in a single commit so the
invariant is never observable half-applied.
"""
from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..models import Property, PropertyPhoto
from .storage import StoredFile


def _photos(db: Session, property_id: int) -> list[PropertyPhoto]:
    return list(
        db.scalars(
            select(PropertyPhoto)
            .where(PropertyPhoto.property_id == property_id)
            .order_by(PropertyPhoto.sort_order, PropertyPhoto.id)
        ).all()
    )


def add_photo(db: Session, prop: Property, stored: StoredFile) -> PropertyPhoto:
    count = int(
        db.scalar(select(func.count()).select_from(PropertyPhoto).where(PropertyPhoto.property_id == prop.id)) or 0
    )
    max_order = db.scalar(select(func.max(PropertyPhoto.sort_order)).where(PropertyPhoto.property_id == prop.id))

    row = PropertyPhoto(
        agency_id=prop.agency_id,
        property_id=prop.id,
        filename=stored.filename,
        url=stored.url,
        is_main=count == 0,
        sort_order=(int(max_order) + 1) if max_order is not None else 0,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def set_main(db: Session, photo: PropertyPhoto) -> PropertyPhoto:
    db.execute(
        update(PropertyPhoto)
        .where(PropertyPhoto.property_id == photo.property_id, PropertyPhoto.id != photo.id)
        .values(is_main=False)
        .execution_options(synchronize_session="fetch")
    )
    photo.is_main = True
    db.commit()
    db.refresh(photo)
    return photo


def remove_photo(db: Session, photo: PropertyPhoto) -> PropertyPhoto | None:
    """Deletes the row and returns the photo promoted to main, if any."""
    property_id = photo.property_id
    was_main = bool(photo.is_main)
    db.delete(photo)
    db.flush()

    promoted = None
    if was_main:
        remaining = _photos(db, property_id)
        if remaining:
            promoted = remaining[0]
            promoted.is_main = True
    db.commit()
    return promoted


def main_photo(db: Session, property_id: int) -> PropertyPhoto | None:
    return db.scalar(
        select(PropertyPhoto).where(PropertyPhoto.property_id == property_id, PropertyPhoto.is_main.is_(True))
    )
