# agencycrm/services/ownership.py
from __future__ import annotations

from typing import Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..domain.tenancy import can_access
from ..errors import Forbidden, NotFound

T = TypeVar("T")


def assert_access(p, row) -> None:
    if not can_access(p, getattr(row, "agency_id", None)):
        raise Forbidden("Access denied")


def must_get(db: Session, model: Type[T], row_id: int, p, label: str) -> T:
    """404 when the row does not exist at all, 403 when it belongs to another agency."""
    row = db.get(model, int(row_id))
    if row is None:
        raise NotFound(label)
    assert_access(p, row)
    return row


def must_get_optional(db: Session, model: Type[T], row_id: Optional[int], p, label: str) -> Optional[T]:
    if row_id is None:
        return None
    return must_get(db, model, row_id, p, label)


def assert_same_agency(agency_id: int, *rows) -> None:
    """
    Linked records must live in the agency the new row is written to. Matters
    for super admins, who pass must_get for any agency.
    """
    for row in rows:
        if row is not None and row.agency_id != agency_id:
            raise Forbidden("Linked record belongs to another agency")
