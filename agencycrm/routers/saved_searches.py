# agencycrm/routers/saved_searches.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import Forbidden
from ..models import SavedSearch
from ..schemas import Page, SavedSearchCreate, SavedSearchOut, SavedSearchUpdate
from ..services.ownership import must_get
from ..services.records import PageParams, page_params, paginate

router = APIRouter(prefix="/saved-searches", tags=["saved-searches"])


def _must_get_own(db: Session, search_id: int, p: Principal) -> SavedSearch:
    row = must_get(db, SavedSearch, search_id, p, "Saved search")
    # private to the author, even within the agency
    if not p.is_super_admin and row.user_id != p.user_id:
        raise Forbidden("Access denied")
    return row


@router.get("", response_model=Page[SavedSearchOut])
def list_saved_searches(
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = (
        select(SavedSearch)
        .where(scope_clause(p, SavedSearch), SavedSearch.user_id == p.user_id)
        .order_by(desc(SavedSearch.created_at), desc(SavedSearch.id))
    )
    return paginate(db, q, params)


@router.get("/{search_id}", response_model=SavedSearchOut)
def get_saved_search(search_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _must_get_own(db, search_id, p)


@router.post("", response_model=SavedSearchOut, status_code=201)
def create_saved_search(payload: SavedSearchCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = SavedSearch(
        agency_id=write_agency_id(p, payload.agency_id),
        user_id=p.user_id,
        name=payload.name,
        filters_json=json.dumps(payload.filters, sort_keys=True),
        is_active=payload.is_active,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{search_id}", response_model=SavedSearchOut)
def update_saved_search(
    search_id: int,
    payload: SavedSearchUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = _must_get_own(db, search_id, p)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        row.name = changes["name"]
    if changes.get("filters") is not None:
        row.filters_json = json.dumps(changes["filters"], sort_keys=True)
    if changes.get("is_active") is not None:
        row.is_active = changes["is_active"]
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{search_id}")
def delete_saved_search(search_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = _must_get_own(db, search_id, p)
    db.delete(row)
    db.commit()
    return {"ok": True}
