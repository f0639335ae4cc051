# agencycrm/routers/documents.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import DocumentType
from ..domain.tenancy import scope_clause, write_agency_id
from ..errors import ValidationFailed
from ..models import Client, Contract, Document, Property
from ..schemas import DocumentOut, Page
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import PageParams, page_params, paginate
from ..services.storage import LocalFileStorage, get_storage

log = logging.getLogger("agencycrm.documents")

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=Page[DocumentOut])
def list_documents(
    type: Optional[DocumentType] = None,
    property_id: Optional[int] = Query(default=None, alias="propertyId"),
    contract_id: Optional[int] = Query(default=None, alias="contractId"),
    client_id: Optional[int] = Query(default=None, alias="clientId"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Document).where(scope_clause(p, Document))
    if type:
        q = q.where(Document.type == type.value)
    if property_id is not None:
        q = q.where(Document.property_id == property_id)
    if contract_id is not None:
        q = q.where(Document.contract_id == contract_id)
    if client_id is not None:
        q = q.where(Document.client_id == client_id)
    q = q.order_by(desc(Document.created_at), desc(Document.id))
    return paginate(db, q, params)


@router.get("/{document_id}", response_model=DocumentOut)
def get_document(document_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Document, document_id, p, "Document")


@router.post("", response_model=DocumentOut, status_code=201)
def upload_document(
    file: UploadFile = File(...),
    type: str = Form(DocumentType.OTHER.value),
    description: Optional[str] = Form(None),
    property_id: Optional[int] = Form(None, alias="propertyId"),
    contract_id: Optional[int] = Form(None, alias="contractId"),
    client_id: Optional[int] = Form(None, alias="clientId"),
    agency_id: Optional[int] = Form(None, alias="agencyId"),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: LocalFileStorage = Depends(get_storage),
):
    try:
        doc_type = DocumentType(type)
    except ValueError:
        raise ValidationFailed("type", f"Unknown document type: {type}")

    target_agency = write_agency_id(p, agency_id)
    linked = [
        must_get_optional(db, Property, property_id, p, "Property"),
        must_get_optional(db, Contract, contract_id, p, "Contract"),
        must_get_optional(db, Client, client_id, p, "Client"),
    ]
    assert_same_agency(target_agency, *linked)

    stored = storage.save(file)
    try:
        row = Document(
            agency_id=target_agency,
            user_id=p.user_id,
            property_id=property_id,
            contract_id=contract_id,
            client_id=client_id,
            filename=stored.filename,
            original_name=stored.original_name,
            path=stored.path,
            mime_type=stored.mime_type,
            size=stored.size,
            type=doc_type.value,
            description=description,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
    except Exception:
        db.rollback()
        storage.discard(stored)
        raise

    log.info("document_uploaded", extra={"agency_id": target_agency, "entity": "document", "entity_id": row.id})
    return row


@router.delete("/{document_id}")
def delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: LocalFileStorage = Depends(get_storage),
):
    row = must_get(db, Document, document_id, p, "Document")
    path = row.path

    db.delete(row)
    db.commit()

    storage.delete(db, path)
    return {"ok": True}
