# agencycrm/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import Agency, User
from ..schemas import LoginIn, LoginOut, MeOut, VerifyAgencyIn, VerifyAgencyOut
from ..services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/verify-agency", response_model=VerifyAgencyOut)
def verify_agency(payload: VerifyAgencyIn, db: Session = Depends(get_db)):
    agency = auth_service.verify_agency(db, payload.code)
    return {"agency": agency}


@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return auth_service.login(db, email=payload.email, password=payload.password, agency_code=payload.agency_code)


@router.get("/me", response_model=MeOut)
def me(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    user = db.get(User, p.user_id)
    agency = db.get(Agency, p.agency_id) if p.agency_id is not None else None
    return {"user": user, "agency": agency}
