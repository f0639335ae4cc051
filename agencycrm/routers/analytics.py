# agencycrm/routers/analytics.py
from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require
from ..db import get_db
from ..domain.roles import Capability
from ..schemas import RevenueReportOut
from ..services import analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])

viewer = require(Capability.ANALYTICS_VIEW)


@router.get("/dashboard", response_model=dict[str, Any])
def dashboard(
    period: str = Query(default="year", description="week|month|year|custom"),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    p: Principal = Depends(viewer),
):
    """
    KPI dashboard. Revenue is the commission of COMPLETED contracts keyed on
    their signed date; every ratio with a zero denominator is reported as 0.
    """
    return analytics_service.dashboard(db, p, period=period, start_date=start_date, end_date=end_date)


@router.get("/operational-dashboard", response_model=dict[str, Any])
def operational_dashboard(db: Session = Depends(get_db), p: Principal = Depends(viewer)):
    return analytics_service.operational_dashboard(db, p)


@router.get("/revenue", response_model=RevenueReportOut)
def revenue(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    p: Principal = Depends(viewer),
):
    return analytics_service.revenue_report(db, p, start_date=start_date, end_date=end_date)
