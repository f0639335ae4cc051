# agencycrm/routers/tasks.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.analytics import end_of_day
from ..domain.statuses import TaskPriority, TaskStatus
from ..domain.tenancy import scope_clause, write_agency_id
from ..models import Client, Contract, Property, Task, User
from ..schemas import Page, TaskCreate, TaskOut, TaskUpdate
from ..services.ownership import assert_same_agency, must_get, must_get_optional
from ..services.records import (
    PageParams,
    apply_updates,
    guard_transition,
    page_params,
    paginate,
    priority_rank,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _sync_completed_at(row: Task) -> None:
    if row.status == TaskStatus.COMPLETED.value:
        if row.completed_at is None:
            row.completed_at = datetime.now()
    else:
        row.completed_at = None


@router.get("", response_model=Page[TaskOut])
def list_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    due_before: Optional[date] = Query(default=None, alias="dueBefore"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Task).where(scope_clause(p, Task))
    if status:
        q = q.where(Task.status == status.value)
    if priority:
        q = q.where(Task.priority == priority.value)
    if user_id is not None:
        q = q.where(Task.user_id == user_id)
    if due_before is not None:
        q = q.where(Task.due_date <= end_of_day(due_before))
    q = q.options(selectinload(Task.user)).order_by(
        desc(priority_rank(Task.priority)),
        Task.due_date.is_(None),
        Task.due_date.asc(),
        Task.id.asc(),
    )
    return paginate(db, q, params)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get(db, Task, task_id, p, "Task")


@router.post("", response_model=TaskOut, status_code=201)
def create_task(payload: TaskCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    agency_id = write_agency_id(p, payload.agency_id)
    linked = [
        must_get_optional(db, User, payload.user_id, p, "User"),
        must_get_optional(db, Property, payload.property_id, p, "Property"),
        must_get_optional(db, Client, payload.client_id, p, "Client"),
        must_get_optional(db, Contract, payload.contract_id, p, "Contract"),
    ]
    assert_same_agency(agency_id, *linked)

    row = Task(
        **payload.model_dump(exclude={"agency_id", "user_id"}),
        agency_id=agency_id,
        user_id=payload.user_id or p.user_id,
    )
    _sync_completed_at(row)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get(db, Task, task_id, p, "Task")
    changes = payload.model_dump(exclude_unset=True)
    guard_transition("task", row.status, changes.get("status"))
    if changes.get("user_id") is not None:
        assert_same_agency(row.agency_id, must_get(db, User, changes["user_id"], p, "User"))

    apply_updates(row, changes)
    _sync_completed_at(row)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get(db, Task, task_id, p, "Task")
    db.delete(row)
    db.commit()
    return {"ok": True}
