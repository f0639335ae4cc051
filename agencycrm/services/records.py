# agencycrm/services/records.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable

from fastapi import Query
from pydantic.alias_generators import to_camel
from sqlalchemy import case, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.lifecycle import IllegalTransition, ensure_transition
from ..domain.statuses import PRIORITY_RANK
from ..errors import ValidationFailed


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
) -> PageParams:
    return PageParams(page=page, limit=limit)


def paginate(db: Session, stmt, params: PageParams) -> dict[str, Any]:
    """Runs ``stmt`` for one page and returns ``{items, pagination}``."""
    total = int(db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0)
    items = list(db.scalars(stmt.offset(params.offset).limit(params.limit)).unique().all())
    return {
        "items": items,
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "pages": math.ceil(total / params.limit) if total else 0,
        },
    }


def guard_transition(kind: str, current: str, target: str | None) -> None:
    try:
        ensure_transition(kind, current, target)
    except IllegalTransition as e:
        raise ValidationFailed("status", str(e))


def apply_updates(row, changes: dict[str, Any], skip: Iterable[str] = ()) -> None:
    """
    Copies a partial update onto ``row``. An explicit null for a NOT NULL
    column is rejected before anything is assigned.
    """
    skipped = set(skip)
    updates = {k: v for k, v in changes.items() if k not in skipped}

    columns = sa_inspect(row).mapper.column_attrs
    for k, v in updates.items():
        if v is None and k in columns and not columns[k].columns[0].nullable:
            raise ValidationFailed(to_camel(k), "may not be null")

    for k, v in updates.items():
        setattr(row, k, v)


def contains(column, text: str):
    return func.lower(column).contains(text.strip().lower(), autoescape=True)


def priority_rank(column):
    """URGENT > HIGH > MEDIUM > LOW; the stored strings do not sort that way."""
    return case(
        {p.value: rank for p, rank in PRIORITY_RANK.items()},
        value=column,
        else_=0,
    )
