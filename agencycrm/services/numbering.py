# agencycrm/services/numbering.py
"""
Human-readable business numbers (CTR-000001, MAND-000001, ...).

One counter row per (agency, prefix). The increment is a single UPDATE so the
row lock serializes concurrent creators; the number is written in the same
transaction as the record that carries it, so a rolled back create burns
nothing.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Contract, Mandate, Offer, Payment, Property, SequenceCounter

log = logging.getLogger("agencycrm.numbering")

NUMBER_WIDTH = 6

# prefix -> (model, column holding the number)
SEQUENCES = {
    "CTR": (Contract, "contract_number"),
    "MAND": (Mandate, "mandate_number"),
    "OFF": (Offer, "offer_number"),
    "PAY": (Payment, "payment_number"),
    "PROP": (Property, "reference"),
}


def format_number(prefix: str, value: int) -> str:
    return f"{prefix}-{int(value):0{NUMBER_WIDTH}d}"


def _bump(db: Session, prefix: str, agency_id: int) -> int | None:
    res = db.execute(
        update(SequenceCounter)
        .where(SequenceCounter.agency_id == agency_id, SequenceCounter.prefix == prefix)
        .values(last_value=SequenceCounter.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    if not res.rowcount:
        return None
    return db.scalar(
        select(SequenceCounter.last_value).where(
            SequenceCounter.agency_id == agency_id, SequenceCounter.prefix == prefix
        )
    )


def _existing_count(db: Session, prefix: str, agency_id: int) -> int:
    model, _ = SEQUENCES[prefix]
    return int(db.scalar(select(func.count()).select_from(model).where(model.agency_id == agency_id)) or 0)


def next_number(db: Session, prefix: str, agency_id: int) -> str:
    if prefix not in SEQUENCES:
        raise ValueError(f"unknown sequence prefix: {prefix}")

    value = _bump(db, prefix, agency_id)
    if value is not None:
        return format_number(prefix, value)

    # First number for this agency: seed from rows that predate the counter.
    seed = _existing_count(db, prefix, agency_id) + 1
    try:
        with db.begin_nested():
            db.add(SequenceCounter(agency_id=agency_id, prefix=prefix, last_value=seed))
        return format_number(prefix, seed)
    except IntegrityError:
        # another creator seeded it first
        log.info("sequence_seed_race", extra={"agency_id": agency_id, "entity": prefix})

    value = _bump(db, prefix, agency_id)
    if value is None:
        raise RuntimeError(f"sequence counter {prefix} missing for agency {agency_id}")
    return format_number(prefix, value)
