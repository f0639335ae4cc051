# agencycrm/domain/lifecycle.py
from __future__ import annotations

from .statuses import (
    AppointmentStatus as A,
    ContractStatus as C,
    MandateStatus as M,
    OfferStatus as O,
    PaymentStatus as P,
    TaskStatus as T,
)


class IllegalTransition(ValueError):
    def __init__(self, kind: str, current: str, target: str):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(f"{kind} cannot move from {current} to {target}")


def _s(*xs) -> frozenset[str]:
    return frozenset(x.value for x in xs)


# kind -> current status -> statuses reachable in one update.
# Terminal states map to an empty set.
TRANSITIONS: dict[str, dict[str, frozenset[str]]] = {
    "contract": {
        C.DRAFT.value: _s(C.ACTIVE, C.COMPLETED, C.CANCELLED),
        C.ACTIVE.value: _s(C.COMPLETED, C.CANCELLED),
        C.COMPLETED.value: frozenset(),
        C.CANCELLED.value: frozenset(),
    },
    "offer": {
        O.PENDING.value: _s(O.ACCEPTED, O.REJECTED, O.COUNTER_OFFER, O.WITHDRAWN),
        O.COUNTER_OFFER.value: _s(O.PENDING, O.ACCEPTED, O.REJECTED, O.WITHDRAWN),
        O.ACCEPTED.value: frozenset(),
        O.REJECTED.value: frozenset(),
        O.WITHDRAWN.value: frozenset(),
    },
    "payment": {
        P.PENDING.value: _s(P.PAID, P.OVERDUE, P.CANCELLED),
        P.OVERDUE.value: _s(P.PAID, P.CANCELLED),
        P.PAID.value: frozenset(),
        P.CANCELLED.value: frozenset(),
    },
    "task": {
        T.PENDING.value: _s(T.IN_PROGRESS, T.COMPLETED, T.CANCELLED),
        T.IN_PROGRESS.value: _s(T.PENDING, T.COMPLETED, T.CANCELLED),
        T.COMPLETED.value: _s(T.PENDING, T.IN_PROGRESS),
        T.CANCELLED.value: _s(T.PENDING),
    },
    "mandate": {
        M.ACTIVE.value: _s(M.EXPIRED, M.RENEWED, M.CANCELLED, M.COMPLETED),
        M.EXPIRED.value: _s(M.RENEWED),
        M.RENEWED.value: _s(M.ACTIVE, M.EXPIRED, M.CANCELLED, M.COMPLETED),
        M.CANCELLED.value: frozenset(),
        M.COMPLETED.value: frozenset(),
    },
    "appointment": {
        A.SCHEDULED.value: _s(A.CONFIRMED, A.CANCELLED, A.COMPLETED, A.NO_SHOW),
        A.CONFIRMED.value: _s(A.COMPLETED, A.CANCELLED, A.NO_SHOW),
        A.COMPLETED.value: frozenset(),
        A.CANCELLED.value: frozenset(),
        A.NO_SHOW.value: frozenset(),
    },
}


def is_terminal(kind: str, status: str) -> bool:
    return not TRANSITIONS[kind].get(status, frozenset())


def ensure_transition(kind: str, current: str, target: str | None) -> None:
    """No-op when target is None or unchanged."""
    if target is None or target == current:
        return
    allowed = TRANSITIONS[kind].get(current, frozenset())
    if target not in allowed:
        raise IllegalTransition(kind=kind, current=current, target=target)
