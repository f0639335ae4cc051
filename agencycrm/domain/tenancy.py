# agencycrm/domain/tenancy.py
"""
Tenant scoping.

Every tenant-owned table carries ``agency_id``. Super admins see all agencies;
everybody else sees exactly their own. A non-super-admin with no agency sees
nothing rather than everything.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol

from sqlalchemy import false, true

from ..errors import Forbidden, ValidationFailed


class _Caller(Protocol):
    agency_id: Optional[int]
    is_super_admin: bool


def can_access(p: _Caller, agency_id: Optional[int]) -> bool:
    if p.is_super_admin:
        return True
    if p.agency_id is None:
        return False
    return agency_id == p.agency_id


def scope_clause(p: _Caller, model: Any):
    if p.is_super_admin:
        return true()
    if p.agency_id is None:
        return false()
    return model.agency_id == p.agency_id


def write_agency_id(p: _Caller, requested: Optional[int] = None) -> int:
    """Agency a newly created row belongs to."""
    if p.is_super_admin:
        if requested is None:
            raise ValidationFailed("agencyId", "agencyId is required for super admin writes")
        return int(requested)
    if p.agency_id is None:
        raise Forbidden("No agency attached to this account")
    return int(p.agency_id)
