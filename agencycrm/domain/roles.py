# agencycrm/domain/roles.py
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    AGENT = "AGENT"
    SECRETARY = "SECRETARY"


ROLE_ORDER = {
    Role.SECRETARY: 1,
    Role.AGENT: 2,
    Role.MANAGER: 3,
    Role.ADMIN: 4,
    Role.SUPER_ADMIN: 5,
}


class Capability(str, Enum):
    AGENCY_MANAGE = "agency.manage"
    AGENCY_SETTINGS_EDIT = "agency.settings.edit"
    USER_LIST = "user.list"
    USER_CREATE = "user.create"
    USER_EDIT_ANY = "user.edit_any"
    USER_DELETE = "user.delete"
    RECORD_READ = "record.read"
    RECORD_WRITE = "record.write"
    ANALYTICS_VIEW = "analytics.view"


_ALL = frozenset(Role)

# A role absent from a set never holds the capability.
CAPABILITIES: dict[Capability, frozenset[Role]] = {
    Capability.AGENCY_MANAGE: frozenset({Role.SUPER_ADMIN}),
    Capability.AGENCY_SETTINGS_EDIT: frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER}),
    Capability.USER_LIST: frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER}),
    Capability.USER_CREATE: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.USER_EDIT_ANY: frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER}),
    Capability.USER_DELETE: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.RECORD_READ: _ALL,
    Capability.RECORD_WRITE: _ALL,
    Capability.ANALYTICS_VIEW: _ALL,
}

# roles counted in agent rankings
PRODUCING_ROLES = (Role.AGENT, Role.MANAGER, Role.ADMIN)


def parse_role(value: str | Role | None) -> Role | None:
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().upper())
    except ValueError:
        return None


def has_capability(role: str | Role | None, capability: Capability) -> bool:
    r = parse_role(role)
    if r is None:
        return False
    return r in CAPABILITIES.get(capability, frozenset())


def can_grant(actor: str | Role | None, target: str | Role | None) -> bool:
    """
    Super admins grant anything; everybody else only grants roles ranked
    strictly below their own.
    """
    a = parse_role(actor)
    t = parse_role(target)
    if a is None or t is None:
        return False
    if a == Role.SUPER_ADMIN:
        return True
    return ROLE_ORDER[t] < ROLE_ORDER[a]
