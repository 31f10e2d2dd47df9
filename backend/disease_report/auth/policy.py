"""
Permission policy: the single decision point for every role or capability check.

Evaluation order:
  1. Superadmin is allowed everything.
  2. Hierarchy capabilities (isSuperadmin / isAdmin / isUser) compare role rank.
  3. Anything else is looked up in the sparse grant table for the caller's role.
     No matching allowed grant means DENY, so a capability nobody has granted
     yet is closed by default.
"""

from enum import Enum
from typing import Dict, Iterable, Mapping, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from disease_report.auth.principal import Principal
from disease_report.auth.roles import Role
from disease_report.models.permission import PermissionGrant


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class Capability(str, Enum):
    # Hierarchy checks
    IS_SUPERADMIN = "isSuperadmin"
    IS_ADMIN = "isAdmin"
    IS_USER = "isUser"

    # Grant-table capabilities
    PATIENT_VISIT_CREATE = "PATIENT_VISIT_CREATE"
    PATIENT_VISIT_READ = "PATIENT_VISIT_READ"
    PATIENT_VISIT_UPDATE = "PATIENT_VISIT_UPDATE"
    PATIENT_VISIT_DELETE = "PATIENT_VISIT_DELETE"
    DISEASE_MANAGE = "DISEASE_MANAGE"
    DISEASE_READ = "DISEASE_READ"
    HOSPITAL_MANAGE = "HOSPITAL_MANAGE"
    HOSPITAL_READ = "HOSPITAL_READ"
    USER_MANAGE = "USER_MANAGE"
    USER_MANAGE_LIMITED = "USER_MANAGE_LIMITED"
    REPORT_EXPORT = "REPORT_EXPORT"
    REPORT_EXPORT_LIMITED = "REPORT_EXPORT_LIMITED"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"


HIERARCHY_REQUIREMENTS: Dict[str, Role] = {
    Capability.IS_SUPERADMIN.value: Role.SUPERADMIN,
    Capability.IS_ADMIN.value: Role.ADMIN,
    Capability.IS_USER.value: Role.USER,
}

# Seeded into permission_grants on first start; Superadmin needs no rows.
DEFAULT_GRANTS: Tuple[Tuple[Role, Capability], ...] = (
    (Role.ADMIN, Capability.PATIENT_VISIT_CREATE),
    (Role.ADMIN, Capability.PATIENT_VISIT_READ),
    (Role.ADMIN, Capability.PATIENT_VISIT_UPDATE),
    (Role.ADMIN, Capability.PATIENT_VISIT_DELETE),
    (Role.ADMIN, Capability.DISEASE_READ),
    (Role.ADMIN, Capability.HOSPITAL_READ),
    (Role.ADMIN, Capability.USER_MANAGE_LIMITED),
    (Role.ADMIN, Capability.REPORT_EXPORT),
    (Role.USER, Capability.PATIENT_VISIT_READ),
    (Role.USER, Capability.DISEASE_READ),
    (Role.USER, Capability.HOSPITAL_READ),
    (Role.USER, Capability.REPORT_EXPORT_LIMITED),
    (Role.USER, Capability.PASSWORD_CHANGE),
)


def _code(capability) -> str:
    return capability.value if isinstance(capability, Capability) else str(capability)


class GrantTable:
    """Immutable snapshot of (role, capability) -> allowed rows."""

    def __init__(self, grants: Mapping[Tuple[int, str], bool] = None):
        self._grants = dict(grants or {})

    @classmethod
    def from_rows(cls, rows: Iterable) -> "GrantTable":
        return cls({(int(r.role_id), r.capability_code): bool(r.allowed) for r in rows})

    def allows(self, role: Role, capability) -> bool:
        return self._grants.get((int(role), _code(capability)), False)


EMPTY_GRANTS = GrantTable()


def is_hierarchy_capability(capability) -> bool:
    return _code(capability) in HIERARCHY_REQUIREMENTS


def decide(principal: Principal, capability, grants: GrantTable = EMPTY_GRANTS) -> Decision:
    if principal.role == Role.SUPERADMIN:
        return Decision.ALLOW

    code = _code(capability)
    required = HIERARCHY_REQUIREMENTS.get(code)
    if required is not None:
        return Decision.ALLOW if principal.role.at_least(required) else Decision.DENY

    return Decision.ALLOW if grants.allows(principal.role, code) else Decision.DENY


async def load_grant_table(db: AsyncSession, role: Role) -> GrantTable:
    """Grants for one role, read fresh for the current request."""
    result = await db.execute(select(PermissionGrant).where(PermissionGrant.role_id == int(role)))
    return GrantTable.from_rows(result.scalars().all())
