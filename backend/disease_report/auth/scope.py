from dataclasses import dataclass
from typing import Optional

from disease_report.auth.policy import Decision
from disease_report.auth.principal import Principal
from disease_report.auth.roles import Role
from disease_report.exceptions import AppError, ErrorKind, hospital_not_assigned, permission_denied


@dataclass(frozen=True)
class HospitalScope:
    """Which hospitals' records a principal may see."""
    unrestricted: bool
    hospital_code: Optional[str] = None

    def constrain(self, requested: Optional[str] = None) -> Optional[str]:
        """
        Effective hospital filter for a query.

        Unrestricted callers keep whatever they asked for (None = all hospitals).
        Scoped callers always get their own code, whatever they asked for, and a
        scoped caller with no hospital matches nothing.
        """
        if self.unrestricted:
            return requested
        if not self.hospital_code:
            raise hospital_not_assigned()
        return self.hospital_code

    def permits(self, record_hospital_code: Optional[str]) -> bool:
        if self.unrestricted:
            return True
        return bool(self.hospital_code) and record_hospital_code == self.hospital_code


def scope_for(principal: Principal) -> HospitalScope:
    if principal.role == Role.SUPERADMIN:
        return HospitalScope(unrestricted=True)
    return HospitalScope(unrestricted=False, hospital_code=principal.hospital_code or None)


def can_manage_target_user(principal: Principal, target_role: Role) -> Decision:
    """Superadmin manages anyone, Admin only ranks below it, User nobody."""
    if principal.role == Role.SUPERADMIN:
        return Decision.ALLOW
    if principal.role == Role.ADMIN and Role(target_role) > Role.ADMIN:
        return Decision.ALLOW
    return Decision.DENY


def ensure_can_manage(principal: Principal, target_role: Role) -> None:
    if can_manage_target_user(principal, target_role) == Decision.ALLOW:
        return
    if principal.role == Role.ADMIN:
        raise AppError(
            ErrorKind.ROLE_HIERARCHY_VIOLATION,
            "Admins cannot manage admin or superadmin accounts",
        )
    raise permission_denied("Your role does not permit managing other users")
