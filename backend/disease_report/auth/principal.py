from dataclasses import dataclass
from typing import Optional

from disease_report.auth.roles import Role


@dataclass(frozen=True)
class Principal:
    """Resolved identity attached to each request. Rebuilt per request, never stored."""
    user_id: str
    username: str
    role: Role
    hospital_code: Optional[str] = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    @classmethod
    def from_user(cls, user) -> "Principal":
        """Build from a User row (or anything shaped like one)."""
        return cls(
            user_id=user.id,
            username=user.username,
            role=Role(user.role_id),
            hospital_code=user.hospital_code,
        )
