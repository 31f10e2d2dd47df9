from enum import IntEnum


class Role(IntEnum):
    """User roles. The value is the rank: lower is more privileged."""

    SUPERADMIN = 1
    ADMIN = 2
    USER = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    def at_least(self, required: "Role") -> bool:
        """True when this role is as privileged as ``required`` or more."""
        return self <= required
