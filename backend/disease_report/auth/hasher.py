"""
Password hashing with bcrypt.

bcrypt only reads the first 72 bytes of its input and bcrypt>=5 raises on
longer values, so both hash() and verify() cap the encoded plaintext there.
"""

import re

import bcrypt

from disease_report.exceptions import AppError, ErrorKind

BCRYPT_MAX_BYTES = 72
MIN_PASSWORD_LENGTH = 8

_STRENGTH_RULES = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a digit"),
)


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


def check_password_strength(plaintext: str) -> None:
    """Raise VALIDATION_FAILED unless the password meets the minimum policy."""
    missing = [label for pattern, label in _STRENGTH_RULES if not pattern.search(plaintext)]
    if len(plaintext) < MIN_PASSWORD_LENGTH or missing:
        raise AppError(
            ErrorKind.VALIDATION_FAILED,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters and contain "
            "a lowercase letter, an uppercase letter and a digit",
            details={"missing": missing} if missing else None,
        )


class PasswordHasher:
    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_digest = self.hash("not-a-real-password")

    def hash(self, plaintext: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(plaintext), salt).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(_encode(plaintext), digest.encode("utf-8"))
        except ValueError as e:
            raise AppError(ErrorKind.CORRUPT_CREDENTIAL, "Stored credential is unreadable") from e

    def dummy_verify(self) -> None:
        """Spend one verification so a missing user costs the same as a wrong password."""
        self.verify("still-not-a-real-password", self._dummy_digest)
