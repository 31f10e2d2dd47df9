"""Tests for bcrypt password hashing and the strength policy."""

import pytest

from disease_report.auth.hasher import PasswordHasher, check_password_strength
from disease_report.exceptions import AppError, ErrorKind


class TestPasswordHasher:
    """Tests for PasswordHasher."""

    def test_hash_and_verify(self, hasher):
        """A digest verifies its own plaintext and nothing else."""
        digest = hasher.hash("Correct1horse")

        assert digest.startswith("$2")
        assert hasher.verify("Correct1horse", digest)
        assert not hasher.verify("correct1horse", digest)

    def test_salted(self, hasher):
        """Same plaintext hashes differently each time."""
        assert hasher.hash("Correct1horse") != hasher.hash("Correct1horse")

    def test_rounds_are_encoded_in_digest(self):
        digest = PasswordHasher(rounds=5).hash("Correct1horse")
        assert digest.split("$")[2] == "05"

    def test_long_password_capped_at_72_bytes(self, hasher):
        """bcrypt only reads 72 bytes; longer input must not raise."""
        base = "A1" + "x" * 80
        digest = hasher.hash(base)

        assert hasher.verify(base, digest)
        assert hasher.verify(base[:72] + "different-tail", digest)

    def test_corrupt_digest(self, hasher):
        with pytest.raises(AppError) as exc_info:
            hasher.verify("Correct1horse", "not-a-bcrypt-digest")

        assert exc_info.value.kind == ErrorKind.CORRUPT_CREDENTIAL
        assert exc_info.value.status_code == 500

    def test_dummy_verify(self, hasher):
        """dummy_verify spends one verification and returns quietly."""
        hasher.dummy_verify()
        hasher.dummy_verify()

    def test_dummy_verify_never_hashes(self, monkeypatch):
        """The dummy digest exists up front, so even the first call is a bare verify."""
        fresh = PasswordHasher(rounds=4)
        assert fresh._dummy_digest.startswith("$2")

        def no_hashing(plaintext):
            raise AssertionError("dummy_verify must not hash")

        monkeypatch.setattr(fresh, "hash", no_hashing)
        fresh.dummy_verify()


class TestPasswordStrength:
    """Tests for check_password_strength."""

    @pytest.mark.parametrize("password", ["Passw0rd", "Abcdefg1", "LongerPassword99"])
    def test_accepts_strong(self, password):
        check_password_strength(password)

    @pytest.mark.parametrize(
        "password",
        ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"],
    )
    def test_rejects_weak(self, password):
        with pytest.raises(AppError) as exc_info:
            check_password_strength(password)

        assert exc_info.value.kind == ErrorKind.VALIDATION_FAILED
        assert exc_info.value.status_code == 400
