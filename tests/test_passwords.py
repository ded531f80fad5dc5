"""
tests/test_passwords.py -- Unit tests for auth/passwords.py.

Coverage:
  - hash/verify round trip and mismatch
  - salting: two hashes of one password differ, both verify
  - configured cost factor is embedded in the hash
  - >72-byte passwords do not fail
  - structurally invalid stored hash raises HashingFailure (not False)
  - rounds outside bcrypt's range rejected at construction
"""

from __future__ import annotations

import pytest

from auth.errors import HashingFailure
from auth.passwords import PasswordHasher


class TestHashAndVerify:
    def test_correct_password_verifies(self, hasher: PasswordHasher) -> None:
        assert hasher.verify("longenough1", hasher.hash("longenough1")) is True

    def test_wrong_password_returns_false(self, hasher: PasswordHasher) -> None:
        """A mismatch is an ordinary False, never an exception."""
        assert hasher.verify("longenough2", hasher.hash("longenough1")) is False

    def test_hash_is_salted(self, hasher: PasswordHasher) -> None:
        """Same input, two different outputs -- and both still verify."""
        first = hasher.hash("longenough1")
        second = hasher.hash("longenough1")
        assert first != second
        assert hasher.verify("longenough1", first)
        assert hasher.verify("longenough1", second)

    def test_hash_never_contains_plaintext(self, hasher: PasswordHasher) -> None:
        assert "longenough1" not in hasher.hash("longenough1")

    def test_cost_factor_is_embedded(self) -> None:
        hashed = PasswordHasher(rounds=5).hash("longenough1")
        assert hashed.startswith("$2b$05$")

    def test_unicode_password(self, hasher: PasswordHasher) -> None:
        assert hasher.verify("pässwörd-ünïcode", hasher.hash("pässwörd-ünïcode"))

    def test_long_password_does_not_fail(self, hasher: PasswordHasher) -> None:
        """Input past bcrypt's 72-byte limit is truncated, not rejected."""
        long_pw = "x" * 200
        assert hasher.verify(long_pw, hasher.hash(long_pw))


class TestStructurallyInvalidHash:
    @pytest.mark.parametrize("stored", ["", "not-a-hash", "$2b$04$short", "plaintext-password-in-db"])
    def test_invalid_stored_hash_raises(self, hasher: PasswordHasher, stored: str) -> None:
        with pytest.raises(HashingFailure):
            hasher.verify("longenough1", stored)

    def test_failure_message_never_contains_plaintext(self, hasher: PasswordHasher) -> None:
        with pytest.raises(HashingFailure) as excinfo:
            hasher.verify("s3cret-plaintext", "garbage")
        assert "s3cret-plaintext" not in str(excinfo.value)


class TestConstruction:
    @pytest.mark.parametrize("rounds", [3, 32])
    def test_rounds_out_of_range_rejected(self, rounds: int) -> None:
        with pytest.raises(ValueError):
            PasswordHasher(rounds=rounds)

    def test_verify_dummy_runs_without_error(self, hasher: PasswordHasher) -> None:
        assert hasher.verify_dummy("anything at all") is None
