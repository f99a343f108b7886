"""
tests/test_passwords.py -- Unit tests for auth/passwords.py.

Covers:
  - hash/verify round trip, wrong password rejected
  - hash never equals the plaintext; per-call salt makes hashes differ
  - malformed hashes report False instead of raising
  - passwords past bcrypt's 72-byte window hash and verify consistently
"""

from __future__ import annotations

import pytest

from auth.passwords import hash_password, verify_password


def test_verify_matches_original_password():
    hashed = hash_password("secret1", rounds=4)
    assert verify_password("secret1", hashed) is True


def test_verify_rejects_wrong_password():
    hashed = hash_password("secret1", rounds=4)
    assert verify_password("secret2", hashed) is False


def test_hash_is_not_plaintext_and_is_salted():
    first = hash_password("secret1", rounds=4)
    second = hash_password("secret1", rounds=4)
    assert first != "secret1"
    assert "secret1" not in first
    assert first != second, "each hash must embed its own random salt"


def test_cost_factor_is_embedded():
    assert hash_password("secret1", rounds=4).startswith("$2b$04$")
    assert hash_password("secret1").startswith("$2b$10$")


@pytest.mark.parametrize("bad_hash", ["", "not-a-bcrypt-hash", "$2b$04$short"])
def test_malformed_hash_reports_failure(bad_hash):
    assert verify_password("secret1", bad_hash) is False


def test_long_password_round_trip():
    """100-char passwords (the register maximum) exceed 72 bytes and must still work."""
    password = "p" * 100
    hashed = hash_password(password, rounds=4)
    assert verify_password(password, hashed) is True
    assert verify_password("q" * 100, hashed) is False


def test_non_ascii_password():
    hashed = hash_password("pässwörd-密码", rounds=4)
    assert verify_password("pässwörd-密码", hashed) is True
    assert verify_password("passwörd-密码", hashed) is False
