"""Tests for skit.crypto.hash: whole-safe password hashing and key derivation."""

import pytest

from skit.crypto.hash import derive_key, hash_password, verify_password, wipe
from skit.utils.errors import InvalidFormat, PasswordVerificationFailed

from conftest import OTHER_PASSWORD, PASSWORD


def test_hash_verify():
    h = hash_password(PASSWORD)
    assert h.startswith("$argon2id$")
    verify_password(PASSWORD, h)


def test_verify_wrong_password():
    with pytest.raises(PasswordVerificationFailed):
        verify_password(OTHER_PASSWORD, hash_password(PASSWORD))


def test_hash_is_salted():
    assert hash_password(PASSWORD) != hash_password(PASSWORD)


def test_verify_garbage_hash():
    with pytest.raises(InvalidFormat):
        verify_password(PASSWORD, "not-a-phc-string")


def test_derive_key_deterministic_per_salt():
    salt = b"\x01" * 16
    k1 = derive_key(PASSWORD, salt)
    k2 = derive_key(PASSWORD, salt)
    assert len(k1) == 32
    assert k1 == k2
    assert derive_key(PASSWORD, b"\x02" * 16) != k1


def test_wipe_zeroes_buffer():
    buf = bytearray(b"secret-key-bytes")
    wipe(buf)
    assert buf == bytearray(len(buf))
