"""Tests for skit.crypto.envelope: per-value AES-256-GCM envelopes."""

import base64

import pytest

from skit.crypto.envelope import classify_stored_value, decrypt_value, encrypt_value, unpack_envelope
from skit.utils.dataModels import ENVELOPE_PREFIX
from skit.utils.errors import DecryptionFailed, EncryptionFailed, InvalidFormat

from conftest import OTHER_PASSWORD, PASSWORD


def _flip(envelope: str, index: int) -> str:
    blob = bytearray(base64.b64decode(envelope[len(ENVELOPE_PREFIX):]))
    blob[index] ^= 0x01
    return ENVELOPE_PREFIX + base64.b64encode(bytes(blob)).decode()


class TestEncryptDecrypt:
    def test_round_trip(self):
        env = encrypt_value(PASSWORD, "secret123")
        assert env.startswith("ENC~v1~")
        assert decrypt_value(PASSWORD, env) == "secret123"

    def test_round_trip_unicode_and_empty(self):
        for text in ["", "päss wörd ✓", "a=b=c"]:
            assert decrypt_value(PASSWORD, encrypt_value(PASSWORD, text)) == text

    def test_layout(self):
        salt, nonce, ct = unpack_envelope(encrypt_value(PASSWORD, "abc"))
        assert len(salt) == 16
        assert len(nonce) == 12
        assert len(ct) == 3 + 16

    def test_non_deterministic(self):
        a = encrypt_value(PASSWORD, "same")
        b = encrypt_value(PASSWORD, "same")
        assert a != b
        assert unpack_envelope(a)[0] != unpack_envelope(b)[0]
        assert unpack_envelope(a)[1] != unpack_envelope(b)[1]

    def test_wrong_password(self):
        env = encrypt_value(PASSWORD, "secret123")
        with pytest.raises(DecryptionFailed):
            decrypt_value(OTHER_PASSWORD, env)

    @pytest.mark.parametrize("index", [0, 15, 16, 27, 28, -1])
    def test_tamper_detected(self, index):
        env = encrypt_value(PASSWORD, "secret123")
        with pytest.raises(DecryptionFailed):
            decrypt_value(PASSWORD, _flip(env, index))

    def test_encrypt_requires_inputs(self):
        with pytest.raises(EncryptionFailed):
            encrypt_value(None, "x")


class TestFormat:
    def test_rejects_missing_tag(self):
        with pytest.raises(InvalidFormat):
            decrypt_value(PASSWORD, "plain-value")

    def test_rejects_bad_base64(self):
        with pytest.raises(InvalidFormat):
            decrypt_value(PASSWORD, "ENC~v1~not base64!!")

    def test_rejects_short_envelope(self):
        short = ENVELOPE_PREFIX + base64.b64encode(b"\x00" * 43).decode()
        with pytest.raises(InvalidFormat):
            decrypt_value(PASSWORD, short)

    def test_legacy_value_not_decryptable(self):
        _, stored = classify_stored_value("ENC~c2FsdA~ZGF0YQ==")
        with pytest.raises(InvalidFormat):
            decrypt_value(PASSWORD, stored)


class TestClassify:
    def test_plain(self):
        assert classify_stored_value("hello") == (False, "hello")

    def test_current(self):
        env = encrypt_value(PASSWORD, "x")
        assert classify_stored_value(env) == (True, env)

    def test_legacy_salt_is_stripped(self):
        assert classify_stored_value("ENC~somesalt~Y2lwaGVy") == (True, "ENC~Y2lwaGVy")

    def test_bare_tag(self):
        assert classify_stored_value("ENC~Y2lwaGVy") == (True, "ENC~Y2lwaGVy")
