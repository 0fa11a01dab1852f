"""Per-value envelope: ``ENC~v1~`` + base64(salt(16) || nonce(12) || ciphertext || tag(16)).

Every call to ``encrypt_value`` draws a fresh salt and nonce, so each value is
sealed under its own Argon2id-derived key.
"""
import base64
import binascii
import logging
import os

from typing import Tuple

from skit.crypto.aead import aead_decrypt, aead_encrypt
from skit.crypto.hash import derive_key, wipe
from skit.utils.dataModels import ENVELOPE_PREFIX, ENVELOPE_TAG, NONCE_LEN, SALT_LEN, TAG_LEN
from skit.utils.errors import DecryptionFailed, EncryptionFailed, InvalidFormat

logger = logging.getLogger(__name__)


def encrypt_value(password: str, plaintext: str) -> str:
    if password is None or plaintext is None:
        raise EncryptionFailed()
    salt = os.urandom(SALT_LEN)
    key = derive_key(password, salt)
    try:
        nonce, ct = aead_encrypt(key, plaintext.encode("utf-8"))
    finally:
        wipe(key)
    return ENVELOPE_PREFIX + base64.b64encode(salt + nonce + ct).decode("ascii")


def decrypt_value(password: str, envelope: str) -> str:
    salt, nonce, ct = unpack_envelope(envelope)
    key = derive_key(password, salt)
    try:
        pt = aead_decrypt(key, nonce, ct)
    finally:
        wipe(key)
    try:
        return pt.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionFailed() from None


def unpack_envelope(envelope: str) -> Tuple[bytes, bytes, bytes]:
    if not isinstance(envelope, str) or not envelope.startswith(ENVELOPE_PREFIX):
        raise InvalidFormat()
    try:
        data = base64.b64decode(envelope[len(ENVELOPE_PREFIX):], validate=True)
    except (binascii.Error, ValueError):
        raise InvalidFormat() from None
    if len(data) < SALT_LEN + NONCE_LEN + TAG_LEN:
        raise InvalidFormat()
    return data[:SALT_LEN], data[SALT_LEN:SALT_LEN + NONCE_LEN], data[SALT_LEN + NONCE_LEN:]


def classify_stored_value(value: str) -> Tuple[bool, str]:
    """Return (is_encrypted, canonical stored value) for a raw value read from disk.

    Legacy values of the form ``ENC~<salt>~<data>`` are rewritten to
    ``ENC~<data>`` without decrypting them. They stay flagged as encrypted but
    ``decrypt_value`` rejects them with ``InvalidFormat`` until they are set again.
    """
    if not value.startswith(ENVELOPE_TAG):
        return False, value
    rest = value[len(ENVELOPE_TAG):]
    if rest.startswith("v1~"):
        return True, value
    sep = rest.find("~")
    if sep >= 0:
        logger.debug("rewriting legacy envelope with embedded salt")
        return True, ENVELOPE_TAG + rest[sep + 1:]
    return True, value
