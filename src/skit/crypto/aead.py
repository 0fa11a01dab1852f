import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from typing import Tuple

from skit.utils.dataModels import NONCE_LEN
from skit.utils.errors import DecryptionFailed, EncryptionFailed


def aead_encrypt(key: bytearray, plaintext: bytes, aad: bytes | None = None) -> Tuple[bytes, bytes]:
    """AES-256-GCM with a fresh 96-bit nonce; returns (nonce, ciphertext||tag)."""
    nonce = os.urandom(NONCE_LEN)
    try:
        ct = AESGCM(key).encrypt(nonce, plaintext, aad)
    except (ValueError, TypeError, OverflowError) as e:
        raise EncryptionFailed() from e
    return nonce, ct


def aead_decrypt(key: bytearray, nonce: bytes, ct: bytes, aad: bytes | None = None) -> bytes:
    try:
        return AESGCM(key).decrypt(nonce, ct, aad)
    except (InvalidTag, ValueError):
        # a wrong password and tampered data raise the same error
        raise DecryptionFailed() from None
