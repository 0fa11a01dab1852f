from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError
from argon2.low_level import hash_secret_raw, Type as Argon2Type

from skit.utils.dataModels import KDF_M_COST_KiB, KDF_PARALLELISM, KDF_T_COST, KEY_LEN
from skit.utils.errors import (
    InvalidFormat,
    PasswordHashFailed,
    PasswordVerificationFailed,
)

_hasher = PasswordHasher()


def derive_key(password: str, salt: bytes) -> bytearray:
    """key = Argon2id(password, salt) -> 32 bytes.

    Scrubbing is best effort only. The encoded password and the ``bytes`` that
    argon2-cffi returns are immutable and cannot be zeroed; the mutable copy
    handed back here is the one callers are expected to ``wipe()``.
    """
    key = hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=KDF_T_COST,
        memory_cost=KDF_M_COST_KiB,
        parallelism=KDF_PARALLELISM,
        hash_len=KEY_LEN,
        type=Argon2Type.ID,
    )
    return bytearray(key)


def wipe(buf: bytearray | None) -> None:
    """Zero a mutable buffer in place."""
    if buf is None:
        return
    for i in range(len(buf)):
        buf[i] = 0


def hash_password(password: str) -> str:
    """One-way PHC-encoded Argon2id hash of the whole-safe password."""
    try:
        return _hasher.hash(password)
    except HashingError as e:
        raise PasswordHashFailed() from e


def verify_password(password: str, pass_hash: str) -> None:
    try:
        _hasher.verify(pass_hash, password)
    except InvalidHashError:
        raise InvalidFormat("Invalid password hash format") from None
    except VerificationError:
        raise PasswordVerificationFailed() from None
