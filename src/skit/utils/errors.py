"""Exception hierarchy shared by every skit component.

Callers catch ``SkitError`` at the command boundary; the crypto layer raises
the ``CryptoError`` subclasses so a single value failure can be skipped or
escalated by whoever owns the bulk operation.
"""
from typing import Optional


class SkitError(Exception):
    """Base class for all expected, user-reportable failures."""


class SafeNotFoundError(SkitError):
    def __init__(self, path: str):
        super().__init__(f"Safe not found: {path}")
        self.path = path


class KeyNotFoundError(SkitError):
    def __init__(self, key: str):
        super().__init__(f"Key not found in safe: {key}")
        self.key = key


class InvalidPasswordError(SkitError):
    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class SafeParseError(SkitError):
    def __init__(self, message: str, line: Optional[int] = None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(f"Parse error: {message}")
        self.line = line


class InvalidKeyError(SkitError):
    pass


class UnstorableValueError(SkitError):
    """A value the safe file format could not read back unchanged."""


class PasswordPolicyError(SkitError):
    pass


class EmptyCommandError(SkitError):
    def __init__(self):
        super().__init__("No command provided to execute")


class ExternalServiceError(SkitError):
    pass


class CryptoError(SkitError):
    message = "Crypto error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class EncryptionFailed(CryptoError):
    message = "Encryption failed"


class DecryptionFailed(CryptoError):
    message = "Decryption failed"


class InvalidFormat(CryptoError):
    message = "Invalid encrypted format"


class PasswordHashFailed(CryptoError):
    message = "Password hashing failed"


class PasswordVerificationFailed(CryptoError):
    message = "Password verification failed"
