import logging
import os
import stat
import uuid

from pathlib import Path
from typing import Dict, Optional

from skit.crypto.envelope import classify_stored_value
from skit.crypto.hash import hash_password, verify_password
from skit.utils.dataModels import (
    ENVELOPE_TAG,
    META_FIELDS,
    META_MARKER,
    OPTIONAL_META_FIELDS,
    SAFE_VERSION,
    Safe,
    SafeItem,
)
from skit.utils.errors import (
    CryptoError,
    InvalidPasswordError,
    SafeNotFoundError,
    SafeParseError,
    UnstorableValueError,
)
from skit.utils.helper import utc_now

logger = logging.getLogger(__name__)

_BANNER = "# ========================================\n"

_FIELD_NAMES = {
    "VERSION": "version",
    "UUID": "uuid",
    "DESCRIPTION": "description",
    "CREATED": "created",
    "UPDATED": "updated",
    "PASS_HASH": "password_hash",
    "SSM_PREFIX": "ssm_prefix",
    "SSM_REGION": "ssm_region",
}

_MISSING_LABELS = {
    "VERSION": "version",
    "UUID": "UUID",
    "DESCRIPTION": "description",
    "CREATED": "creation date",
    "UPDATED": "update date",
    "PASS_HASH": "password hash",
}


def check_text_field(value: str, what: str) -> None:
    """Reject text that would not parse back to itself: line breaks or surrounding whitespace."""
    if "\n" in value or "\r" in value:
        raise UnstorableValueError(f"{what} must not contain line breaks")
    if value != value.strip():
        raise UnstorableValueError(f"{what} must not start or end with whitespace")


def check_plain_value(key: str, value: str) -> None:
    check_text_field(value, f"Value for '{key}'")
    if value.startswith(ENVELOPE_TAG):
        raise UnstorableValueError(
            f"Plain value for '{key}' must not start with '{ENVELOPE_TAG}'; store it encrypted instead"
        )


def new_safe(password: str, description: str) -> Safe:
    now = utc_now()
    return Safe(
        version=SAFE_VERSION,
        uuid=str(uuid.uuid4()),
        description=description,
        created=now,
        updated=now,
        password_hash=hash_password(password),
    )


def parse_safe(text: str) -> Safe:
    meta: Dict[str, Optional[str]] = {}
    items: Dict[str, SafeItem] = {}

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        if line.startswith(META_MARKER):
            name, sep, value = line[len(META_MARKER):].partition("=")
            if sep and name in _FIELD_NAMES:
                meta[name] = value
            continue
        if line.startswith("#"):
            continue

        key, sep, value = line.partition("=")
        if not sep:
            raise SafeParseError(f"Invalid line format: {line}", line=lineno)
        key = key.strip()
        if not key:
            raise SafeParseError("Empty key", line=lineno)
        is_encrypted, stored = classify_stored_value(value.strip())
        items[key] = SafeItem(key=key, value=stored, is_encrypted=is_encrypted)

    # password hash is checked first so a stripped header reports the most important loss
    for name in ("PASS_HASH",) + tuple(f for f in META_FIELDS if f != "PASS_HASH"):
        if not meta.get(name):
            raise SafeParseError(
                f"No {_MISSING_LABELS[name]} found in file. Expected {META_MARKER}{name}=<value>"
            )

    return Safe(
        version=meta["VERSION"],
        uuid=meta["UUID"],
        description=meta["DESCRIPTION"],
        created=meta["CREATED"],
        updated=meta["UPDATED"],
        password_hash=meta["PASS_HASH"],
        ssm_prefix=meta.get("SSM_PREFIX"),
        ssm_region=meta.get("SSM_REGION"),
        items=items,
    )


def serialize_safe(safe: Safe) -> str:
    """Render the safe; ``updated`` is refreshed to now before writing.

    Raises ``UnstorableValueError`` before producing any text if a plain value or
    metadata field would read back differently.
    """
    for name in META_FIELDS + OPTIONAL_META_FIELDS:
        value = getattr(safe, _FIELD_NAMES[name])
        if value is not None:
            check_text_field(value, name.lower())
    for item in safe.items.values():
        if not item.is_encrypted:
            check_plain_value(item.key, item.value)
    safe.updated = utc_now()
    out = [_BANNER, "# SKIT SAFE METADATA - DO NOT EDIT\n", _BANNER]
    for name in META_FIELDS:
        out.append(f"{META_MARKER}{name}={getattr(safe, _FIELD_NAMES[name])}\n")
    if safe.ssm_prefix is not None:
        out.append(f"{META_MARKER}SSM_PREFIX={safe.ssm_prefix}\n")
    if safe.ssm_region is not None:
        out.append(f"{META_MARKER}SSM_REGION={safe.ssm_region}\n")
    out += [_BANNER, "# SECRETS (KEY=VALUE or KEY=ENC~<data>)\n", _BANNER]
    for item in safe.sorted_items():
        out.append(f"{item.key}={item.value}\n")
    return "".join(out)


def load_safe(path: str | Path) -> Safe:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SafeNotFoundError(str(path)) from None
    except UnicodeDecodeError as e:
        raise SafeParseError(f"{path} is not valid UTF-8 (byte offset {e.start})") from None
    return parse_safe(text)


def save_safe(path: str | Path, safe: Safe) -> None:
    path = Path(path)
    content = serialize_safe(safe)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with tmp.open("w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        if path.exists():
            os.chmod(tmp, stat.S_IMODE(path.stat().st_mode))
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("saved %d items to %s", len(safe.items), path)


def check_password(safe: Safe, password: str, source: Optional[str] = None) -> None:
    """Verify a candidate whole-safe password; any failure is an invalid password."""
    try:
        verify_password(password, safe.password_hash)
    except CryptoError:
        raise InvalidPasswordError("Invalid password", source=source) from None
