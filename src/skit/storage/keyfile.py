"""Persisted safe keys: ``<config>/keys/<uuid>.key`` holding the plain password.

Key files are only ever created exclusively; replacing one means removing it
first. On platforms without POSIX permission bits the file gets the default
ACL of its directory instead of owner-only access.
"""
import errno
import logging
import os
import time

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from skit.utils.config import SkitConfig

logger = logging.getLogger(__name__)

KEY_FILE_MODE = 0o600
SECONDS_PER_DAY = 24 * 60 * 60


def write_secret_file_secure(path: Path, contents: str) -> None:
    path = Path(path)
    parent = path.parent
    if parent.is_symlink():
        raise OSError(errno.ELOOP, f"Refusing to write through symlinked directory: {parent}")
    if parent.exists() and not parent.is_dir():
        raise NotADirectoryError(errno.ENOTDIR, f"Parent is not a directory: {parent}")
    parent.mkdir(parents=True, exist_ok=True)
    if os.path.lexists(path):
        raise FileExistsError(errno.EEXIST, f"Refusing to overwrite existing file: {path}")

    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_NOFOLLOW", 0)
    fd = os.open(path, flags, KEY_FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(contents)
        f.flush()


def read_key_file(path: Path) -> Optional[str]:
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise OSError(e.errno, f"Failed to read key file {path}: {e.strerror}") from e


def touch_key_file(path: Path) -> None:
    """Bump mtime so ``cleanup-keys`` can tell when a key was last used."""
    try:
        os.utime(path, None)
    except OSError as e:
        raise OSError(e.errno, f"Failed to touch key file {path}: {e.strerror}") from e


def save_safe_key(config: SkitConfig, safe_uuid: str, password: str) -> Path:
    path = config.key_file(safe_uuid)
    write_secret_file_secure(path, password)
    logger.debug("wrote key file %s", path)
    return path


def remove_safe_key(config: SkitConfig, safe_uuid: str) -> bool:
    path = config.key_file(safe_uuid)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


@dataclass
class KeyFileInfo:
    path: Path
    name: str
    days_ago: int
    stale: bool


def scan_key_files(config: SkitConfig, older_than_days: int, now: float | None = None) -> List[KeyFileInfo]:
    """Classify every ``*.key`` file by last-use age; stale ones are older than the cutoff."""
    keys_dir = config.keys_dir
    if not keys_dir.is_dir():
        return []
    now = time.time() if now is None else now
    cutoff = now - older_than_days * SECONDS_PER_DAY
    found = []
    for path in sorted(keys_dir.glob("*.key")):
        if not path.is_file():
            continue
        mtime = path.stat().st_mtime
        days_ago = max(0, int((now - mtime) // SECONDS_PER_DAY))
        found.append(KeyFileInfo(path=path, name=path.name, days_ago=days_ago, stale=mtime < cutoff))
    return found
