"""Tests for skit.storage.keyfile: exclusive, owner-only key files."""

import os
import stat
import sys
import time

import pytest

from skit.storage.keyfile import (
    read_key_file,
    remove_safe_key,
    save_safe_key,
    scan_key_files,
    write_secret_file_secure,
)


def test_write_creates_parents(tmp_path):
    path = tmp_path / "a" / "b" / "x.key"
    write_secret_file_secure(path, "pw")
    assert path.read_text() == "pw"


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_owner_only_permissions(tmp_path):
    path = tmp_path / "x.key"
    write_secret_file_secure(path, "pw")
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_never_overwrites(tmp_path):
    path = tmp_path / "x.key"
    write_secret_file_secure(path, "first")
    with pytest.raises(FileExistsError):
        write_secret_file_secure(path, "second")
    assert path.read_text() == "first"


def test_parent_not_directory(tmp_path):
    parent = tmp_path / "file"
    parent.write_text("")
    with pytest.raises(NotADirectoryError):
        write_secret_file_secure(parent / "x.key", "pw")


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks")
def test_refuses_symlinked_parent(tmp_path):
    real = tmp_path / "real"
    real.mkdir()
    link = tmp_path / "link"
    link.symlink_to(real)
    with pytest.raises(OSError):
        write_secret_file_secure(link / "x.key", "pw")
    assert not (real / "x.key").exists()


def test_read_key_file_strips(tmp_path):
    path = tmp_path / "x.key"
    path.write_text("  pw\n")
    assert read_key_file(path) == "pw"
    assert read_key_file(tmp_path / "missing.key") is None


def test_save_and_remove_safe_key(config):
    path = save_safe_key(config, "uuid-1", "pw")
    assert path == config.keys_dir / "uuid-1.key"
    assert remove_safe_key(config, "uuid-1")
    assert not remove_safe_key(config, "uuid-1")


def test_scan_key_files(config):
    now = time.time()
    old = save_safe_key(config, "old", "pw")
    save_safe_key(config, "new", "pw")
    (config.keys_dir / "notes.txt").write_text("ignored")
    os.utime(old, (now - 40.5 * 86400, now - 40.5 * 86400))
    found = {k.name: k for k in scan_key_files(config, 30, now=now)}
    assert set(found) == {"old.key", "new.key"}
    assert found["old.key"].stale
    assert found["old.key"].days_ago == 40
    assert not found["new.key"].stale


def test_scan_without_directory(config):
    assert scan_key_files(config, 30) == []
