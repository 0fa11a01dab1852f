"""
Shared fixtures: every test gets its own config root, an empty password
environment and, on request, a freshly created safe on disk.
"""

from __future__ import annotations

import pytest

from skit.storage.safe import new_safe, save_safe
from skit.utils.config import SkitConfig
from skit.utils.core import Session

PASSWORD = "Str0ng.Pass#1"
OTHER_PASSWORD = "0ther_Pass.word2"


def no_prompt(message):
    raise AssertionError(f"unexpected prompt: {message}")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove skit env vars and point the config dir at a temp location."""
    monkeypatch.delenv("SKIT_SAFEKEY", raising=False)
    monkeypatch.setenv("SKIT_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def environ():
    return {}


@pytest.fixture
def config(tmp_path, environ):
    return SkitConfig(config_dir=tmp_path / "config", environ=environ)


@pytest.fixture
def safe_path(tmp_path):
    return str(tmp_path / ".test.safe")


@pytest.fixture
def safe_file(safe_path):
    safe = new_safe(PASSWORD, "demo")
    save_safe(safe_path, safe)
    return safe


@pytest.fixture
def session(safe_path, config):
    return Session(safe_path=safe_path, config=config, prompt=no_prompt, reader=no_prompt)
