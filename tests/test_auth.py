"""Tests for skit.utils.auth: environment -> key file -> prompt resolution."""

import os
import time

import pytest

from skit.storage.keyfile import save_safe_key
from skit.utils.auth import SOURCE_ENV, SOURCE_KEY_FILE, SOURCE_PROMPT, resolve_password
from skit.utils.errors import InvalidPasswordError

from conftest import OTHER_PASSWORD, PASSWORD, no_prompt


def _age(path, seconds=3600):
    past = time.time() - seconds
    os.utime(path, (past, past))
    return path.stat().st_mtime


def test_environment_wins_and_key_file_untouched(safe_file, config, environ):
    environ["SKIT_SAFEKEY"] = PASSWORD
    key_file = save_safe_key(config, safe_file.uuid, PASSWORD)
    before = _age(key_file)
    assert resolve_password(safe_file, config, no_prompt) == PASSWORD
    assert key_file.stat().st_mtime == before


def test_wrong_environment_fails_hard(safe_file, config, environ):
    environ["SKIT_SAFEKEY"] = OTHER_PASSWORD
    save_safe_key(config, safe_file.uuid, PASSWORD)
    with pytest.raises(InvalidPasswordError) as exc:
        resolve_password(safe_file, config, no_prompt)
    assert exc.value.source == SOURCE_ENV
    assert "SKIT_SAFEKEY" in str(exc.value)


def test_empty_environment_is_ignored(safe_file, config, environ):
    environ["SKIT_SAFEKEY"] = ""
    save_safe_key(config, safe_file.uuid, PASSWORD)
    assert resolve_password(safe_file, config, no_prompt) == PASSWORD


def test_key_file_used_and_touched(safe_file, config):
    key_file = save_safe_key(config, safe_file.uuid, PASSWORD + "\n")
    before = _age(key_file)
    assert resolve_password(safe_file, config, no_prompt) == PASSWORD
    assert key_file.stat().st_mtime > before


def test_bad_key_file_fails_hard(safe_file, config):
    key_file = save_safe_key(config, safe_file.uuid, OTHER_PASSWORD)
    before = _age(key_file)
    with pytest.raises(InvalidPasswordError) as exc:
        resolve_password(safe_file, config, no_prompt)
    assert exc.value.source == SOURCE_KEY_FILE
    assert key_file.stat().st_mtime == before


def test_prompt_fallback(safe_file, config):
    messages = []

    def prompt(message):
        messages.append(message)
        return PASSWORD

    assert resolve_password(safe_file, config, prompt, "pw? ") == PASSWORD
    assert messages == ["pw? "]


def test_prompt_wrong_password(safe_file, config):
    with pytest.raises(InvalidPasswordError) as exc:
        resolve_password(safe_file, config, lambda m: OTHER_PASSWORD)
    assert exc.value.source == SOURCE_PROMPT
    assert "interactive prompt" in str(exc.value)
