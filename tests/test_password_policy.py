"""Tests for skit.utils.password and the new-password prompt loop."""

import pytest

from skit.ui.prompt import collect_new_password
from skit.utils.errors import PasswordPolicyError
from skit.utils.password import generate_secure_password, validate_password_strength


@pytest.mark.parametrize(
    "password,reason",
    [
        ("Sh0rt.pw", "at least 12"),
        ("Str0ng!Pass#1", "invalid characters"),
        ("NOLOWER123.#X", "lowercase"),
        ("noupper123.#x", "uppercase"),
        ("NoDigits.#abc", "digit"),
        ("NoSpecial123abc", "special"),
    ],
)
def test_rejects(password, reason):
    with pytest.raises(PasswordPolicyError) as exc:
        validate_password_strength(password)
    assert reason in str(exc.value)


def test_accepts():
    validate_password_strength("Str0ng.Pass#1")


def test_generated_passwords_comply():
    seen = set()
    for _ in range(50):
        pw = generate_secure_password()
        assert len(pw) == 12
        validate_password_strength(pw)
        seen.add(pw)
    assert len(seen) > 1


def _scripted(*answers):
    it = iter(answers)
    return lambda message: next(it)


def test_collect_retries_until_valid_and_confirmed():
    prompt = _scripted("weak", "Str0ng.Pass#1", "mismatch", "Str0ng.Pass#1", "Str0ng.Pass#1")
    assert collect_new_password(prompt) == "Str0ng.Pass#1"


def test_collect_generates_on_blank(capsys):
    pw = collect_new_password(_scripted(""), allow_generate=True, generator=lambda: "Gen3rated.pw#")
    assert pw == "Gen3rated.pw#"
    assert "Gen3rated.pw#" in capsys.readouterr().out


def test_collect_gives_up():
    with pytest.raises(PasswordPolicyError):
        collect_new_password(_scripted("", "", ""))
