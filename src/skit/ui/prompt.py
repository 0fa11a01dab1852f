import getpass
import sys
import warnings

from typing import Callable

from skit.utils.errors import PasswordPolicyError
from skit.utils.password import validate_password_strength

Prompt = Callable[[str], str]


def prompt_password(message: str) -> str:
    """Masked read; falls back to a plain line read if the terminal refuses no-echo mode.

    ``getpass`` restores the terminal on every exit path, KeyboardInterrupt included.
    Its own echo fallback only issues a ``GetPassWarning``, which is raised here
    so the fallback goes through ``read_line`` with a visible note.
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", getpass.GetPassWarning)
            return getpass.getpass(message)
    except (OSError, getpass.GetPassWarning):
        print("Note: masked input unavailable, reading password in plain mode", file=sys.stderr)
        return read_line(message)


def read_line(message: str) -> str:
    print(message, end="", flush=True)
    line = sys.stdin.readline()
    return line.rstrip("\r\n")


def confirm(message: str, default: bool = False, reader: Prompt = read_line) -> bool:
    answer = reader(message).strip().lower()
    if answer in ("y", "yes"):
        return True
    if answer in ("n", "no"):
        return False
    return default


def collect_new_password(
    prompt: Prompt = prompt_password,
    label: str = "NEW password",
    allow_generate: bool = False,
    generator: Callable[[], str] | None = None,
    max_attempts: int = 3,
) -> str:
    """Ask for a policy-compliant password twice until both entries match."""
    for _ in range(max_attempts):
        suffix = " (or hit enter to generate one automatically)" if allow_generate else ""
        password = prompt(f"Enter {label}{suffix}: ")
        if not password:
            if allow_generate and generator is not None:
                generated = generator()
                print(f"Generated password (keep this safe!): {generated}")
                return generated
            print("[!] Password cannot be empty", file=sys.stderr)
            continue
        try:
            validate_password_strength(password)
        except PasswordPolicyError as e:
            print(f"[!] {e}", file=sys.stderr)
            continue
        if prompt(f"Confirm {label}: ") != password:
            print("[!] Passwords do not match. Please try again.", file=sys.stderr)
            continue
        return password
    raise PasswordPolicyError("No acceptable password entered")
