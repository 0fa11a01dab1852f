import datetime as _dt
import re
import shlex

from pathlib import Path

from skit.utils.dataModels import TIMESTAMP_FMT

_ENV_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def utc_now() -> str:
    return _dt.datetime.now(_dt.timezone.utc).strftime(TIMESTAMP_FMT)


def normalize_safe_path(name: str) -> str:
    """``prod`` -> ``.prod.safe``; ``prod.safe`` -> ``.prod.safe``; ``.prod.safe`` unchanged."""
    p = Path(name)
    base = p.name
    if base.startswith(".") and base.endswith(".safe"):
        return name
    if base.endswith(".safe"):
        return str(p.with_name("." + base))
    return str(p.with_name(f".{base}.safe"))


def is_valid_env_key(key: str) -> bool:
    return bool(_ENV_KEY_RE.fullmatch(key))


def shell_quote(value: str) -> str:
    return shlex.quote(value)


def parse_key_list(keys: str | None) -> set[str] | None:
    if keys is None:
        return None
    return {k.strip() for k in keys.split(",") if k.strip()}


def format_days_ago(days: int) -> str:
    if days <= 0:
        return "today"
    if days == 1:
        return "1 day ago"
    return f"{days} days ago"
