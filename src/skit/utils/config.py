import os

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

SAFEKEY_ENV = "SKIT_SAFEKEY"
CONFIG_DIR_ENV = "SKIT_CONFIG_DIR"


def default_config_dir() -> Path:
    return Path.home() / ".config" / "skit"


@dataclass
class SkitConfig:
    """Where key files live and where the authentication password is read from."""

    config_dir: Path = field(default_factory=default_config_dir)
    env_var: str = SAFEKEY_ENV
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)

    @property
    def keys_dir(self) -> Path:
        return self.config_dir / "keys"

    def key_file(self, safe_uuid: str) -> Path:
        return self.keys_dir / f"{safe_uuid}.key"

    def env_password(self) -> Optional[str]:
        value = self.environ.get(self.env_var)
        return value if value else None

    @classmethod
    def from_env(cls, config_dir: str | None = None, environ: Mapping[str, str] | None = None) -> "SkitConfig":
        environ = os.environ if environ is None else environ
        root = config_dir or environ.get(CONFIG_DIR_ENV)
        path = Path(root).expanduser() if root else default_config_dir()
        return cls(config_dir=path, environ=environ)
