from dataclasses import dataclass, field
from typing import Dict, Optional

SKIT_VERSION = "0.1.0"

# Argon2id parameters for per-value key derivation
KDF_T_COST = 3
KDF_M_COST_KiB = 65536  # 64 MiB
KDF_PARALLELISM = 1
KEY_LEN = 32

SALT_LEN = 16
NONCE_LEN = 12
TAG_LEN = 16

ENVELOPE_TAG = "ENC~"
ENVELOPE_PREFIX = "ENC~v1~"

SAFE_VERSION = "1.0"
TIMESTAMP_FMT = "%Y-%m-%d %H:%M:%S UTC"
DEFAULT_SAFE_PATH = ".env.safe"
DEFAULT_DESCRIPTION = "Default safe"

META_MARKER = "#@"
META_FIELDS = ("VERSION", "UUID", "DESCRIPTION", "CREATED", "UPDATED", "PASS_HASH")
OPTIONAL_META_FIELDS = ("SSM_PREFIX", "SSM_REGION")


@dataclass
class SafeItem:
    key: str
    value: str
    is_encrypted: bool

    @property
    def type_label(self) -> str:
        return "ENC" if self.is_encrypted else "PLAIN"


@dataclass
class Safe:
    version: str
    uuid: str
    description: str
    created: str
    updated: str
    password_hash: str
    ssm_prefix: Optional[str] = None
    ssm_region: Optional[str] = None
    items: Dict[str, SafeItem] = field(default_factory=dict)

    def find_item(self, key: str) -> Optional[SafeItem]:
        return self.items.get(key)

    def add_or_update_item(self, key: str, value: str, is_encrypted: bool) -> None:
        self.items[key] = SafeItem(key=key, value=value, is_encrypted=is_encrypted)

    def remove_item(self, key: str) -> SafeItem:
        return self.items.pop(key)

    def sorted_items(self):
        return [self.items[k] for k in sorted(self.items)]

    def has_encrypted(self) -> bool:
        return any(i.is_encrypted for i in self.items.values())

    def counts(self) -> Dict[str, int]:
        enc = sum(1 for i in self.items.values() if i.is_encrypted)
        return {"total": len(self.items), "encrypted": enc, "plain": len(self.items) - enc}
