import argparse
import logging
import os
import subprocess

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, TypeVar

from skit.crypto.envelope import decrypt_value, encrypt_value
from skit.storage.keyfile import save_safe_key
from skit.storage.safe import check_plain_value, check_text_field, load_safe, new_safe, save_safe
from skit.ui.display import (
    DECRYPTION_FAILED,
    HIDDEN,
    print_error,
    print_grouped,
    print_info,
    print_json,
    print_rows,
    print_success,
)
from skit.ui.prompt import Prompt, collect_new_password, confirm, prompt_password, read_line
from skit.utils.auth import resolve_password
from skit.utils.config import SkitConfig
from skit.utils.dataModels import DEFAULT_DESCRIPTION, Safe
from skit.utils.errors import (
    CryptoError,
    EmptyCommandError,
    InvalidKeyError,
    InvalidPasswordError,
    KeyNotFoundError,
    SafeParseError,
    SkitError,
)
from skit.utils.helper import is_valid_env_key, parse_key_list, shell_quote
from skit.utils.password import REQUIREMENTS, generate_secure_password

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Session:
    """Everything a command needs besides its own arguments."""

    safe_path: str
    config: SkitConfig = field(default_factory=SkitConfig.from_env)
    prompt: Prompt = prompt_password
    reader: Prompt = read_line

    def authenticate(self, safe: Safe, message: str = "Enter safe password: ") -> str:
        return resolve_password(safe, self.config, self.prompt, message)


def session_from_args(args: argparse.Namespace) -> Session:
    return Session(
        safe_path=args.safe,
        config=SkitConfig.from_env(getattr(args, "config_dir", None)),
        prompt=prompt_password,
        reader=read_line,
    )


def run_on_safe(
    session: Session,
    operation: Callable[[Safe, Optional[str]], T],
    needs_auth: Callable[[Safe], bool] = lambda safe: False,
    modifies: bool = False,
) -> T:
    """load -> maybe authenticate -> operate -> maybe save."""
    safe = load_safe(session.safe_path)
    password = session.authenticate(safe) if needs_auth(safe) else None
    result = operation(safe, password)
    if modifies:
        save_safe(session.safe_path, safe)
    return result


# ---------------------------------------------------------------------------
# Operations on an in-memory safe
# ---------------------------------------------------------------------------
def validate_key(key: str) -> None:
    if not key:
        raise InvalidKeyError("Key cannot be empty")
    if not is_valid_env_key(key):
        raise InvalidKeyError(f"Invalid key '{key}' (must match [A-Za-z_][A-Za-z0-9_]*)")


def set_secret(safe: Safe, key: str, value: str, password: Optional[str], plain: bool = False) -> None:
    validate_key(key)
    if plain:
        check_plain_value(key, value)
        safe.add_or_update_item(key, value, False)
        return
    if password is None:
        raise InvalidPasswordError("Password required for encrypted values")
    safe.add_or_update_item(key, encrypt_value(password, value), True)


def get_secret(safe: Safe, key: str, password: Optional[str]) -> str:
    item = safe.find_item(key)
    if item is None:
        raise KeyNotFoundError(key)
    if not item.is_encrypted:
        return item.value
    if password is None:
        raise InvalidPasswordError("Password required for encrypted values")
    return decrypt_value(password, item.value)


def remove_secret(safe: Safe, key: str) -> None:
    if safe.find_item(key) is None:
        raise KeyNotFoundError(key)
    safe.remove_item(key)


def item_is_encrypted(safe: Safe, key: str) -> bool:
    item = safe.find_item(key)
    return item is not None and item.is_encrypted


def reveal_items(
    safe: Safe, password: Optional[str], plain_only: bool = False, enc_only: bool = False
) -> List[Tuple[str, str, bool]]:
    """Sorted (key, value, is_encrypted) rows; values that fail to decrypt are marked, not fatal."""
    rows = []
    for item in safe.sorted_items():
        if plain_only and item.is_encrypted:
            continue
        if enc_only and not item.is_encrypted:
            continue
        if not item.is_encrypted:
            value = item.value
        elif password is None:
            value = HIDDEN
        else:
            try:
                value = decrypt_value(password, item.value)
            except CryptoError:
                logger.warning("Failed to decrypt '%s'", item.key)
                value = DECRYPTION_FAILED
        rows.append((item.key, value, item.is_encrypted))
    return rows


def decrypted_values(safe: Safe, password: Optional[str]) -> Dict[str, str]:
    """Every readable value by key; encrypted values that cannot be opened are skipped."""
    values = {}
    for item in safe.sorted_items():
        if not item.is_encrypted:
            values[item.key] = item.value
            continue
        if password is None:
            logger.warning("No password provided for encrypted key '%s', skipping", item.key)
            continue
        try:
            values[item.key] = decrypt_value(password, item.value)
        except CryptoError:
            logger.warning("Failed to decrypt '%s', skipping", item.key)
    return values


def safe_status(safe: Safe, password: Optional[str]) -> Dict:
    counts = safe.counts()
    failed = []
    if password is not None:
        for item in safe.sorted_items():
            if not item.is_encrypted:
                continue
            try:
                decrypt_value(password, item.value)
            except CryptoError:
                failed.append(item.key)
    details = None
    if password is not None and counts["encrypted"]:
        details = {
            "total_encrypted": counts["encrypted"],
            "verified": counts["encrypted"] - len(failed),
            "failed": len(failed),
            "failed_keys": failed,
        }
    return {
        "metadata": {
            "version": safe.version,
            "uuid": safe.uuid,
            "description": safe.description,
            "created": safe.created,
            "updated": safe.updated,
        },
        "statistics": {
            "total_secrets": counts["total"],
            "encrypted": counts["encrypted"],
            "plain_text": counts["plain"],
        },
        "integrity": {
            "password_hash_ok": password is not None,
            "encrypted_secrets_verified": password is not None and not failed,
            "verification_details": details,
        },
    }


def parse_env_file(text: str) -> List[Tuple[str, str]]:
    """Parse dotenv text; quotes around a value are stripped, keys must be valid env names."""
    pairs = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise SafeParseError("Invalid format: expected KEY=VALUE", line=lineno)
        key, value = key.strip(), value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        if not key:
            raise SafeParseError("Empty key", line=lineno)
        if not is_valid_env_key(key):
            raise SafeParseError(f"Invalid key '{key}' (must match [A-Za-z_][A-Za-z0-9_]*)", line=lineno)
        pairs.append((key, value))
    return pairs


def import_pairs(
    safe: Safe, pairs: Iterable[Tuple[str, str]], password: str, plain_keys: Optional[Set[str]] = None
) -> Tuple[int, int]:
    plain_keys = plain_keys or set()
    encrypted = plain = 0
    for key, value in pairs:
        if key in plain_keys:
            check_plain_value(key, value)
            safe.add_or_update_item(key, value, False)
            plain += 1
        else:
            safe.add_or_update_item(key, encrypt_value(password, value), True)
            encrypted += 1
    return encrypted, plain


def create_safe_file(
    safe_path: str, password: str, description: str, ssm_prefix: Optional[str] = None
) -> Safe:
    if os.path.exists(safe_path):
        raise FileExistsError(f"Safe file '{safe_path}' already exists")
    safe = new_safe(password, description)
    if ssm_prefix is not None:
        prefix = ssm_prefix.strip()
        if not prefix:
            raise SafeParseError("SSM prefix cannot be empty when provided")
        if not prefix.startswith("/"):
            logger.warning(
                "SSM prefix '%s' does not start with '/'. AWS SSM parameters typically start with '/'", prefix
            )
        safe.ssm_prefix = prefix
    save_safe(safe_path, safe)
    return safe


def import_env_file(
    safe_path: str, file_path: str, password: str, plain_keys: Optional[Set[str]] = None
) -> Tuple[Safe, int, int]:
    path = Path(file_path)
    if not path.is_file():
        raise SafeParseError(f"Input file '{file_path}' does not exist")
    pairs = parse_env_file(path.read_text(encoding="utf-8"))
    if not pairs:
        raise SafeParseError("No valid key-value pairs found in input file")
    if os.path.exists(safe_path):
        raise FileExistsError(f"Safe file '{safe_path}' already exists")
    if plain_keys:
        missing = sorted(plain_keys - {k for k, _ in pairs})
        if missing:
            logger.warning("Plain keys not found in file: %s", ", ".join(missing))
    safe = new_safe(password, "Imported from file")
    encrypted, plain = import_pairs(safe, pairs, password, plain_keys)
    save_safe(safe_path, safe)
    return safe, encrypted, plain


def offer_remember(session: Session, safe: Safe, password: str, remember: bool) -> None:
    if not remember and not confirm(
        "Would you like to save the safe key for automatic authentication? (y/N): ", reader=session.reader
    ):
        print_info("Tip: use 'skit remember-safekey' to save your safe key securely for easy access")
        return
    path = save_safe_key(session.config, safe.uuid, password)
    print_success(f"Safe key saved for automatic authentication at {path}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
def cmd_init(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    if os.path.exists(session.safe_path):
        print_info(f"Safe already exists at {session.safe_path}")
        return

    print("Creating new safe.")
    print("\nPassword requirements for new safe:")
    print("\n".join(REQUIREMENTS))
    password = collect_new_password(
        session.prompt, label="password for the safe", allow_generate=True, generator=generate_secure_password
    )

    description = args.description
    if description is None:
        description = session.reader("\nEnter a description for this safe (optional): ")
    description = description.strip() or DEFAULT_DESCRIPTION
    check_text_field(description, "Description")

    safe = create_safe_file(session.safe_path, password, description, args.ssm_prefix)
    if safe.ssm_prefix:
        print_info(f"Associated this safe with default SSM prefix: {safe.ssm_prefix}")
    print_success(f"Created new safe at {session.safe_path}")
    offer_remember(session, safe, password, args.remember)


def cmd_set(args: argparse.Namespace) -> None:
    validate_key(args.key)
    session = session_from_args(args)
    run_on_safe(
        session,
        lambda safe, pw: set_secret(safe, args.key, args.value, pw, args.plain),
        needs_auth=lambda safe: not args.plain,
        modifies=True,
    )
    print_success(f"Set {args.key} ({'plain text' if args.plain else 'encrypted'}) in safe")


def cmd_get(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    value = run_on_safe(
        session,
        lambda safe, pw: get_secret(safe, args.key, pw),
        needs_auth=lambda safe: item_is_encrypted(safe, args.key),
    )
    print(value)


def cmd_rm(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    run_on_safe(
        session,
        lambda safe, pw: remove_secret(safe, args.key),
        needs_auth=lambda safe: item_is_encrypted(safe, args.key),
        modifies=True,
    )
    print_success(f"Removed '{args.key}' from safe")


def cmd_keys(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    safe = load_safe(session.safe_path)
    items = safe.sorted_items()
    if args.format == "json":
        print_json({"keys": [{"key": i.key, "type": i.type_label} for i in items]})
        return
    if not items:
        print("No items in safe")
        return
    print_rows(["KEY", "TYPE"], [[i.key, i.type_label] for i in items])


def cmd_print(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    rows = run_on_safe(
        session,
        lambda safe, pw: reveal_items(safe, pw, args.plain, args.enc),
        needs_auth=lambda safe: safe.has_encrypted() and not args.plain,
    )
    if args.format == "json":
        print_json({"items": [{"key": k, "value": v, "type": "ENC" if e else "PLAIN"} for k, v, e in rows]})
    elif args.format == "env":
        for key, value, _ in rows:
            print(f"{key}={value}")
    elif not rows:
        print("No items in safe")
    else:
        print_grouped(rows)


def _load_values(session: Session) -> Dict[str, str]:
    return run_on_safe(session, decrypted_values, needs_auth=lambda safe: safe.has_encrypted())


def cmd_env(args: argparse.Namespace) -> None:
    values = _load_values(session_from_args(args))
    for key, value in values.items():
        if not is_valid_env_key(key):
            logger.warning("Skipping invalid environment key: %s", key)
            continue
        print(f"export {key}={shell_quote(value)}")


def cmd_export(args: argparse.Namespace) -> None:
    values = _load_values(session_from_args(args))
    for key, value in values.items():
        print(f"{key}={value}")


def cmd_exec(args: argparse.Namespace) -> int:
    command = list(args.command or [])
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        raise EmptyCommandError()
    values = _load_values(session_from_args(args))
    env = dict(os.environ)
    env.update(values)
    try:
        return subprocess.run(command, env=env).returncode
    except FileNotFoundError as e:
        print_error(f"Failed to execute '{command[0]}': {e}")
        return 127


def cmd_status(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    status = run_on_safe(session, safe_status, needs_auth=lambda safe: bool(safe.password_hash))
    status["safe_path"] = session.safe_path
    if args.format == "json":
        print_json(status)
        return
    meta, stats, integ = status["metadata"], status["statistics"], status["integrity"]
    print_info(f"Safe: {session.safe_path}")
    print("\nMetadata:")
    print(f"  Version: {meta['version']}")
    print(f"  UUID: {meta['uuid']}")
    print(f"  Description: {meta['description']}")
    print(f"  Created: {meta['created']}")
    print(f"  Last updated: {meta['updated']}")
    print("\nStatistics:")
    print(f"  Total secrets: {stats['total_secrets']}")
    print(f"  Encrypted:     {stats['encrypted']}")
    print(f"  Plain text:    {stats['plain_text']}")
    print("\nIntegrity:")
    print(f"  Password hash: {'OK' if integ['password_hash_ok'] else 'FAILED'}")
    details = integ["verification_details"]
    if details:
        print(f"  Encrypted secrets: {details['verified']}/{details['total_encrypted']} verified")
        for key in details["failed_keys"]:
            print_error(f"Failed to decrypt: {key}")


def cmd_ls(args: argparse.Namespace) -> None:
    entries = []
    for path in sorted(Path(".").glob(".*.safe")):
        try:
            safe = load_safe(path)
        except SkitError:
            entries.append({"file": path.name, "description": "", "statistics": None, "updated": "", "status": "invalid"})
            continue
        entries.append(
            {
                "file": path.name,
                "description": safe.description,
                "statistics": safe.counts(),
                "updated": safe.updated,
                "status": "valid",
            }
        )
    if args.format == "json":
        print_json({"safes": entries})
        return
    if not entries:
        print_info("No safe files found in current directory")
        return
    rows = []
    for e in entries:
        st = e["statistics"] or {"total": "-", "encrypted": "-", "plain": "-"}
        rows.append([e["file"], e["description"], st["total"], st["encrypted"], st["plain"], e["updated"], e["status"]])
    print_rows(["FILE", "DESCRIPTION", "TOTAL", "ENC", "PLAIN", "UPDATED", "STATUS"], rows)


def cmd_import(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    plain_keys = parse_key_list(args.plain_keys)
    if not Path(args.file).is_file():
        raise SafeParseError(f"Input file '{args.file}' does not exist")
    if os.path.exists(session.safe_path):
        raise FileExistsError(
            f"Safe file '{session.safe_path}' already exists. Choose a different name with --safe or remove it"
        )
    if plain_keys:
        print_info(f"{len(plain_keys)} keys will stay as plain text: {', '.join(sorted(plain_keys))}")

    print("\nCreating your secure safe...")
    print("\n".join(REQUIREMENTS))
    password = collect_new_password(
        session.prompt, label="password for new safe", allow_generate=True, generator=generate_secure_password
    )
    safe, encrypted, plain = import_env_file(session.safe_path, args.file, password, plain_keys)
    print_success(
        f"Imported {encrypted + plain} secrets ({encrypted} encrypted, {plain} plain text) into {session.safe_path}"
    )
    offer_remember(session, safe, password, False)

