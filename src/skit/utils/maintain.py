import argparse
import logging
import os

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from skit.crypto.envelope import decrypt_value, encrypt_value
from skit.crypto.hash import hash_password
from skit.storage.keyfile import remove_safe_key, save_safe_key, scan_key_files
from skit.storage.safe import check_password, check_text_field, load_safe, new_safe, save_safe
from skit.ui.display import print_error, print_info, print_success
from skit.ui.prompt import collect_new_password, confirm
from skit.utils.core import Session, offer_remember, session_from_args
from skit.utils.dataModels import Safe
from skit.utils.errors import CryptoError, DecryptionFailed, InvalidPasswordError, SkitError
from skit.utils.helper import format_days_ago, normalize_safe_path
from skit.utils.password import REQUIREMENTS, generate_secure_password, validate_password_strength

logger = logging.getLogger(__name__)


@dataclass
class RotationResult:
    reencrypted: int
    key_file_removed: bool


def decrypt_all(safe: Safe, password: str) -> Dict[str, str]:
    """Open every encrypted item or fail on the first one that does not open."""
    plaintexts = {}
    for item in safe.sorted_items():
        if not item.is_encrypted:
            continue
        try:
            plaintexts[item.key] = decrypt_value(password, item.value)
        except CryptoError as e:
            plaintexts.clear()
            raise DecryptionFailed(f"Failed to decrypt '{item.key}': {e}") from None
        logger.debug("Decrypted: %s", item.key)
    return plaintexts


def reseal(safe: Safe, plaintexts: Dict[str, str], new_password: str) -> None:
    """Replace the password hash and re-encrypt every value, each under a fresh salt and nonce."""
    safe.password_hash = hash_password(new_password)
    for key, plaintext in plaintexts.items():
        safe.add_or_update_item(key, encrypt_value(new_password, plaintext), True)
        logger.debug("Re-encrypted: %s", key)


def rotate_safe(
    session: Session,
    new_password: Callable[[], str],
) -> RotationResult:
    """Rotate the safe password and every per-value salt.
    Steps:
      1) Collect the encrypted items.
      2) If there are any, authenticate the current password through the auth chain.
      3) Decrypt all of them; any failure aborts before anything is written.
      4) Obtain the new password.
      5) Rehash and 6) re-encrypt in memory.
      7) Persist with a single save; a key file holding the old password is removed afterwards.
    """
    safe = load_safe(session.safe_path)
    encrypted = [i for i in safe.items.values() if i.is_encrypted]
    if encrypted:
        logger.info("Found %d encrypted secrets to re-encrypt", len(encrypted))
    else:
        logger.info("No encrypted secrets found. Only rotating the password hash.")

    old_password: Optional[str] = None
    if encrypted:
        old_password = session.authenticate(safe, "Enter CURRENT password to decrypt existing secrets: ")
    plaintexts = decrypt_all(safe, old_password) if old_password is not None else {}

    password = new_password()
    validate_password_strength(password)
    try:
        reseal(safe, plaintexts, password)
    finally:
        plaintexts.clear()
    save_safe(session.safe_path, safe)

    removed = remove_safe_key(session.config, safe.uuid)
    if removed:
        logger.warning("Removed saved key for %s; it held the previous password", safe.uuid)
    return RotationResult(reencrypted=len(encrypted), key_file_removed=removed)


def copy_safe(source: Safe, source_password: Optional[str], new_password: str, description: str) -> Safe:
    """New safe (new UUID and hash) holding every item of ``source``, encrypted ones resealed."""
    plaintexts = decrypt_all(source, source_password) if source.has_encrypted() else {}
    dest = new_safe(new_password, description)
    dest.ssm_prefix, dest.ssm_region = source.ssm_prefix, source.ssm_region
    for item in source.sorted_items():
        if item.is_encrypted:
            dest.add_or_update_item(item.key, encrypt_value(new_password, plaintexts[item.key]), True)
        else:
            dest.add_or_update_item(item.key, item.value, False)
    plaintexts.clear()
    return dest


def remember_safekey(session: Session, safe: Safe, password: str) -> str:
    check_password(safe, password, "argument")
    return str(save_safe_key(session.config, safe.uuid, password))


def cmd_rotate(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    print(f"Starting credential rotation for safe: {session.safe_path}\n")
    print("WARNING: This will rotate your salt and password.")
    print("    All encrypted secrets will be re-encrypted with new credentials.")
    print("    Make sure you have a backup before proceeding.\n")
    if not args.yes and not confirm("Do you want to continue? (yes/no): ", reader=session.reader):
        print_info("Rotation cancelled")
        return

    def ask_new() -> str:
        print("\nCreating new credentials:")
        print("\n".join(REQUIREMENTS))
        return collect_new_password(session.prompt, label="NEW password")

    result = rotate_safe(session, ask_new)
    print_success("Credential rotation completed successfully!")
    if result.reencrypted:
        print_info(f"Re-encrypted {result.reencrypted} secrets with new per-secret salts")
    if result.key_file_removed:
        print_info("Saved safe key removed; run 'skit remember-safekey' to save the new one")


def cmd_copy(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    dest_path = normalize_safe_path(args.dest)
    if os.path.exists(dest_path):
        raise FileExistsError(f"Destination safe already exists at {dest_path}")
    source = load_safe(session.safe_path)
    description = (args.description or "").strip() or f"Copy of {source.description}"
    check_text_field(description, "Description")
    source_password = session.authenticate(source) if source.has_encrypted() else None

    print(f"Creating new safe {dest_path} from {session.safe_path}")
    print("\n".join(REQUIREMENTS))
    password = collect_new_password(
        session.prompt, label="password for the new safe", allow_generate=True, generator=generate_secure_password
    )
    dest = copy_safe(source, source_password, password, description)
    save_safe(dest_path, dest)
    print_success(f"Copied {len(dest.items)} secrets to {dest_path}")
    dest_session = Session(safe_path=dest_path, config=session.config, prompt=session.prompt, reader=session.reader)
    offer_remember(dest_session, dest, password, args.remember)


def cmd_remember_safekey(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    safe = load_safe(session.safe_path)
    password = session.config.env_password()
    if password is not None:
        print_info("Using safe key from environment")
    else:
        print("Enter the password for this safe to verify and save it:")
        password = session.prompt("Password: ")
    try:
        path = remember_safekey(session, safe, password)
    except InvalidPasswordError:
        raise InvalidPasswordError("Invalid password provided") from None
    print_success(f"Password saved to {path}")
    print_info(f"Safe UUID: {safe.uuid}")


def cmd_cleanup_keys(args: argparse.Namespace) -> None:
    session = session_from_args(args)
    if args.older_than_days < 0:
        raise SkitError("--older-than-days must not be negative")
    if not session.config.keys_dir.is_dir():
        print_info("No saved keys directory found - nothing to clean up")
        return
    keys = scan_key_files(session.config, args.older_than_days)
    if not keys:
        print_info("No key files found in the keys directory")
        return

    recent = [k for k in keys if not k.stale]
    old = [k for k in keys if k.stale]
    if recent:
        print_info(f"Keeping {len(recent)} recent key(s):")
        for k in recent:
            print(f"  - {k.name} (accessed {format_days_ago(k.days_ago)})")
    if not old:
        print_info("No old keys found to remove")
        return

    verb = "Would remove" if args.dry_run else "Found"
    print_info(f"{verb} {len(old)} old key(s) (not accessed for {args.older_than_days}+ days):")
    for k in old:
        print(f"  - {k.name} (accessed {format_days_ago(k.days_ago)})")
    if args.dry_run:
        print_info("Run without --dry-run to actually remove these keys")
        return

    print_error("WARNING: This operation is IRREVERSIBLE!")
    if not args.yes and not confirm("Continue with deletion? [y/N]: ", reader=session.reader):
        print_info("Cleanup cancelled")
        return

    removed = 0
    for k in old:
        try:
            k.path.unlink()
        except OSError as e:
            print_error(f"Failed to remove key {k.name}: {e}")
            continue
        removed += 1
        print_success(f"Removed old key: {k.name} (was accessed {format_days_ago(k.days_ago)})")
    print_success(f"Cleanup completed - removed {removed} old key(s)")
