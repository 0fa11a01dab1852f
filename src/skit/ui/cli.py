import argparse

from skit.utils.core import (
    cmd_env,
    cmd_exec,
    cmd_export,
    cmd_get,
    cmd_import,
    cmd_init,
    cmd_keys,
    cmd_ls,
    cmd_print,
    cmd_rm,
    cmd_set,
    cmd_status,
)
from skit.utils.dataModels import DEFAULT_SAFE_PATH, SKIT_VERSION
from skit.utils.maintain import cmd_cleanup_keys, cmd_copy, cmd_remember_safekey, cmd_rotate


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="skit",
        description="Security Kit (skit) - store secrets in .env format with encrypted values, safe to commit",
    )
    p.add_argument("--version", action="version", version=f"skit {SKIT_VERSION}")
    p.add_argument("-s", "--safe", default=DEFAULT_SAFE_PATH, help="Path or name of the safe file")
    p.add_argument("--config-dir", help="Directory holding saved keys (default: ~/.config/skit)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Create a new safe with strong password protection")
    p_init.add_argument("-d", "--description", help="Description for the safe")
    p_init.add_argument("-r", "--remember", action="store_true", help="Remember the safe key")
    p_init.add_argument("--ssm-prefix", help="Default AWS SSM parameter prefix to associate with this safe")
    p_init.set_defaults(func=cmd_init)

    p_set = sub.add_parser("set", help="Add or update a secret (encrypted by default)")
    p_set.add_argument("key", help="Secret key name")
    p_set.add_argument("value", help="Secret value")
    p_set.add_argument("-p", "--plain", action="store_true", help="Store as plain text instead of encrypted")
    p_set.set_defaults(func=cmd_set)

    p_get = sub.add_parser("get", help="Get and decrypt a secret value")
    p_get.add_argument("key", help="Secret key name to retrieve")
    p_get.set_defaults(func=cmd_get)

    p_print = sub.add_parser("print", help="Display all secrets")
    only = p_print.add_mutually_exclusive_group()
    only.add_argument("-p", "--plain", action="store_true", help="Show only plain text values (no password required)")
    only.add_argument("-e", "--enc", action="store_true", help="Show only encrypted values")
    p_print.add_argument("-o", "--format", choices=["table", "json", "env"], default="table")
    p_print.set_defaults(func=cmd_print)

    p_keys = sub.add_parser("keys", help="List secret keys with their types")
    p_keys.add_argument("-o", "--format", choices=["table", "json"], default="table")
    p_keys.set_defaults(func=cmd_keys)

    p_rm = sub.add_parser("rm", help="Remove a secret from the safe")
    p_rm.add_argument("key", help="Secret key name to remove")
    p_rm.set_defaults(func=cmd_rm)

    p_exec = sub.add_parser("exec", help="Run a command with secrets injected as environment variables")
    p_exec.add_argument("command", nargs=argparse.REMAINDER, help="Command and arguments (after --)")
    p_exec.set_defaults(func=cmd_exec)

    p_status = sub.add_parser("status", help="Show safe metadata and integrity status")
    p_status.add_argument("-o", "--format", choices=["table", "json"], default="table")
    p_status.set_defaults(func=cmd_status)

    p_rot = sub.add_parser("rotate", help="Rotate the password and re-encrypt all secrets")
    p_rot.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    p_rot.set_defaults(func=cmd_rotate)

    p_ls = sub.add_parser("ls", help="List safe files in the current directory")
    p_ls.add_argument("-o", "--format", choices=["table", "json"], default="table")
    p_ls.set_defaults(func=cmd_ls)

    p_env = sub.add_parser("env", help="Output secrets as shell export lines")
    p_env.set_defaults(func=cmd_env)

    p_exp = sub.add_parser("export", help="Output secrets as KEY=value lines")
    p_exp.set_defaults(func=cmd_export)

    p_rem = sub.add_parser("remember-safekey", help="Save the safe key for automatic authentication")
    p_rem.set_defaults(func=cmd_remember_safekey)

    p_clean = sub.add_parser("cleanup-keys", help="Remove saved keys not used for a while")
    p_clean.add_argument("--older-than-days", type=int, required=True, help="Remove keys not accessed for N days")
    p_clean.add_argument("--dry-run", action="store_true", help="Show what would be removed")
    p_clean.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    p_clean.set_defaults(func=cmd_cleanup_keys)

    p_imp = sub.add_parser("import", help="Create a safe from an existing cleartext .env file")
    p_imp.add_argument("-f", "--file", required=True, help="Path to the input file")
    p_imp.add_argument("--plain-keys", help="Comma-separated keys to store as plain text")
    p_imp.set_defaults(func=cmd_import)

    p_copy = sub.add_parser("copy", help="Copy the safe to a new safe with new encryption")
    p_copy.add_argument("dest", help="Destination safe path or name")
    p_copy.add_argument("-d", "--description", help="Description for the new safe")
    p_copy.add_argument("-r", "--remember", action="store_true", help="Remember the new safe key")
    p_copy.set_defaults(func=cmd_copy)

    return p
