#!/usr/bin/env python3
"""
skit (Security Kit) - a local secrets store in a single .env-style file.

Every value is either plain text or a self-contained encrypted envelope, and
the whole safe is guarded by one password whose Argon2id hash sits in the
file header. The file is plain UTF-8, so it can be committed next to the code.

Safe file:
    #@VERSION=1.0
    #@UUID=<uuid4>
    #@DESCRIPTION=<text>
    #@CREATED=<YYYY-MM-DD HH:MM:SS UTC>
    #@UPDATED=<YYYY-MM-DD HH:MM:SS UTC>
    #@PASS_HASH=<argon2id PHC string>
    #@SSM_PREFIX=<optional>
    #@SSM_REGION=<optional>
    KEY1=plainvalue
    KEY2=ENC~v1~<base64(salt(16) || nonce(12) || ciphertext || tag(16))>

Password sources, in order:
    SKIT_SAFEKEY environment variable
    ~/.config/skit/keys/<uuid>.key   (see remember-safekey / cleanup-keys)
    interactive masked prompt

Security choices:
  - AEAD: AES-256-GCM via cryptography.hazmat
  - Per-value key: Argon2id(password, salt16) with m=64 MiB, t=3, p=1 via argon2-cffi low-level API
  - Safe password hash: argon2.PasswordHasher (own salt, PHC encoded)
"""
import sys

from skit.ui.cli import build_parser
from skit.utils.errors import SkitError
from skit.utils.helper import normalize_safe_path
from skit.utils.log import setup_logging


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    args.safe = normalize_safe_path(args.safe)
    try:
        rc = args.func(args)
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130
    except (SkitError, OSError) as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1
    return rc or 0


if __name__ == "__main__":
    sys.exit(main())
