import secrets

from skit.utils.errors import PasswordPolicyError

MIN_PASSWORD_LEN = 12
LOWER = "abcdefghijklmnopqrstuvwxyz"
UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
DIGITS = "0123456789"
SPECIAL = "._@#-"
ALLOWED = LOWER + UPPER + DIGITS + SPECIAL

REQUIREMENTS = (
    "  - At least 12 characters",
    "  - At least one uppercase letter",
    "  - At least one lowercase letter",
    "  - At least one digit",
    "  - At least one special character. Allowed special characters: . _ @ # -",
)


def validate_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LEN:
        raise PasswordPolicyError(f"Password must be at least {MIN_PASSWORD_LEN} characters long")
    if any(c not in ALLOWED for c in password):
        raise PasswordPolicyError("Password contains invalid characters. Use only: a-z A-Z 0-9 . _ @ # -")
    if not any(c in LOWER for c in password):
        raise PasswordPolicyError("Password must contain at least one lowercase letter")
    if not any(c in UPPER for c in password):
        raise PasswordPolicyError("Password must contain at least one uppercase letter")
    if not any(c in DIGITS for c in password):
        raise PasswordPolicyError("Password must contain at least one digit")
    if not any(c in SPECIAL for c in password):
        raise PasswordPolicyError("Password must contain at least one special character (. _ @ # -)")


def generate_secure_password(length: int = MIN_PASSWORD_LEN) -> str:
    rng = secrets.SystemRandom()
    chars = [rng.choice(LOWER), rng.choice(UPPER), rng.choice(DIGITS), rng.choice(SPECIAL)]
    while len(chars) < length:
        chars.append(rng.choice(ALLOWED))
    rng.shuffle(chars)
    return "".join(chars)
