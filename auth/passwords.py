"""bcrypt password hashing.

bcrypt is used directly, without a passlib wrapper. bcrypt only accepts
72 bytes of input; longer passwords are refused by the request models
and never reach hash_password.
"""

import bcrypt

MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises:
        ValueError: Password longer than MAX_PASSWORD_BYTES when encoded.
    """
    if password_too_long(plain):
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash or an over-long password counts as a mismatch.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Verified against when the email is unknown, so a miss costs the same
# bcrypt work as a wrong password.
DUMMY_HASH: str = hash_password("sessiongate_timing_dummy")
