"""Salted scrypt password hashing.

Stored credentials have the form ``<hex derived key>.<hex salt>``. A stored
value without the separator is treated as a legacy plaintext password; that
path only exists so old rows keep working until they are re-hashed.
"""
import hashlib
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64
SALT_BYTES = 16
SEPARATOR = "."


def _derive(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_password(password: str) -> str:
    """Derive a salted one-way hash for ``password``."""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{_derive(password, salt).hex()}{SEPARATOR}{salt}"


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a stored credential; never raises."""
    if not stored:
        return False

    if SEPARATOR not in stored:
        logger.warning("Verifying a legacy plaintext credential; it should be re-hashed")
        return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))

    stored_hash, _, salt = stored.partition(SEPARATOR)
    if not stored_hash or not salt:
        logger.error("Invalid password format: missing hash or salt")
        return False

    try:
        expected = bytes.fromhex(stored_hash)
        supplied = _derive(password, salt)
    except (ValueError, MemoryError) as e:
        logger.error(f"Password comparison failed: {e}")
        return False

    return hmac.compare_digest(supplied, expected)


def needs_rehash(stored: str) -> bool:
    """True for credentials still stored in the legacy plaintext form."""
    return bool(stored) and SEPARATOR not in stored
