"""Password hashing.

New hashes are bcrypt. Accounts created by the previous Node backend carry
``<hex digest>.<salt>`` scrypt hashes (N=16384, r=8, p=1, 64-byte key); those
still verify, and ``needs_rehash`` lets login upgrade them to bcrypt.
"""

import asyncio
import hashlib
import hmac

import bcrypt

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEYLEN = 64

# Used when the account does not exist so the response time stays the same
DUMMY_HASH = "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/X4.a8HkA6K1qRQDSu"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def _is_bcrypt(stored: str) -> bool:
    return stored.startswith(("$2a$", "$2b$", "$2y$"))


def _verify_scrypt(password: str, stored: str) -> bool:
    digest_hex, sep, salt = stored.partition(".")
    if not sep or not digest_hex or not salt:
        return False
    try:
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False
    derived = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_KEYLEN,
    )
    return hmac.compare_digest(derived, expected)


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a bcrypt or legacy scrypt hash."""
    if not stored:
        return False
    if _is_bcrypt(stored):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            return False
    return _verify_scrypt(password, stored)


def needs_rehash(stored: str) -> bool:
    return not _is_bcrypt(stored)


async def hash_password_async(password: str) -> str:
    """``hash_password`` in a worker thread."""
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, stored: str) -> bool:
    """``verify_password`` in a worker thread."""
    return await asyncio.to_thread(verify_password, password, stored)
