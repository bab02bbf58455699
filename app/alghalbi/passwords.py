from __future__ import annotations

import secrets
from functools import lru_cache

import bcrypt

from app.alghalbi.constants import BCRYPT_ROUNDS


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of ``plain`` (fixed work factor)."""
    if not plain:
        raise ValueError("Password is empty")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, password_hash: str) -> bool:
    if not plain or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed / non-bcrypt hash.
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(secrets.token_urlsafe(16))


def burn_verify(plain: str) -> None:
    """
    Spend one verification on a throwaway hash so a login for an unknown email
    takes as long as one with a wrong password.
    """
    verify_password(plain or "x", _dummy_hash())
