"""
Administrator password hashing.

New passwords are always hashed with Argon2id. PBKDF2-HMAC-SHA256 hashes
(``pbkdf2$sha256$<iterations>$<salt>$<digest>``) written by older
deployments are still accepted at login; any other scheme is rejected.
"""
from __future__ import annotations

import base64
import hashlib
import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type

MAX_PASSWORD_LENGTH = 1024

_hasher = PasswordHasher(time_cost=2, memory_cost=102400, parallelism=8, hash_len=32, type=Type.ID)


class PasswordPolicyError(ValueError):
    """A new admin password was refused before hashing."""


def check_password_policy(password: str) -> None:
    if not password or not password.strip():
        raise PasswordPolicyError("Password must not be empty")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise PasswordPolicyError(f"Password must be at most {MAX_PASSWORD_LENGTH} characters")


def hash_password(password: str) -> str:
    check_password_policy(password)
    return _hasher.hash(password)


def _verify_legacy_pbkdf2(password: str, encoded: str) -> bool:
    try:
        _scheme, algo, iter_str, b64_salt, b64_digest = encoded.split("$")
        if algo != "sha256":
            return False
        salt = base64.urlsafe_b64decode(b64_salt)
        expected = base64.urlsafe_b64decode(b64_digest)
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iter_str))
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(digest, expected)


def verify_password(password: str, encoded_hash: str) -> bool:
    if not password or not encoded_hash or len(password) > MAX_PASSWORD_LENGTH:
        return False
    if encoded_hash.startswith("$argon2"):
        try:
            return _hasher.verify(encoded_hash, password)
        except (VerificationError, InvalidHashError):
            return False
    if encoded_hash.startswith("pbkdf2$"):
        return _verify_legacy_pbkdf2(password, encoded_hash)
    return False
