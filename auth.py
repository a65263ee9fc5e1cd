"""
auth.py
Authentication utilities (bcrypt hashing, verify, login) and the role gate.
"""

from __future__ import annotations

import logging

import bcrypt

from errors import AuthFailure, Forbidden
from models import Role, User

logger = logging.getLogger(__name__)


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored with the user record).
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    try:
        return bcrypt.checkpw(secret, stored)
    except ValueError:
        # malformed hash in the store
        return False


def get_user_by_email(storage, email: str) -> dict | None:
    wanted = email.strip().lower()
    row = storage.get("users", wanted)
    if row:
        return row
    for row in storage.all("users"):
        if row["email"].lower() == wanted:
            return row
    return None


def authenticate(storage, email: str, password: str) -> User:
    row = get_user_by_email(storage, email or "")
    if not row or not verify_password((password or "").strip(), row.get("password_hash", "")):
        logger.info("Login failed for %s", email)
        raise AuthFailure("invalid credentials")
    logger.info("Login successful for %s", row["email"])
    return User(email=row["email"], name=row["name"], role=row["role"])


def require_role(user: User | None, *allowed: Role) -> Role:
    """Deny by default: no user, unknown role or role outside `allowed`."""
    if user is None:
        raise Forbidden("not logged in")
    role = Role.parse(user.role)
    if role is None or role not in allowed:
        raise Forbidden(f"role {user.role!r} not allowed")
    return role
