# Overview: Credential hashing and verification helpers.

"""
Authentication Helpers

Credential secrets are stored as bcrypt hashes in the users collection. The
session state machine only relies on an equality check (verify_password), so
the hash representation is invisible to the access-control contract.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Stored secrets that are not bcrypt hashes never verify
- The super_admin account is configured (SUPER_ADMIN_EMAIL /
  SUPER_ADMIN_PASSWORD) and compared in constant time
"""

import hmac

import bcrypt
from flask import current_app

from ..models import SuperAdmin, User
from storedesk.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6
SUPER_ADMIN_USER_ID = "super_admin"

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in the users collection


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    if not password or not password_hash:
        return False

    # Clear-text secrets from legacy data are rejected; reset via store admin
    if not password_hash.startswith(_BCRYPT_PREFIXES):
        return False

    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def is_super_admin_login(email: str, password: str) -> bool:
    expected_email = current_app.config.get("SUPER_ADMIN_EMAIL") or ""
    expected_password = current_app.config.get("SUPER_ADMIN_PASSWORD") or ""
    if not expected_email or not expected_password:
        return False
    email_ok = hmac.compare_digest(email.strip().lower().encode(), expected_email.lower().encode())
    password_ok = hmac.compare_digest(password.encode(), expected_password.encode())
    return email_ok and password_ok


def build_super_admin(email: str) -> User:
    """The super_admin identity persisted in the session slot."""
    return User(
        id=SUPER_ADMIN_USER_ID,
        email=email.strip().lower(),
        password="",
        name="Super Admin",
        role=SuperAdmin(),
        created_at=utcnow(),
    )
