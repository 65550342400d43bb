# Overview: Service-layer operations for auth; password hashing and login.

"""
Authentication Service

Passwords are hashed with bcrypt. Login returns an opaque bearer token from
session_service; the token is the only credential the API accepts afterwards.
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import AuthenticationError
from ..models import User
from ..validation import ValidationError
from . import session_service

MIN_PASSWORD_LENGTH = 6


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Cost factor comes from BCRYPT_ROUNDS (12 by default, 4 under tests).
    """
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User:
    user = db.session.query(User).filter_by(username=username).first()

    # Same message for unknown user and bad password
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid username or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return user


def login(username: str, password: str) -> tuple[User, str]:
    """Returns (user, plaintext_token)."""
    user = authenticate(username, password)
    _, token = session_service.create_session(user.id)
    current_app.logger.info("User %s logged in", user.username)
    return user, token


def get_current_user(token: str) -> User | None:
    return session_service.validate_session(token)


def logout(token: str) -> bool:
    return session_service.revoke_session(token)
