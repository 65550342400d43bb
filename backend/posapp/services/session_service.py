# Overview: Service-layer operations for session tokens.

"""
Session Token Management

- Random tokens from secrets.token_hex (32 bytes)
- Only the SHA-256 hash is stored
- Absolute lifetime of SESSION_TTL_HOURS; revocable on logout
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from posapp.time_utils import utcnow


def generate_token() -> str:
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """
    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    ttl_hours = int(current_app.config.get("SESSION_TTL_HOURS", 12))
    token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    db.session.add(session)
    db.session.commit()

    return session, token


def validate_session(token: str) -> User | None:
    """Return the active user for a live token, otherwise None."""
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.revoked_at is not None:
        return None

    if session.expires_at <= utcnow():
        return None

    user = db.session.get(User, session.user_id)
    if not user or not user.is_active:
        return None

    return user


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.revoked_at is not None:
        return False

    session.revoked_at = utcnow()
    db.session.commit()
    return True
