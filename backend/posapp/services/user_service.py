# Overview: Service-layer operations for staff accounts.

from sqlalchemy import or_

from ..extensions import db
from ..errors import NotFoundError
from ..models import User, USER_ROLES
from ..validation import ValidationError, ConflictError
from .auth_service import hash_password


def create_user(
    username: str,
    email: str,
    password: str,
    full_name: str,
    role: str,
) -> User:
    """
    Create a staff account with a bcrypt-hashed password.

    Raises:
        ValidationError: short username/password or unknown role
        ConflictError: username or email already taken
    """
    username = (username or "").strip()
    if len(username) < 3:
        raise ValidationError("username must be at least 3 characters")
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")

    existing = db.session.query(User).filter(
        or_(User.username == username, User.email == email)
    ).first()
    if existing:
        field = "username" if existing.username == username else "email"
        raise ConflictError(f"A user with this {field} already exists", details={"field": field})

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def list_users() -> list[User]:
    """Active users only."""
    return db.session.query(User).filter_by(is_active=True).order_by(User.username).all()


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def require_user(user_id: int, entity: str = "user") -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(entity, user_id)
    return user


def update_user_status(user_id: int, is_active: bool) -> User:
    user = require_user(user_id)
    user.is_active = is_active
    db.session.commit()
    return user
