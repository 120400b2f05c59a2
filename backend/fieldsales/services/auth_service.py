# Overview: Service-layer operations for auth; encapsulates password hashing, account creation and login.

"""
Authentication Service

WHY: Every action must be attributable to a login. Uses bcrypt for password
hashing and validates password strength for user-chosen passwords.

HIERARCHY: Accounts created by an admin (directly, or through one of the
admin's managers) carry created_by_admin_id. That back-reference is the last
fallback the hierarchy resolver uses for agents without a manager.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- User-chosen passwords: min 8 chars, upper, lower, digit, special char
- Generated temporary passwords always satisfy the same rule
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re
from flask import current_app

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import User
from ..models.auth import ROLE_USER, VALID_ROLES
from ..validation import normalize_email
from .hierarchy_service import normalize_role
from fieldsales.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_USER,
    created_by_admin_id: int | None = None,
    phone: str | None = None,
    profile_picture: str | None = None,
    commit: bool = True,
) -> User:
    """
    Create a login account.

    Email is normalized (trim + lowercase) and must be unique system-wide.
    With commit=False the user is only flushed so callers can create the
    paired profile in the same transaction.
    """
    normalized_email = normalize_email(email)
    normalized_role = normalize_role(role)
    clean_name = str(name or "").strip()

    if not clean_name or not normalized_email:
        raise ValidationError("name and email are required")
    if normalized_role not in VALID_ROLES:
        raise ValidationError("Invalid role")

    existing = db.session.query(User).filter_by(email=normalized_email).first()
    if existing:
        raise ConflictError("User with this email already exists")

    user = User(
        name=clean_name,
        email=normalized_email,
        password_hash=hash_password(password),
        role=normalized_role,
        created_by_admin_id=created_by_admin_id,
        phone=str(phone).strip() if phone else None,
        profile_picture=str(profile_picture).strip() if profile_picture else None,
    )

    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    normalized_email = normalize_email(email)
    if not normalized_email or not password:
        return None

    user = db.session.query(User).filter(
        User.email == normalized_email,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def set_password(user: User, new_password: str, *, commit: bool = True) -> None:
    user.password_hash = hash_password(new_password)
    if commit:
        db.session.commit()


def change_password(user_id: int, current_password: str, new_password: str) -> User:
    """Verify the current password, then store the new one."""
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    if current_password == new_password:
        raise ValidationError("New password must be different from the current password")

    set_password(user, new_password)
    return user


def update_profile(user_id: int, data: dict) -> User:
    """Self-service profile edits: name, phone and profile picture URL."""
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    name = data.get("name")
    if isinstance(name, str) and name.strip():
        user.name = name.strip()
    phone = data.get("phone")
    if isinstance(phone, str):
        user.phone = phone.strip() or None
    picture = data.get("profile_picture")
    if isinstance(picture, str):
        user.profile_picture = picture.strip() or None

    db.session.commit()
    return user
