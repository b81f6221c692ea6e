# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every inventory change is attributed to the user who made it, so every
request that mutates stock must come from an authenticated account.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_CUSTOMER, VALID_ROLES
from ..validation import ConflictError, NotFoundError, ValidationError
from .settings_service import ensure_user_settings
from dashng.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("email must be a valid email address")
    return email


def create_user(
    username: str,
    email: str,
    password: str,
    role: str = ROLE_CUSTOMER,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
) -> User:
    """
    Create a user together with its default settings row.

    Creating settings here keeps the recipient resolver from silently
    skipping new storekeepers.

    Raises:
        ValidationError: Missing username, bad email or unknown role
        ConflictError: Username or email already taken
        PasswordValidationError: Weak password
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    email = normalize_email(email)
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("User with this email or username already exists")

    password_hash = hash_password(password)

    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role,
        first_name=(first_name or "").strip() or None,
        last_name=(last_name or "").strip() or None,
        phone=(phone or "").strip() or None,
    )
    db.session.add(user)
    db.session.flush()

    ensure_user_settings(user.id)

    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    identifier = (username or "").strip()
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_user(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def update_profile(user_id: int, data: dict) -> User:
    """Update the caller's own contact details; other keys are ignored."""
    user = get_user(user_id)

    if "email" in data and data["email"] is not None:
        email = normalize_email(data["email"])
        if email != user.email:
            clash = db.session.query(User).filter(User.email == email, User.id != user.id).first()
            if clash:
                raise ConflictError("Email already in use")
        user.email = email

    for key in ("first_name", "last_name", "phone"):
        if key in data:
            value = data[key]
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{key} must be a string")
            setattr(user, key, (value or "").strip() or None)

    db.session.commit()
    return user


def change_password(user_id: int, current_password: str, new_password: str) -> None:
    """
    Raises:
        ValidationError: Current password incorrect
        PasswordValidationError: New password too weak
    """
    user = get_user(user_id)
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.session.commit()
