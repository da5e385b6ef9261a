# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every allocation write is attributed to a user. Uses bcrypt for
password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- The login session itself is Flask's signed cookie (see routes/auth.py)
"""

import bcrypt
import re
from ..extensions import db
from ..models import User, Department
from ..permissions import VALID_ROLES, normalize_role
from azwork.time_utils import utcnow


class PasswordValidationError(Exception):
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


def hash_password(password: str, *, rounds: int = 12) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for malformed hashes instead of raising.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    *,
    role: str,
    department_id: int | None = None,
    full_name: str | None = None,
    email: str | None = None,
    job_title: str | None = None,
    bcrypt_rounds: int = 12,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValueError: If username exists, role is unknown, or department missing
        PasswordValidationError: If password doesn't meet requirements
    """
    username = (username or "").strip()
    if not username:
        raise ValueError("Username is required")

    canonical_role = normalize_role(role)
    if canonical_role is None:
        raise ValueError(f"Invalid role. Must be one of: {', '.join(sorted(VALID_ROLES))}")

    existing = db.session.query(User).filter(User.username == username).first()
    if existing:
        raise ValueError("Username already exists")

    if department_id is not None:
        department = db.session.query(Department).filter(
            Department.id == department_id,
            Department.deleted_at.is_(None),
        ).first()
        if not department:
            raise ValueError("Department not found")

    user = User(
        username=username,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        role=canonical_role,
        department_id=department_id,
        full_name=full_name,
        email=email,
        job_title=job_title,
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()

    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials are valid and the account is active,
    None otherwise. Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == (username or "").strip(),
        User.deleted_at.is_(None),
    ).first()

    if not user:
        return None

    if not user.is_active:
        return None

    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()

    return user
