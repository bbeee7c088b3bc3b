# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every product mutation is attributed to an actor, so identities must be
real. Passwords are bcrypt-hashed at signup and verified at login.

Flows:
- signup(name, email, password, role) -> AuthResult
- login(email, password, role)        -> AuthResult
- logout(token)                       -> None (never fails)

Both signup and login create a session token and return the landing view
for the account's role.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_LOG_ROUNDS, default 12)
- Minimum 8 characters required
- Role is chosen at signup and never changed afterwards
- Unknown email, wrong password and role mismatch are indistinguishable
  to the caller (all InvalidCredentials)
"""

from dataclasses import dataclass

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, SessionToken, ROLES, ROLE_ADMIN
from ..validation import (
    ValidationError,
    InvalidCredentials,
    ForbiddenError,
    ConflictError,
    require_fields,
    validate_email,
)
from . import session_service
from .security_service import log_security_event
from pricebook.time_utils import utcnow

MIN_PASSWORD_LENGTH = 8

ADMIN_LANDING_PATH = "/admin/dashboard"
USER_LANDING_PATH = "/dashboard"


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


@dataclass
class AuthResult:
    user: User
    session: SessionToken
    token: str
    landing_path: str

    def to_dict(self) -> dict:
        return {
            "user": self.user.to_dict(),
            "token": self.token,
            "session": self.session.to_dict(),
            "redirect_to": self.landing_path,
        }


def landing_path_for(role: str) -> str:
    return ADMIN_LANDING_PATH if role == ROLE_ADMIN else USER_LANDING_PATH


def validate_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def validate_role(role: str) -> str:
    role = role.strip().lower() if isinstance(role, str) else ""
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (cost factor BCRYPT_LOG_ROUNDS, default 12).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash (constant time)."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(name: str, email: str, password: str, role: str, commit: bool = True) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: bad email, role, or weak password
        ConflictError: email already registered
    """
    email = validate_email(email)
    role = validate_role(role)

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("An account with this email already exists")

    user = User(
        name=name.strip(),
        email=email,
        role=role,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("An account with this email already exists")

    if commit:
        db.session.commit()
    return user


def signup(
    name: str,
    email: str,
    password: str,
    role: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> AuthResult:
    """
    Register an account and open a session for it.

    Raises ValidationError when any field is empty.
    """
    fields = require_fields(
        {"name": name, "email": email, "password": password, "role": role},
        "name", "email", "password", "role",
    )

    user = create_user(
        fields["name"], fields["email"], password, fields["role"], commit=False
    )
    user.last_login_at = utcnow()
    session, token = session_service.create_session(
        user, user_agent=user_agent, ip_address=ip_address, commit=False
    )
    log_security_event(
        user_id=user.id,
        event_type="USER_SIGNUP",
        success=True,
        action=f"role={user.role}",
        ip_address=ip_address,
        user_agent=user_agent,
        commit=False,
    )
    db.session.commit()

    return AuthResult(user=user, session=session, token=token, landing_path=landing_path_for(user.role))


def authenticate(email: str, password: str, role: str | None = None) -> User:
    """
    Verify credentials.

    Returns the User on success; raises InvalidCredentials or ForbiddenError.
    Updates last_login_at on success (committed by the caller).
    """
    if not isinstance(email, str) or not isinstance(password, str) or not email.strip() or not password:
        raise InvalidCredentials("Please enter both email and password")

    user = db.session.query(User).filter(User.email == email.strip().lower()).first()

    if not user or not verify_password(password, user.password_hash):
        log_security_event(
            user_id=user.id if user else None,
            event_type="LOGIN_FAILED",
            success=False,
            reason="Invalid credentials",
        )
        raise InvalidCredentials("Invalid email or password")

    if role is not None and validate_role(role) != user.role:
        log_security_event(
            user_id=user.id,
            event_type="LOGIN_FAILED",
            success=False,
            reason=f"Requested role {role} does not match account role",
        )
        raise InvalidCredentials("Invalid email or password")

    if user.is_banned():
        log_security_event(
            user_id=user.id,
            event_type="LOGIN_BANNED",
            success=False,
            reason="Account is banned",
        )
        raise ForbiddenError("This account has been suspended")

    user.last_login_at = utcnow()
    return user


def login(
    email: str,
    password: str,
    role: str | None = None,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> AuthResult:
    """Authenticate and create a session."""
    user = authenticate(email, password, role)
    session, token = session_service.create_session(
        user, user_agent=user_agent, ip_address=ip_address, commit=False
    )
    db.session.commit()
    return AuthResult(user=user, session=session, token=token, landing_path=landing_path_for(user.role))


def logout(token: str | None) -> None:
    """
    Revoke the session for token.

    Never fails: a missing, unknown, or already revoked token is a no-op.
    """
    if token:
        session_service.revoke_session(token, reason="User logout")
