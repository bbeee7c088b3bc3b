# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

The resolved identity is returned as an explicit SessionContext. Routes
receive it through flask.g (set by @require_auth), never through module
state.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24h)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS, default 2h)
- Revocable on logout, ban, or security events
- Tracks client IP and user agent for security monitoring
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta
from flask import current_app
from ..extensions import db
from ..models import SessionToken, User, ROLE_ADMIN
from pricebook.time_utils import utcnow


@dataclass
class SessionContext:
    """
    Complete session context returned by validate_session.

    role is taken from the session record (snapshotted at login).
    """
    user: User
    session: SessionToken
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 2))


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Hash token for database storage using SHA-256."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
    commit: bool = True,
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        role=user.role,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    if commit:
        db.session.commit()
    else:
        db.session.flush()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str, now) -> None:
    session.is_revoked = True
    session.revoked_at = now
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is invalid, expired, or revoked
    - User account is banned (the session is revoked as a side effect)

    Updates last_used_at on successful validation (activity tracking).
    """
    if not token:
        return None

    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout", now)
        db.session.commit()
        return None

    user = session.user
    if user is None:
        return None

    if user.is_banned(now):
        _revoke(session, "User banned", now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, role=session.role)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    if not token:
        return False

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason, utcnow())
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", commit: bool = True) -> int:
    """
    Revoke all active sessions for a user.

    Returns count of sessions revoked.
    """
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, reason, now)

    if commit:
        db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than retention_days.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
