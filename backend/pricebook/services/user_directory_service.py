# Overview: Service-layer operations for the admin user directory.

"""
User Directory (admin-only)

- list_users: identities with derived status (active / inactive)
- set_banned: time-bounded ban via banned_until, or unban

A ban revokes every open session of the target so the suspension is
immediate. Admins cannot ban themselves.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import User, ROLE_ADMIN
from ..validation import ForbiddenError, NotFoundError
from . import session_service
from .security_service import log_security_event
from pricebook.time_utils import utcnow


def list_users(search: str | None = None) -> list[User]:
    query = db.session.query(User)
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        query = query.filter(
            or_(
                db.func.lower(User.name).like(pattern),
                db.func.lower(User.email).like(pattern),
            )
        )
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def ban_expiry():
    days = current_app.config.get("BAN_DURATION_DAYS", 365)
    return utcnow() + timedelta(days=days)


def set_banned(
    *,
    actor_id: int,
    user_id: int,
    banned: bool,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User:
    """
    Ban or unban user_id on behalf of actor_id.

    Raises:
        ForbiddenError: actor targets their own account
        NotFoundError: unknown user
    """
    if actor_id == user_id:
        log_security_event(
            user_id=actor_id,
            event_type="ACCESS_DENIED",
            success=False,
            action="BAN_USER" if banned else "UNBAN_USER",
            reason="Cannot change ban status of your own account",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise ForbiddenError("You cannot ban or unban your own account")

    user = get_user(user_id)

    if banned:
        user.banned_until = ban_expiry()
        revoked = session_service.revoke_all_user_sessions(
            user.id, reason="Account banned by admin", commit=False
        )
        reason = f"Revoked {revoked} sessions"
    else:
        user.banned_until = None
        reason = None

    log_security_event(
        user_id=actor_id,
        event_type="USER_BANNED" if banned else "USER_UNBANNED",
        success=True,
        resource=f"/api/admin/users/{user_id}",
        action=f"{'Banned' if banned else 'Unbanned'} user: {user.email}",
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        commit=False,
    )

    db.session.commit()
    return user


def count_users() -> dict:
    users = db.session.query(User).all()
    now = utcnow()
    banned = sum(1 for u in users if u.is_banned(now))
    admins = sum(1 for u in users if u.role == ROLE_ADMIN)
    return {"total": len(users), "banned": banned, "admins": admins}
