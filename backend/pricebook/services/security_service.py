# Overview: Service-layer operations for security events; append-only security log.

"""
Security Event Logging

WHY: Failed logins, denied access and account bans must be traceable.

DESIGN PRINCIPLES:
- Append-only: rows are never updated or deleted by the application
- Log denials and privileged actions; successful reads are not logged
"""

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from pricebook.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - LOGIN_FAILED
    - LOGIN_BANNED
    - ACCESS_DENIED
    - USER_SIGNUP
    - USER_BANNED / USER_UNBANNED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    if commit:
        db.session.commit()
    else:
        db.session.flush()

    return event


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted
