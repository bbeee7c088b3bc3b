# Overview: Service-layer operations for the product audit trail.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ProductAuditLog, AUDIT_ACTIONS
from pricebook.time_utils import utcnow
"""
Product Audit Invariants

- Append-only: one row per mutating product action.
- Never read back into product state.
- A failed audit write is logged and swallowed: it runs in a SAVEPOINT so the
  surrounding product mutation still commits.
"""


def record_product_action(
    *,
    code: str,
    description: str | None,
    action: str,
    actor: str,
    performed_at: datetime | None = None,
) -> ProductAuditLog | None:
    """
    Append an audit entry inside a nested transaction.

    Returns the entry, or None if the write failed.
    """
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")

    entry = ProductAuditLog(
        prodcode=code,
        description=description,
        action=action,
        performed_by=actor,
        performed_at=performed_at or utcnow(),
    )
    # Pending product and price rows are written outside the savepoint
    db.session.flush()
    try:
        with db.session.begin_nested():
            db.session.add(entry)
    except SQLAlchemyError:
        current_app.logger.exception(
            "Failed to write audit entry action=%s prodcode=%s", action, code
        )
        return None
    return entry


def list_audit_entries(code: str | None = None, limit: int | None = None) -> list[ProductAuditLog]:
    """Entries newest first, optionally for a single product."""
    query = db.session.query(ProductAuditLog)
    if code is not None:
        query = query.filter(ProductAuditLog.prodcode == code)
    query = query.order_by(ProductAuditLog.performed_at.desc(), ProductAuditLog.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
