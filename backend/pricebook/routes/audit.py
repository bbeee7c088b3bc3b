# Overview: Flask API routes for the product audit trail (read-only).

from flask import Blueprint, request

from ..services import audit_service
from ..decorators import require_auth, require_admin

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
@require_auth
@require_admin
def list_audit_entries():
    """
    Audit entries, newest first.

    Query params:
    - prodcode: str (optional) - only this product
    - limit: int (optional, max 500)
    """
    prodcode = request.args.get("prodcode") or None
    limit = request.args.get("limit", type=int)
    if limit is not None:
        limit = min(max(limit, 1), 500)

    entries = audit_service.list_audit_entries(code=prodcode, limit=limit)
    return {"items": [e.to_dict() for e in entries], "count": len(entries)}
