# Overview: Summary payloads for the user and admin dashboards.

from __future__ import annotations

from . import audit_service, price_service, products_service, user_directory_service


def user_dashboard(limit: int = 5) -> dict:
    counts = products_service.count_products()
    return {
        "active_products": counts["active"],
        "recent_price_changes": [e.to_dict() for e in price_service.recent_price_changes(limit)],
    }


def admin_dashboard(limit: int = 10) -> dict:
    return {
        "products": products_service.count_products(),
        "users": user_directory_service.count_users(),
        "recent_activity": [e.to_dict() for e in audit_service.list_audit_entries(limit=limit)],
    }
