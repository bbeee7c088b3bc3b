# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/pricebook/routes/admin.py
"""
Admin routes for user management and settings.

Provides endpoints for:
- User directory (list, ban, unban)
- Live user directory updates (server-sent events)
- Application settings (read, update)

All endpoints require the admin role.
"""

import json

from flask import Blueprint, Response, request, jsonify, g, current_app, stream_with_context
from sqlalchemy.exc import SQLAlchemyError

from ..services import user_directory_service, settings_service
from ..services.change_feed import feed
from ..validation import ForbiddenError, NotFoundError, ValidationError
from ..decorators import require_auth, require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _users_payload(search: str | None = None) -> dict:
    users = user_directory_service.list_users(search=search)
    return {"users": [u.to_dict() for u in users], "count": len(users)}


# =============================================================================
# USER DIRECTORY
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_admin
def list_users():
    """
    List all users with status.

    Query params:
    - search: str (optional) - case-insensitive match on name or email
    """
    return jsonify(_users_payload(request.args.get("search")))


def _set_banned(user_id: int, banned: bool):
    try:
        user = user_directory_service.set_banned(
            actor_id=g.current_user.id,
            user_id=user_id,
            banned=banned,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
    except ForbiddenError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SQLAlchemyError:
        current_app.logger.exception("Failed to %s user %s", "ban" if banned else "unban", user_id)
        return jsonify({"error": "User directory is unavailable. Please try again."}), 503

    verb = "banned" if banned else "unbanned"
    return jsonify({"user": user.to_dict(), "message": f"User {verb} successfully"})


@admin_bp.post("/users/<int:user_id>/ban")
@require_auth
@require_admin
def ban_user(user_id: int):
    """
    Ban a user until now + BAN_DURATION_DAYS.

    Revokes the user's sessions. Admins cannot ban themselves (403).
    """
    return _set_banned(user_id, True)


@admin_bp.post("/users/<int:user_id>/unban")
@require_auth
@require_admin
def unban_user(user_id: int):
    """Clear a user's ban."""
    return _set_banned(user_id, False)


@admin_bp.get("/users/stream")
@require_auth
@require_admin
def stream_users():
    """
    Server-sent events: a fresh user list on every committed change to users.

    The first event is the current list. Keep-alive comments are sent every
    CHANGE_FEED_KEEPALIVE_SECONDS. The subscription is closed when the client
    disconnects.
    """
    search = request.args.get("search")
    keepalive = current_app.config.get("CHANGE_FEED_KEEPALIVE_SECONDS", 15)
    subscription = feed.subscribe("users")

    def event_stream():
        with subscription:
            yield f"event: users\ndata: {json.dumps(_users_payload(search))}\n\n"
            while True:
                notification = subscription.get(timeout=keepalive)
                if notification is None:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: users\ndata: {json.dumps(_users_payload(search))}\n\n"

    return Response(
        stream_with_context(event_stream()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# =============================================================================
# SETTINGS
# =============================================================================

@admin_bp.get("/settings")
@require_auth
@require_admin
def get_settings():
    return jsonify({"settings": settings_service.get_settings()})


@admin_bp.put("/settings")
@require_auth
@require_admin
def update_settings():
    data = request.get_json(silent=True)
    try:
        settings = settings_service.update_settings(data, actor_id=g.current_user.id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"settings": settings, "message": "Settings saved"})
