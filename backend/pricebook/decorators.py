# Overview: Request decorators for API routes and navigable views.

from functools import wraps
from flask import request, jsonify, g, redirect

from .access_guard import UserGuard, admin_guard, user_guard
from .services import session_service
from .services.security_service import log_security_event


def bearer_token() -> str | None:
    """Bearer token from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def resolve_session():
    """
    Resolve the caller's SessionContext once per request.

    Sets g.session_context and g.current_user (both None when anonymous).
    """
    if "session_context" not in g:
        token = bearer_token() or request.cookies.get("session_token")
        context = session_service.validate_session(token) if token else None
        g.session_context = context
        g.current_user = context.user if context else None
    return g.session_context


def _guard_api(guard: UserGuard, f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if bearer_token() is None:
            return jsonify({"error": "Authentication required"}), 401

        context = resolve_session()
        decision = guard.decide(context)

        if decision.allowed:
            return f(*args, **kwargs)

        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        log_security_event(
            user_id=context.user.id,
            event_type="ACCESS_DENIED",
            success=False,
            resource=request.path,
            action=request.method,
            reason="Admin role required",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"error": "Admin access required"}), 403

    return decorated_function


def require_auth(f):
    """
    Require an authenticated identity.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if the Authorization header is missing, or the token is
    invalid, expired, revoked, or belongs to a banned account.
    """
    return _guard_api(user_guard, f)


def require_admin(f):
    """Require an authenticated identity with role=admin (401 / 403)."""
    return _guard_api(admin_guard, f)


def guard_view(guard: UserGuard):
    """
    Apply a navigation guard to a view: redirect (302) instead of 401/403.

    Identity comes from the bearer token or the session_token cookie.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            decision = guard.decide(resolve_session())
            if not decision.allowed:
                return redirect(decision.redirect_to, code=302)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
