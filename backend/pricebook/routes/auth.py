# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pricebook/routes/auth.py
"""
Authentication API routes

- POST /api/auth/signup  name, email, password, role -> session token
- POST /api/auth/login   email, password, role       -> session token
- POST /api/auth/logout  revoke bearer token (always 200)
- GET  /api/auth/me      current identity (account view)

Successful signup/login responses carry "redirect_to": the landing view for
the account's role.
"""

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from ..services import auth_service
from ..validation import ValidationError, InvalidCredentials, ForbiddenError, ConflictError
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/signup")
def signup_route():
    """Create an account (role "user" or "admin") and log it in."""
    data = request.get_json(silent=True) or {}

    try:
        result = auth_service.signup(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except SQLAlchemyError:
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Service is unavailable. Please try again."}), 503

    payload = result.to_dict()
    payload["message"] = "Account created successfully"
    return jsonify(payload), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}

    try:
        result = auth_service.login(
            email=data.get("email") or "",
            password=data.get("password") or "",
            role=data.get("role"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except InvalidCredentials as e:
        return jsonify({"error": str(e)}), 401
    except ForbiddenError as e:
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Service is unavailable. Please try again."}), 503

    payload = result.to_dict()
    payload["message"] = "Logged in successfully"
    return jsonify(payload), 200


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token. Succeeds even without a valid token."""
    try:
        auth_service.logout(bearer_token())
    except Exception:
        current_app.logger.exception("Failed to revoke session on logout")

    return jsonify({"message": "Logged out successfully", "redirect_to": "/login"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "session": context.session.to_dict(),
        "redirect_to": auth_service.landing_path_for(context.role),
    })
