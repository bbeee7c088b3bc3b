# Overview: Navigable views; each returns the JSON payload its screen renders.

# backend/pricebook/routes/pages.py
"""
Navigable surface.

Public:     /, /login, /signup
User-only:  /dashboard, /products, /account
Admin-only: /admin/dashboard, /admin/products, /admin/products/<code>,
            /admin/users, /admin/settings

Guarded views redirect (302) instead of returning 401/403:
- anonymous           -> /login
- user on admin view  -> /dashboard
"""

from flask import Blueprint, g, request

from ..access_guard import admin_guard, user_guard
from ..decorators import guard_view, resolve_session
from ..services import (
    auth_service,
    dashboard_service,
    products_service,
    settings_service,
    user_directory_service,
)
from ..validation import NotFoundError

pages_bp = Blueprint("pages", __name__)


def _view(name: str, **data) -> dict:
    return {"view": name, **data}


# -- public -------------------------------------------------------------------

@pages_bp.get("/")
def index():
    context = resolve_session()
    home = auth_service.landing_path_for(context.role) if context else None
    return _view("index", authenticated=context is not None, home=home)


@pages_bp.get("/login")
def login_page():
    return _view("login", action="/api/auth/login", roles=["user", "admin"])


@pages_bp.get("/signup")
def signup_page():
    return _view("signup", action="/api/auth/signup", roles=["user", "admin"])


# -- user ---------------------------------------------------------------------

@pages_bp.get("/dashboard")
@guard_view(user_guard)
def user_dashboard():
    return _view("dashboard", user=g.current_user.to_dict(), **dashboard_service.user_dashboard())


@pages_bp.get("/products")
@guard_view(user_guard)
def user_products():
    return _view("products", **products_service.list_products(search=request.args.get("search")))


@pages_bp.get("/account")
@guard_view(user_guard)
def account():
    return _view("account", user=g.current_user.to_dict())


# -- admin --------------------------------------------------------------------

@pages_bp.get("/admin/dashboard")
@guard_view(admin_guard)
def admin_dashboard():
    return _view("admin_dashboard", user=g.current_user.to_dict(), **dashboard_service.admin_dashboard())


@pages_bp.get("/admin/products")
@guard_view(admin_guard)
def admin_products():
    status = request.args.get("status", products_service.STATUS_ACTIVE)
    if status not in products_service.PRODUCT_STATUSES:
        status = products_service.STATUS_ACTIVE
    listing = products_service.list_products(search=request.args.get("search"), status=status)
    return _view("admin_products", status=status, **listing)


@pages_bp.get("/admin/products/<code>")
@guard_view(admin_guard)
def admin_product_detail(code: str):
    try:
        detail = products_service.get_product_detail(code)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return _view("admin_product_detail", **detail)


@pages_bp.get("/admin/users")
@guard_view(admin_guard)
def admin_users():
    users = user_directory_service.list_users(search=request.args.get("search"))
    return _view(
        "admin_users",
        users=[u.to_dict() for u in users],
        count=len(users),
        stream="/api/admin/users/stream",
    )


@pages_bp.get("/admin/settings")
@guard_view(admin_guard)
def admin_settings():
    return _view("admin_settings", settings=settings_service.get_settings())
