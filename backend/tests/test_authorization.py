"""
Authorization tests for the pricebook API.

Verifies:
- Unauthenticated requests return 401
- role=user is denied admin operations (403)
- Admin role can perform privileged operations
- Health and version endpoints are public
- Database errors return 503
"""

import pytest
from sqlalchemy.exc import OperationalError

from pricebook.models import SecurityEvent
from pricebook.services import audit_service, products_service, user_directory_service


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("GET", "/api/products/P1"),
            ("GET", "/api/products/P1/prices"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/P1"),
            ("DELETE", "/api/products/P1"),
            ("POST", "/api/products/P1/recover"),
            ("GET", "/api/audit"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users/1/ban"),
            ("POST", "/api/admin/users/1/unban"),
            ("GET", "/api/admin/users/stream"),
            ("GET", "/api/admin/settings"),
            ("PUT", "/api/admin/settings"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "Authentication required"

    def test_invalid_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


# =============================================================================
# USER DENIED ADMIN OPERATIONS: 403
# =============================================================================


class TestUserDeniedAdmin:
    """role=user cannot perform privileged operations."""

    def test_cannot_list_users(self, client, user_headers):
        resp = client.get("/api/admin/users", headers=user_headers)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Admin access required"

    def test_cannot_ban(self, client, user_headers, admin_user):
        resp = client.post(f"/api/admin/users/{admin_user.id}/ban", headers=user_headers)
        assert resp.status_code == 403

    def test_cannot_create_product(self, client, user_headers):
        resp = client.post(
            "/api/products",
            json={"code": "X", "description": "x", "unit": "pc", "price": "1"},
            headers=user_headers,
        )
        assert resp.status_code == 403

    def test_cannot_view_audit_log(self, client, user_headers):
        resp = client.get("/api/audit", headers=user_headers)
        assert resp.status_code == 403

    def test_cannot_change_settings(self, client, user_headers):
        resp = client.put("/api/admin/settings", json={"company_name": "Evil"}, headers=user_headers)
        assert resp.status_code == 403

    def test_denial_is_logged(self, client, user_headers, db_session):
        client.get("/api/admin/users", headers=user_headers)
        event = db_session.query(SecurityEvent).filter_by(event_type="ACCESS_DENIED").one()
        assert event.resource == "/api/admin/users"
        assert event.action == "GET"
        assert event.success is False


# =============================================================================
# ADMIN ALLOWED
# =============================================================================


class TestAdminAllowed:
    def test_can_list_users(self, client, admin_headers):
        assert client.get("/api/admin/users", headers=admin_headers).status_code == 200

    def test_can_view_audit_log(self, client, admin_headers):
        assert client.get("/api/audit", headers=admin_headers).status_code == 200

    def test_can_read_settings(self, client, admin_headers):
        assert client.get("/api/admin/settings", headers=admin_headers).status_code == 200

    def test_can_update_settings(self, client, admin_headers):
        resp = client.put("/api/admin/settings", json={"company_name": "Widget Works"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["settings"]["company_name"] == "Widget Works"

        resp = client.put("/api/admin/settings", json={"theme": "dark"}, headers=admin_headers)
        assert resp.status_code == 400


# =============================================================================
# PUBLIC ENDPOINTS
# =============================================================================


class TestPublicEndpoints:
    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert set(body["checks"]) == {"database", "session_service", "change_feed"}

    def test_version(self, client, db_session):
        resp = client.get("/version")
        assert resp.status_code == 200
        assert resp.get_json()["api_version"] == "1.0.0"

    def test_unknown_path_is_json_404(self, client, db_session):
        resp = client.get("/no/such/page")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Not found", "path": "/no/such/page"}


# =============================================================================
# DATABASE UNAVAILABLE: 503
# =============================================================================


def _database_down(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


class TestDatabaseUnavailable:
    """Database errors answer 503 JSON on every surface."""

    def test_product_detail(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(products_service, "get_product", _database_down)
        resp = client.get("/api/products/P1", headers=admin_headers)
        assert resp.status_code == 503
        assert "unavailable" in resp.get_json()["error"]

    def test_price_history(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(products_service, "get_product", _database_down)
        assert client.get("/api/products/P1/prices", headers=admin_headers).status_code == 503

    def test_audit_list(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(audit_service, "list_audit_entries", _database_down)
        resp = client.get("/api/audit", headers=admin_headers)
        assert resp.status_code == 503
        assert "unavailable" in resp.get_json()["error"]

    def test_user_directory(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(user_directory_service, "list_users", _database_down)
        assert client.get("/api/admin/users", headers=admin_headers).status_code == 503

    def test_ban(self, client, admin_headers, regular_user, monkeypatch):
        monkeypatch.setattr(user_directory_service, "set_banned", _database_down)
        resp = client.post(f"/api/admin/users/{regular_user.id}/ban", headers=admin_headers)
        assert resp.status_code == 503
        assert "unavailable" in resp.get_json()["error"]

    def test_page_view(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(user_directory_service, "list_users", _database_down)
        resp = client.get("/admin/users", headers=admin_headers)
        assert resp.status_code == 503
        assert "unavailable" in resp.get_json()["error"]
