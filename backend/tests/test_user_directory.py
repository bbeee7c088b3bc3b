"""
Admin user directory tests.

Verifies:
- Listing with derived status and search
- Ban sets a future expiry, status inactive, and revokes sessions
- Unban clears the expiry
- Admins cannot ban themselves
- Committed user changes reach change feed subscribers
"""

from datetime import timedelta

import pytest

from pricebook.extensions import db
from pricebook.models import SecurityEvent, SessionToken, User
from pricebook.services import user_directory_service
from pricebook.services.change_feed import feed
from pricebook.time_utils import utcnow
from pricebook.validation import ForbiddenError, NotFoundError


def _user_row(db_session, user_id):
    db_session.expire_all()
    return db_session.get(User, user_id)


class TestListUsers:
    def test_lists_with_status(self, client, admin_headers, regular_user):
        resp = client.get("/api/admin/users", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["count"] == 2
        by_email = {u["email"]: u for u in body["users"]}
        assert by_email["user@pricebook.test"]["status"] == "active"
        assert by_email["user@pricebook.test"]["role"] == "user"
        assert by_email["admin@pricebook.test"]["role"] == "admin"
        assert "password_hash" not in by_email["user@pricebook.test"]

    def test_search(self, client, admin_headers, regular_user):
        resp = client.get("/api/admin/users?search=UMA", headers=admin_headers)
        assert [u["email"] for u in resp.get_json()["users"]] == ["user@pricebook.test"]

    def test_expired_ban_is_active(self, regular_user, db_session):
        regular_user.banned_until = utcnow() - timedelta(days=1)
        db_session.commit()
        assert regular_user.status == "active"


class TestBanUnban:
    def test_ban_sets_future_expiry(self, client, admin_headers, regular_user, db_session):
        resp = client.post(f"/api/admin/users/{regular_user.id}/ban", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["status"] == "inactive"
        assert body["message"] == "User banned successfully"

        row = _user_row(db_session, regular_user.id)
        assert row.banned_until > utcnow() + timedelta(days=364)
        assert row.status == "inactive"

    def test_unban_clears_expiry(self, client, admin_headers, regular_user, db_session):
        client.post(f"/api/admin/users/{regular_user.id}/ban", headers=admin_headers)
        resp = client.post(f"/api/admin/users/{regular_user.id}/unban", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["status"] == "active"
        assert resp.get_json()["user"]["banned_until"] is None

        row = _user_row(db_session, regular_user.id)
        assert row.banned_until is None

    def test_ban_revokes_sessions(self, client, admin_headers, user_headers, regular_user, db_session):
        assert client.get("/api/auth/me", headers=user_headers).status_code == 200

        client.post(f"/api/admin/users/{regular_user.id}/ban", headers=admin_headers)

        assert client.get("/api/auth/me", headers=user_headers).status_code == 401
        db_session.expire_all()
        open_sessions = db_session.query(SessionToken).filter_by(
            user_id=regular_user.id, is_revoked=False
        ).count()
        assert open_sessions == 0

    def test_banned_user_cannot_log_in_until_unbanned(self, client, admin_headers, regular_user):
        client.post(f"/api/admin/users/{regular_user.id}/ban", headers=admin_headers)
        login = {"email": "user@pricebook.test", "password": "Password123!"}
        assert client.post("/api/auth/login", json=login).status_code == 403

        client.post(f"/api/admin/users/{regular_user.id}/unban", headers=admin_headers)
        assert client.post("/api/auth/login", json=login).status_code == 200

    def test_cannot_ban_self(self, client, admin_headers, admin_user, db_session):
        resp = client.post(f"/api/admin/users/{admin_user.id}/ban", headers=admin_headers)
        assert resp.status_code == 403
        assert _user_row(db_session, admin_user.id).banned_until is None
        assert db_session.query(SecurityEvent).filter_by(event_type="ACCESS_DENIED").count() == 1

    def test_unknown_user(self, client, admin_headers):
        assert client.post("/api/admin/users/9999/ban", headers=admin_headers).status_code == 404

    def test_ban_is_logged(self, client, admin_headers, admin_user, regular_user, db_session):
        client.post(f"/api/admin/users/{regular_user.id}/ban", headers=admin_headers)
        event = db_session.query(SecurityEvent).filter_by(event_type="USER_BANNED").one()
        assert event.user_id == admin_user.id
        assert event.success is True

    def test_service_forbids_self(self, admin_user):
        with pytest.raises(ForbiddenError):
            user_directory_service.set_banned(actor_id=admin_user.id, user_id=admin_user.id, banned=True)

    def test_service_unknown_user(self, admin_user):
        with pytest.raises(NotFoundError):
            user_directory_service.set_banned(actor_id=admin_user.id, user_id=424242, banned=True)

    def test_ban_duration_from_config(self, app, admin_user, regular_user):
        app.config["BAN_DURATION_DAYS"] = 7
        try:
            user = user_directory_service.set_banned(
                actor_id=admin_user.id, user_id=regular_user.id, banned=True
            )
        finally:
            app.config["BAN_DURATION_DAYS"] = 365
        assert user.banned_until < utcnow() + timedelta(days=8)
        assert user.is_banned()


class TestDirectoryChangeNotifications:
    def test_ban_notifies_subscribers(self, client, admin_headers, regular_user):
        with feed.subscribe("users") as sub:
            client.post(f"/api/admin/users/{regular_user.id}/ban", headers=admin_headers)
            notification = sub.get(timeout=1)

        assert notification is not None
        assert notification["table"] == "users"
        assert notification["changed_at"].endswith("Z")

    def test_subscription_closed_on_exit(self, db_session):
        with feed.subscribe("users"):
            assert feed.subscriber_count("users") >= 1
        assert feed.subscriber_count("users") == 0

    def test_rollback_not_published(self, regular_user, db_session):
        with feed.subscribe("users") as sub:
            regular_user.name = "Renamed"
            db_session.flush()
            db_session.rollback()
            assert sub.get(timeout=0.05) is None

    def test_stream_sends_current_list(self, client, admin_headers):
        resp = client.get("/api/admin/users/stream", headers=admin_headers, buffered=False)
        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"

        chunks = iter(resp.response)
        first = next(chunks)
        if isinstance(first, bytes):
            first = first.decode()
        assert first.startswith("event: users\ndata: ")
        assert '"count": 1' in first
        resp.close()


class TestDirectoryUnit:
    def test_count_users(self, admin_user, regular_user, db_session):
        regular_user.banned_until = utcnow() + timedelta(days=1)
        db.session.commit()
        assert user_directory_service.count_users() == {"total": 2, "banned": 1, "admins": 1}
