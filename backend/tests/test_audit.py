"""
Product audit trail tests.

Verifies:
- One audit entry per mutating action, newest first
- A failing audit write is logged and does not undo the product change
- The audit API is admin-only
"""

import logging

import pytest

from conftest import create_product

from pricebook.models import PriceHistoryEntry, Product, ProductAuditLog
from pricebook.services import audit_service, products_service


class TestAuditService:
    def test_entries_newest_first(self, db_session):
        products_service.create_product(
            code="P1", patch={"description": "D", "unit": "pcs"}, price_cents=100, actor="a@x.io"
        )
        products_service.soft_delete_product(code="P1", actor="b@x.io")

        entries = audit_service.list_audit_entries(code="P1")
        assert [(e.action, e.performed_by) for e in entries] == [
            ("deleted", "b@x.io"),
            ("created", "a@x.io"),
        ]
        assert entries[0].description == "D"

    def test_limit(self, db_session):
        for code in ("A", "B", "C"):
            products_service.create_product(
                code=code, patch={"description": code, "unit": "pc"}, price_cents=1, actor="a@x.io"
            )
        entries = audit_service.list_audit_entries(limit=2)
        assert [e.prodcode for e in entries] == ["C", "B"]

    def test_unknown_action_rejected(self, db_session):
        with pytest.raises(ValueError):
            audit_service.record_product_action(code="P1", description="D", action="renamed", actor="a@x.io")

    def test_audit_failure_does_not_fail_mutation(self, db_session, caplog):
        # performed_by is NOT NULL, so the audit INSERT fails inside its savepoint
        with caplog.at_level(logging.ERROR):
            created = products_service.create_product(
                code="P1", patch={"description": "D", "unit": "pcs"}, price_cents=100, actor=None
            )

        assert created["code"] == "P1"
        assert "Failed to write audit entry action=created prodcode=P1" in caplog.text

        db_session.expire_all()
        assert db_session.query(Product).filter_by(code="P1").count() == 1
        assert db_session.query(PriceHistoryEntry).filter_by(prodcode="P1").count() == 1
        assert db_session.query(ProductAuditLog).count() == 0

    def test_audit_failure_keeps_later_mutations_working(self, db_session):
        products_service.create_product(
            code="P1", patch={"description": "D", "unit": "pcs"}, price_cents=100, actor=None
        )
        products_service.update_product(code="P1", patch={}, actor="b@x.io", price_cents=250)

        assert [e.action for e in audit_service.list_audit_entries(code="P1")] == ["edited"]
        assert db_session.query(PriceHistoryEntry).filter_by(prodcode="P1").count() == 2

    def test_entries_survive_purge(self, db_session):
        products_service.create_product(
            code="P1", patch={"description": "D", "unit": "pcs"}, price_cents=100, actor="a@x.io"
        )
        removed = products_service.hard_delete_product(code="P1")

        assert removed == 1
        assert db_session.get(Product, "P1") is None
        assert [e.action for e in audit_service.list_audit_entries(code="P1")] == ["created"]


class TestAuditApi:
    def test_admin_lists_entries(self, client, admin_headers):
        create_product(client, admin_headers, "P1")
        create_product(client, admin_headers, "P2")

        resp = client.get("/api/audit", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["count"] == 2
        assert [e["prodcode"] for e in body["items"]] == ["P2", "P1"]

    def test_filter_and_limit(self, client, admin_headers):
        create_product(client, admin_headers, "P1")
        client.delete("/api/products/P1", headers=admin_headers)
        create_product(client, admin_headers, "P2")

        resp = client.get("/api/audit?prodcode=P1&limit=1", headers=admin_headers)
        items = resp.get_json()["items"]
        assert [(e["prodcode"], e["action"]) for e in items] == [("P1", "deleted")]

    def test_user_forbidden(self, client, user_headers):
        assert client.get("/api/audit", headers=user_headers).status_code == 403

    def test_anonymous_unauthorized(self, client, db_session):
        assert client.get("/api/audit").status_code == 401
