import unittest
from flask import Flask

from pricebook.extensions import db
from pricebook.models import AppSetting, User
from pricebook.services import settings_service
from pricebook.services.settings_service import SETTING_DEFAULTS
from pricebook.validation import ValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from pricebook import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(AppSetting).delete()
        db.session.query(User).delete()
        db.session.commit()

        self.admin = User(
            name="Admin",
            email="admin@test.local",
            role="admin",
            password_hash="x",
        )
        db.session.add(self.admin)
        db.session.commit()

    def test_defaults_when_nothing_stored(self):
        self.assertEqual(settings_service.get_settings(), SETTING_DEFAULTS)

    def test_update_persists_and_merges(self):
        result = settings_service.update_settings(
            {"company_name": "  Widget Works ", "price_change_alerts": False},
            actor_id=self.admin.id,
        )
        self.assertEqual(result["company_name"], "Widget Works")
        self.assertFalse(result["price_change_alerts"])
        self.assertTrue(result["enable_notifications"])

        row = db.session.query(AppSetting).filter_by(key="company_name").one()
        self.assertEqual(row.value, '"Widget Works"')
        self.assertEqual(row.updated_by_user_id, self.admin.id)

    def test_update_overwrites_existing_row(self):
        settings_service.update_settings({"company_name": "First"})
        settings_service.update_settings({"company_name": "Second"})
        self.assertEqual(db.session.query(AppSetting).filter_by(key="company_name").count(), 1)
        self.assertEqual(settings_service.get_settings()["company_name"], "Second")

    def test_email_normalized(self):
        result = settings_service.update_settings({"notification_email": "Ops@Example.COM"})
        self.assertEqual(result["notification_email"], "ops@example.com")

    def test_rejects_unknown_key(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"theme": "dark"})

    def test_rejects_wrong_type(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"enable_notifications": "yes"})
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"company_name": 42})

    def test_rejects_bad_email_and_blank(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"notification_email": "not-an-email"})
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"company_name": "   "})

    def test_rejects_empty_payload(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({})
        with self.assertRaises(ValidationError):
            settings_service.update_settings(None)

    def test_invalid_patch_writes_nothing(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"company_name": "Ok", "track_price_history": "no"})
        self.assertEqual(db.session.query(AppSetting).count(), 0)


if __name__ == "__main__":
    unittest.main()
