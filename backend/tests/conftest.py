"""
Pytest fixtures for pricebook backend tests.

Provides test database setup, default accounts, auth headers, and test client.
"""

import pytest
from pricebook import create_app
from pricebook.extensions import db
from pricebook.models import ROLE_ADMIN, ROLE_USER
from pricebook.services.auth_service import create_user

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'CHANGE_FEED_KEEPALIVE_SECONDS': 0.05,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Create an admin account."""
    return create_user("Ada Admin", "admin@pricebook.test", PASSWORD, ROLE_ADMIN)


@pytest.fixture(scope='function')
def regular_user(db_session):
    """Create a regular (role=user) account."""
    return create_user("Uma User", "user@pricebook.test", PASSWORD, ROLE_USER)


@pytest.fixture(scope='function')
def admin_token(client, admin_user):
    return get_auth_token(client, "admin@pricebook.test", PASSWORD)


@pytest.fixture(scope='function')
def user_token(client, regular_user):
    return get_auth_token(client, "user@pricebook.test", PASSWORD)


@pytest.fixture(scope='function')
def admin_headers(admin_token):
    return auth_headers(admin_token)


@pytest.fixture(scope='function')
def user_headers(user_token):
    return auth_headers(user_token)


@pytest.fixture(scope='function')
def seed_products(client, admin_headers):
    """Two active products and one soft-deleted product."""
    for code, description, unit, price in [
        ("BOLT-10", "Hex bolt 10mm", "pc", "0.25"),
        ("NUT-10", "Hex nut 10mm", "pc", "0.10"),
        ("WIRE-2", "Copper wire 2mm", "m", "1.80"),
    ]:
        resp = create_product(client, admin_headers, code, description, unit, price)
        assert resp.status_code == 201, resp.get_json()

    resp = client.delete("/api/products/WIRE-2", headers=admin_headers)
    assert resp.status_code == 200


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def create_product(client, headers, code, description="Widget", unit="pc", price="1.00"):
    return client.post('/api/products', json={
        'code': code,
        'description': description,
        'unit': unit,
        'price': price,
    }, headers=headers)
