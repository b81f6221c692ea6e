"""
Pytest fixtures for dashng backend tests.

Provides test database setup, users per role with settings, products,
bearer headers and test client.
"""

import pytest

from dashng import create_app
from dashng.extensions import db
from dashng.models import Product, User
from dashng.models.auth import (
    ROLE_CUSTOMER,
    ROLE_OWNER,
    ROLE_SALES,
    ROLE_STOREKEEPER,
    ROLE_SUPER_ADMIN,
)
from dashng.services import session_service
from dashng.services.auth_service import hash_password
from dashng.services.settings_service import ensure_user_settings


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash(app):
    """Bcrypt is slow at cost 12; hash the shared test password once."""
    return hash_password(PASSWORD)


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
def make_user(db_session, password_hash):
    """
    Factory for users.

    settings=False leaves the user without a settings row; any other
    keyword is applied to the settings row (e.g. low_stock_alerts=False).
    """
    def _make(username, role=ROLE_CUSTOMER, *, is_active=True, settings=True, **flags):
        user = User(
            username=username,
            email=f"{username}@dashng.test",
            password_hash=password_hash,
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.flush()

        if settings:
            row = ensure_user_settings(user.id)
            for key, value in flags.items():
                setattr(row, key, value)

        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user("customer", ROLE_CUSTOMER)


@pytest.fixture(scope='function')
def sales(make_user):
    return make_user("sales", ROLE_SALES)


@pytest.fixture(scope='function')
def storekeeper(make_user):
    return make_user("keeper", ROLE_STOREKEEPER)


@pytest.fixture(scope='function')
def owner(make_user):
    return make_user("owner", ROLE_OWNER)


@pytest.fixture(scope='function')
def super_admin(make_user):
    return make_user("root", ROLE_SUPER_ADMIN)


@pytest.fixture(scope='function')
def product(db_session):
    """Product at quantity 10 with low-stock threshold 5."""
    product = Product(
        name="Ankara Tote",
        description="Hand-stitched tote bag",
        price_cents=450000,
        category="bags",
        quantity=10,
        low_stock_threshold=5,
    )
    db_session.add(product)
    db_session.commit()
    return product


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def _headers_for(user) -> dict:
    """Open a session for user without going through bcrypt."""
    _session, token = session_service.create_session(user_id=user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def customer_headers(customer):
    return _headers_for(customer)


@pytest.fixture(scope='function')
def sales_headers(sales):
    return _headers_for(sales)


@pytest.fixture(scope='function')
def storekeeper_headers(storekeeper):
    return _headers_for(storekeeper)


@pytest.fixture(scope='function')
def owner_headers(owner):
    return _headers_for(owner)


@pytest.fixture(scope='function')
def super_admin_headers(super_admin):
    return _headers_for(super_admin)


@pytest.fixture(scope='function')
def login_as(db_session):
    """Return a callable giving bearer headers for any user."""
    return _headers_for
