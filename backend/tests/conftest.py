"""
Pytest fixtures for back-office backend tests.

Provides test database setup, users, a priced product and the test client.
"""

from decimal import Decimal

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import User, Product
from backoffice.services.auth_service import hash_password
from backoffice.services.fingerprint import RequestContext


TEST_PASSWORD = "secret1"
WOMPI_TEST_SECRET = "test_events_secret"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-access-secret',
        'REFRESH_TOKEN_SECRET': 'test-refresh-secret',
        'BCRYPT_ROUNDS': 4,
        'WOMPI_EVENTS_SECRET': WOMPI_TEST_SECRET,
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


def make_user(db_session, email, role_slug="global:member", password=TEST_PASSWORD, **kwargs):
    user = User(
        email=email,
        password_hash=hash_password(password, rounds=4),
        role_slug=role_slug,
        **kwargs,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user(db_session):
    """Member user alice@example.com / secret1."""
    return make_user(db_session, "alice@example.com", first_name="Alice")


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Owner-role user."""
    return make_user(db_session, "owner@example.com", role_slug="global:owner")


@pytest.fixture(scope='function')
def product(db_session):
    """Product priced 10000 (tax included)."""
    product = Product(
        name="Arroz Diana 25kg",
        reference="ARZ-25",
        category="Granos",
        stock=50,
        min_stock=5,
        price_with_tax=Decimal("10000.00"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def context():
    """Device context matching what the Flask test client sends."""
    return RequestContext(
        user_agent="pytest-agent/1.0",
        ip_address="127.0.0.1",
        device_name=None,
    )


def login(client, email, password=TEST_PASSWORD, headers=None):
    """Helper to log in through the API. Returns the response JSON."""
    response = client.post('/auth/login', json={
        'email': email,
        'password': password,
    }, headers=headers or {'User-Agent': 'pytest-agent/1.0'})
    assert response.status_code == 200, response.get_json()
    return response.get_json()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def user_headers(client, user):
    return auth_headers(login(client, user.email)["accessToken"])


@pytest.fixture
def admin_headers(client, admin_user):
    return auth_headers(login(client, admin_user.email)["accessToken"])
