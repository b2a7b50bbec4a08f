from datetime import date, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.package import Package
from models.user import User
from security.password import hash_password
from security.tokens import issue_access_token
from utils.seed import seed_packages


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    PAYMENT_LINK_SECRET = "test-payment-secret"
    JWT_SECRET_KEY = "test-jwt-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BCRYPT_ROUNDS = 4
    SMTP_HOST = "smtp.test"
    SMTP_FROM_EMAIL = "noreply@kinaresort.test"
    SMTP_USERNAME = None
    SMTP_PASSWORD = None
    PUBLIC_BASE_URL = "https://resort.test"
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_packages()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = []
    monkeypatch.setattr("utils.emailer._deliver", lambda msg: sent.append(msg))
    return sent


@pytest.fixture
def make_user(app):
    def _make(email, password="secret123", role="customer", is_active=True, full_name="Test User"):
        with app.app_context():
            user = User(
                email=email,
                password_hash=hash_password(password),
                full_name=full_name,
                role=role,
                is_active=is_active,
            )
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


@pytest.fixture
def admin_id(make_user):
    return make_user("admin@kina.test", password="adminpass", role="admin", full_name="Resort Admin")


@pytest.fixture
def staff_id(make_user):
    return make_user("staff@kina.test", password="staffpass", role="staff", full_name="Front Desk")


@pytest.fixture
def customer_id(make_user):
    return make_user("guest@example.com", password="guestpass", role="customer", full_name="Juan Dela Cruz")


@pytest.fixture
def token_headers(app):
    def _headers(user_id):
        with app.app_context():
            user = db.session.get(User, user_id)
            return {"Authorization": f"Bearer {issue_access_token(user)}"}
    return _headers


@pytest.fixture
def login(client):
    """Opens a dashboard session and returns headers carrying the CSRF token."""
    def _login(email, password, **extra):
        resp = client.post("/api/login", json={"email": email, "password": password, **extra})
        assert resp.status_code == 200, resp.get_json()
        return {"X-CSRF-Token": client.get_cookie("csrf_token").value}
    return _login


@pytest.fixture
def admin_headers(login, admin_id):
    return login("admin@kina.test", "adminpass")


@pytest.fixture
def staff_headers(login, staff_id):
    return login("staff@kina.test", "staffpass")


@pytest.fixture
def package_id(app):
    with app.app_context():
        return Package.query.filter_by(title="Standard Room").first().id


def days_ahead(n):
    return (date.today() + timedelta(days=n)).isoformat()


@pytest.fixture
def booking_payload(package_id):
    def _payload(start=10, nights=2, **overrides):
        data = {
            "guest_name": "Juan Dela Cruz",
            "guest_email": "guest@example.com",
            "package_id": package_id,
            "check_in": days_ahead(start),
            "check_out": days_ahead(start + nights),
        }
        data.update(overrides)
        return data
    return _payload
