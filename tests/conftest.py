"""
conftest.py — Pytest fixtures for LegalBeacon.

Uses an in-memory SQLite database so no PostgreSQL connection is needed.
Row-level security is PostgreSQL-only; tenant isolation in these tests is
enforced by the session hooks in utils/tenancy.py.

Each test gets a fresh app and database seeded with two firms ("A" and "B"),
an admin user and a client party in each.

Keep requests outside `with app.app_context()` blocks: a request made inside
one shares its database session and tenant binding.
"""

import os
import sys
import pytest

# Put backend on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

os.environ.setdefault("FLASK_ENV",         "testing")
os.environ.setdefault("FLASK_SECRET_KEY",  "test-secret")
os.environ.setdefault("DATABASE_URL",      "sqlite:///:memory:")
os.environ.setdefault("REDIS_URL",         "redis://localhost:6379/0")
os.environ.setdefault("PORTAL_BASE_URL",   "http://localhost")

ADMIN_PASSWORD = "Testpass1!"


@pytest.fixture
def app():
    """Create application with an in-memory SQLite database."""
    from app import create_app
    from database import db
    from config import Config

    class TestConfig(Config):
        TESTING                   = True
        DEBUG                     = False
        SQLALCHEMY_DATABASE_URI   = "sqlite:///:memory:"
        SQLALCHEMY_ENGINE_OPTIONS = {}
        SENDGRID_API_KEY          = ""
        ASSISTANT_DELAY_SECONDS   = 0

    test_app = create_app(TestConfig)

    with test_app.app_context():
        db.create_all()
        test_app._seed = {
            "a": _seed_firm("Firm A", "admin@firm-a.test", "Alice", "Anders", "Acme Holdings"),
            "b": _seed_firm("Firm B", "admin@firm-b.test", "Bob", "Brown", "Beta Lending"),
        }
        db.session.remove()

    yield test_app

    with test_app.app_context():
        db.session.remove()
        db.drop_all()


def _seed_firm(name, email, first, last, client_org):
    from database import db
    from models import Firm, User, UserRole, Party
    from werkzeug.security import generate_password_hash

    firm = Firm(name=name, address="", phone="", email=email)
    db.session.add(firm)
    db.session.flush()

    admin = User(
        firm_id=firm.id,
        email=email,
        first_name=first,
        last_name=last,
        password_hash=generate_password_hash(ADMIN_PASSWORD),
        role=UserRole.admin,
    )
    client = Party(firm_id=firm.id, type="organization", organization_name=client_org, is_client=True)
    opposing = Party(firm_id=firm.id, first_name="Oscar", last_name="Opponent")
    db.session.add_all([admin, client, opposing])
    db.session.commit()

    return {
        "firm_id":     firm.id,
        "admin_id":    admin.id,
        "email":       email,
        "client_id":   client.id,
        "opposing_id": opposing.id,
    }


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def firm_a(app):
    return app._seed["a"]


@pytest.fixture
def firm_b(app):
    return app._seed["b"]


def _logged_in(app, user_id):
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["user_id"] = user_id
    return c


@pytest.fixture
def admin_client(app, firm_a):
    """Authenticated admin test client for firm A."""
    return _logged_in(app, firm_a["admin_id"])


@pytest.fixture
def other_client(app, firm_b):
    """Authenticated admin test client for firm B."""
    return _logged_in(app, firm_b["admin_id"])


@pytest.fixture
def login_as(app):
    """Build an authenticated client for any user id."""
    return lambda user_id: _logged_in(app, user_id)


@pytest.fixture
def make_user(app):
    """Insert a user directly; returns its id."""
    def _make(firm_id, email, role="attorney", first="Pat", last="Jones", active=True):
        from database import db
        from models import User, UserRole
        from werkzeug.security import generate_password_hash
        with app.app_context():
            user = User(
                firm_id=firm_id, email=email, first_name=first, last_name=last,
                password_hash=generate_password_hash(ADMIN_PASSWORD),
                role=UserRole[role], is_active=active,
            )
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


@pytest.fixture
def make_case(admin_client, firm_a):
    """Create a case for firm A through the API; returns the case dict."""
    def _make(**overrides):
        body = {
            "title":       "Acme v. Opponent",
            "case_number": "CV-2024-001",
            "case_type":   "Civil Litigation",
            "status":      "active",
            "client_id":   firm_a["client_id"],
        }
        body.update(overrides)
        r = admin_client.post("/cases", json=body)
        assert r.status_code == 201, r.get_json()
        return r.get_json()["data"]["case"]
    return _make
