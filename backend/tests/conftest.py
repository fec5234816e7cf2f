"""
Pytest fixtures for PodCount backend tests.

Provides the test app, a wiped database per test, two factories with one
user per role, and helpers for logging in through the API.
"""

import pytest
from podcount import create_app
from podcount.extensions import db
from podcount.models import Factory, User
from podcount.services.auth_service import hash_password
from podcount.services.session_service import Principal


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
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


@pytest.fixture(scope='session')
def password_hash(app):
    """One bcrypt hash shared by every fixture user (hashing is slow on purpose)."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def factory_a(db_session):
    """Organic factory (first tenant)."""
    factory = Factory(name="Achiase", location="Eastern Region, Ghana", type="ORGANIC")
    db_session.add(factory)
    db_session.commit()
    return factory


@pytest.fixture(scope='function')
def factory_b(db_session):
    """Conventional factory (second tenant)."""
    factory = Factory(name="Akrofuom", location="Ashanti Region, Ghana", type="CONVENTIONAL")
    db_session.add(factory)
    db_session.commit()
    return factory


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    """Factory fixture: make_user("SUPERVISOR", factory) -> committed User."""
    counter = {"n": 0}

    def _make(role, factory=None, email=None, name=None, status="ACTIVE"):
        counter["n"] += 1
        user = User(
            name=name or f"{role.title()} {counter['n']}",
            email=email or f"{role.lower()}{counter['n']}@koa.com",
            password_hash=password_hash,
            role=role,
            status=status,
            factory_id=factory.id if factory else None,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def admin(make_user, factory_a):
    return make_user("ADMIN", factory_a, email="admin@koa.com", name="Admin User")


@pytest.fixture(scope='function')
def supervisor(make_user, factory_a):
    return make_user("SUPERVISOR", factory_a, email="supervisor.achiase@koa.com")


@pytest.fixture(scope='function')
def officer(make_user, factory_a):
    return make_user("FIELD_OFFICER", factory_a, email="officer.achiase@koa.com")


@pytest.fixture(scope='function')
def guest(make_user, factory_a):
    return make_user("GUEST", factory_a, email="guest.achiase@koa.com")


@pytest.fixture(scope='function')
def outsider(make_user, factory_b):
    """Supervisor of the other factory."""
    return make_user("SUPERVISOR", factory_b, email="supervisor.akrofuom@koa.com")


def principal_for(user) -> Principal:
    return Principal.from_user(user)


SIMPLE_FIELDS = [
    {"name": "farmer_id", "type": "text", "label": "Farmer ID", "required": True},
    {"name": "pod_count", "type": "number", "label": "Pod Count", "required": True, "min": 0},
    {"name": "count_date", "type": "date", "label": "Count Date", "required": False},
]


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
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


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))


@pytest.fixture(scope='function')
def supervisor_headers(client, supervisor):
    return auth_headers(get_auth_token(client, supervisor.email))


@pytest.fixture(scope='function')
def guest_headers(client, guest):
    return auth_headers(get_auth_token(client, guest.email))
