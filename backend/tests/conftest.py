from pathlib import Path
import os
import tempfile
import uuid
import pytest

# Point the app at a throwaway SQLite file before `handrest` is imported.
_DB_PATH = Path(tempfile.gettempdir()) / f"handrest_test_{os.getpid()}.db"
if _DB_PATH.exists():
    _DB_PATH.unlink()
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ.setdefault("BOOKING_RATE_LIMIT_PER_MIN", "1000")


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Each test starts with an empty rate-limit window."""
    from handrest import main
    main._rate_limiter.reset()
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from handrest.main import app
    return TestClient(app)


def _login(client, username, password='pw', **profile):
    client.post('/auth/register', json={'username': username, 'password': password, **profile})
    r = client.post('/auth/login', json={'username': username, 'password': password})
    assert r.status_code == 200
    return {'Authorization': f"Bearer {r.json()['access_token']}"}


def _grant(username, role):
    from sqlmodel import Session
    from handrest.database import engine
    from handrest import models, repositories
    with Session(engine) as session:
        user = repositories.UserRepository(session).get_by_username(username)
        repositories.RoleRepository(session).create(models.UserRole(user_id=user.id, role=role))


@pytest.fixture
def customer_headers(client):
    return _login(client, f"cust_{uuid.uuid4().hex[:8]}", full_name='Test Customer')


@pytest.fixture
def admin_headers(client):
    username = f"admin_{uuid.uuid4().hex[:8]}"
    headers = _login(client, username, full_name='Asha Admin')
    _grant(username, 'admin')
    return headers


@pytest.fixture
def make_user(client):
    """Register a user with a profile and return `(username, headers)`."""
    def factory(**profile):
        username = f"user_{uuid.uuid4().hex[:8]}"
        return username, _login(client, username, **profile)
    return factory
