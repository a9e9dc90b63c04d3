# tests/conftest.py
import os
import sys
import tempfile
from pathlib import Path

import pytest

# --- Make the root packages (api, models, services, utils) importable ---
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

ACCESS_SECRET = "test-access-token-secret-0123456789abcdef"
REFRESH_SECRET = "test-refresh-token-secret-0123456789abcdef"
DEFAULT_PASSWORD = "correct-horse-battery"


def _prepare_test_env() -> None:
    # Must run before 'models' is imported: the storage singleton reads DATABASE_URL
    tmp = Path(tempfile.mkdtemp(prefix="videotube-tests-"))
    os.environ["DATABASE_URL"] = f"sqlite:///{(tmp / 'test.sqlite3').as_posix()}"
    os.environ["APP_ENV"] = "test"
    os.environ["ACCESS_TOKEN_SECRET"] = ACCESS_SECRET
    os.environ["ACCESS_TOKEN_TTL"] = "15m"
    os.environ["REFRESH_TOKEN_SECRET"] = REFRESH_SECRET
    os.environ["REFRESH_TOKEN_TTL"] = "10d"
    os.environ["REVOKE_SESSIONS_ON_PASSWORD_CHANGE"] = "true"


_prepare_test_env()

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.credential_store import CredentialStore  # noqa: E402
from models.user import User  # noqa: E402
from utils.security import TokenSettings, hash_password  # noqa: E402


@pytest.fixture(scope="session")
def app():
    return create_app("test")


@pytest.fixture
def client(app):
    # Tokens are passed explicitly; no implicit cookie jar between requests
    return app.test_client(use_cookies=False)


@pytest.fixture(autouse=True)
def _reset_db():
    storage.reset()
    yield
    storage.close()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def token_settings(app):
    return TokenSettings.from_config(app.config)


@pytest.fixture
def store():
    return CredentialStore(storage)


@pytest.fixture
def user_factory():
    """Insert a user directly into the store and return it."""
    counter = {"n": 0}

    def _make(user_name=None, email=None, password=DEFAULT_PASSWORD, full_name="Test User", **extra):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            user_name=user_name or f"user{n}",
            email=email or f"user{n}@example.com",
            full_name=full_name,
            avatar=extra.pop("avatar", f"https://cdn.example.com/avatars/{n}.png"),
            password_hash=hash_password(password),
            **extra,
        )
        storage.new(user)
        storage.save()
        return user

    return _make


@pytest.fixture
def login(client):
    """Log a user in over HTTP and return the response payload's data."""
    def _login(email=None, user_name=None, password=DEFAULT_PASSWORD):
        body = {"password": password}
        if email:
            body["email"] = email
        if user_name:
            body["userName"] = user_name
        res = client.post("/api/v1/users/login", json=body)
        assert res.status_code == 200, res.get_json()
        return res.get_json()["data"]

    return _login
