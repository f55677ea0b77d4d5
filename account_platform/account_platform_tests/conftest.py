import pytest
from fastapi.testclient import TestClient

from account_platform.account_platform.account_service.auth import build_password_context
from account_platform.account_platform.account_service.config import Settings
from account_platform.account_platform.account_service.main import create_app
from account_platform.account_platform.account_service.service import AccountService
from account_platform.account_platform.account_service.user_store import UserStore

TEST_SECRET = "test-secret-key"


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "data" / "users.db")


@pytest.fixture
def store(db_path):
    s = UserStore(db_path)
    yield s
    s.close()


@pytest.fixture
def password_context():
    # Low cost keeps the suite fast; production uses the configured default
    return build_password_context(rounds=1000)


@pytest.fixture
def service(store, password_context):
    return AccountService(store, TEST_SECRET, password_context)


@pytest.fixture
def client(tmp_path, service):
    settings = Settings(DATA_DIR=str(tmp_path / "data"), SECRET_KEY=TEST_SECRET)
    with TestClient(create_app(settings, service)) as c:
        yield c
