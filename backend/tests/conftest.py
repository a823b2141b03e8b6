import itertools
import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from my_finances.config import Settings
from my_finances.main import create_app

TEST_SECRET = "test-secret"


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret=TEST_SECRET, database_url="sqlite://", bcrypt_rounds=4)


@pytest.fixture
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client: TestClient):
    """Register a user (unless it exists) and return its Authorization headers."""
    counter = itertools.count(1)

    def _login(email: str | None = None, password: str = "Secret123!") -> dict[str, str]:
        email = email or f"user{next(counter)}@example.com"
        client.post("/api/auth/register", json={"email": email, "password": password})
        res = client.post("/api/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return {"Authorization": f"Bearer {res.json()['token']}"}

    return _login
