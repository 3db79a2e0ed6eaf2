"""
Pytest configuration and fixtures
"""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from siteback.config import Settings
from siteback.index import create_app
from siteback.schemas import User
from siteback.services.auth_service import Role, create_jwt_token
from siteback.services.credentials import hash_key
from siteback.services.memory_store import InMemoryQuestStore
from siteback.utils.jwt_secret import clear_jwt_secret_cache

TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    """Pin the signing secret and keep secret lookups away from AWS"""
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    for name in ("JWT_SECRET_NAME", "ADMIN_PASSWORD", "ADMIN_SECRET_NAME"):
        monkeypatch.delenv(name, raising=False)
    clear_jwt_secret_cache()
    yield TEST_SECRET
    clear_jwt_secret_cache()


@pytest.fixture
def settings():
    return Settings(store_uri="memory://", seed_on_startup=False)


@pytest.fixture
def store():
    return InMemoryQuestStore()


@pytest.fixture
def app(settings, store):
    return create_app(settings, store=store)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_headers():
    """Build Authorization headers carrying a token for the given user and role"""
    def _make(user_name: str, role: Role = Role.PLAYER) -> dict:
        return {"Authorization": f"Bearer {create_jwt_token(user_name, role)}"}
    return _make


@pytest.fixture
def add_user(store):
    """Insert a user with a hashed password straight into the store"""
    def _add(user_name: str, password: str, is_admin: bool = False) -> User:
        user = User(
            user_name=user_name,
            is_admin=is_admin,
            key_hash=hash_key(password),
            created_at=datetime.now(timezone.utc),
        )
        store.insert_user(user)
        return user
    return _add
