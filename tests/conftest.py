"""Shared pytest fixtures.

The environment is configured before any ``authapp`` import so the module
level configuration picks up an in-memory database and cheap bcrypt rounds.
"""

import os

os.environ["APP_ENV"] = "test"
os.environ["JWT_SECRET"] = "testing_secret"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["FRONTEND_ORIGIN"] = "http://localhost:3000"
os.environ["SUPER_USER_EMAILS"] = "admin@example.com"
os.environ["OAUTH_DEMO_TOKENS"] = "false"
os.environ.pop("OAUTH_ASSERTION_SECRET", None)

from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from authapp.app import create_app
from authapp.core import config, engine
from authapp.core.security import hash_password
from authapp.models import Gender, OAuthProvider, User
from authapp.services import oauth
from authapp.services.errors import VerificationFailed
from authapp.services.reconciler import ExternalIdentity

PASSWORD = "Secret123!"


@pytest.fixture(autouse=True)
def tables():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(config, "UPLOAD_DIR", path)
    return path


@pytest.fixture
def session():
    with Session(engine) as db:
        yield db


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def make_user(session):
    """Factory for persisted accounts; ``password=None`` makes an OAuth-only one."""

    def factory(
        email: str = "ann@example.com",
        *,
        password: Optional[str] = PASSWORD,
        name: str = "Ann",
        age: Optional[int] = 30,
        gender: Optional[Gender] = Gender.FEMALE,
        provider: Optional[OAuthProvider] = None,
        oauth_id: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> User:
        user = User(
            email=email,
            password_hash=hash_password(password) if password else None,
            name=name,
            age=age,
            gender=gender,
            oauth_provider=provider,
            oauth_id=oauth_id,
            profile_picture=picture,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return factory


@pytest.fixture
def identities(monkeypatch) -> Dict[str, ExternalIdentity]:
    """Register access tokens the fake Google verifier will accept."""

    known: Dict[str, ExternalIdentity] = {}

    async def fake_verify(provider, access_token, *, client=None):
        if provider != OAuthProvider.GOOGLE:
            raise VerificationFailed(f"Unsupported auth provider: {provider.value}")
        try:
            return known[access_token]
        except KeyError:
            raise VerificationFailed("Invalid Google auth token") from None

    monkeypatch.setattr(oauth, "verify_oauth_token", fake_verify)
    return known


def login_as(client: TestClient, email: str, password: str = PASSWORD):
    res = client.post("/api/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res
