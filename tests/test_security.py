"""Tests for Clerk session token authentication."""

import time

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from app.core.config import settings
from app.models.user import User


def _pem_pair():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


PRIVATE_PEM, PUBLIC_PEM = _pem_pair()


def _token(sub: str | None = "user_clerk_1", key: str = PRIVATE_PEM, expires_in: int = 300) -> str:
    now = int(time.time())
    claims = {"iat": now, "nbf": now, "exp": now + expires_in, "azp": "http://localhost:3000"}
    if sub is not None:
        claims["sub"] = sub
    return jwt.encode(claims, key, algorithm="RS256")


@pytest.fixture
def jwt_key(monkeypatch):
    monkeypatch.setattr(settings, "CLERK_JWT_KEY", PUBLIC_PEM)


@pytest_asyncio.fixture
async def synced_user(db_session):
    db_session.add(User(id="user_clerk_1", email="clerk@example.com"))
    await db_session.commit()


@pytest.mark.asyncio
async def test_valid_session_token(client, jwt_key, synced_user):
    response = await client.get("/decks/", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_user_not_synced_is_401(client, jwt_key):
    response = await client.get("/decks/", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_is_401(client, jwt_key, synced_user):
    response = await client.get("/decks/", headers={"Authorization": f"Bearer {_token(expires_in=-60)}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_signed_by_other_key_is_401(client, jwt_key, synced_user):
    other_private, _ = _pem_pair()
    response = await client.get("/decks/", headers={"Authorization": f"Bearer {_token(key=other_private)}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_without_subject_is_401(client, jwt_key, synced_user):
    response = await client.get("/decks/", headers={"Authorization": f"Bearer {_token(sub=None)}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_missing_verification_key_is_401(client, monkeypatch, synced_user):
    monkeypatch.setattr(settings, "CLERK_JWT_KEY", None)
    response = await client.get("/decks/", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_non_bearer_scheme_is_401(client, jwt_key, synced_user):
    response = await client.get("/decks/", headers={"Authorization": f"Basic {_token()}"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_openapi_declares_plain_bearer_scheme(client):
    schema = (await client.get("/openapi.json")).json()
    schemes = schema["components"]["securitySchemes"]
    assert schemes == {"HTTPBearer": {"type": "http", "scheme": "bearer"}}
