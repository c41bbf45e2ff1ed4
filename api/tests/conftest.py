from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Generator

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Column, DateTime, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from folio import models, settings  # noqa: F401  (models registers tables on Base.metadata)
from folio.auth_provider import AuthSession
from folio.blob import VaultBlobStore
from folio.db import Base, build_engine
from folio.deps import get_auth_provider, get_blob_store, get_store
from folio.errors import AuthError
from folio.identity import Identity
from folio.main import app
from folio.store import RowStore

FIXED_NOW = datetime(2025, 10, 18, 10, 0, 0)

# 1x1 transparent PNG
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
GIF_DATA_URL = "data:image/gif;base64,R0lGODlhAQABAAAAACw="


class FakeClock:
    """Deterministic clock; advance() moves it forward."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingSink:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def update_user_metadata(self, user_id: str, metadata: dict[str, Any]) -> None:
        self.calls.append((user_id, metadata))


@pytest.fixture()
def engine(tmp_path) -> Generator[Engine, None, None]:
    engine = build_engine(f"sqlite:///{tmp_path / 'folio.db'}")
    yield engine
    engine.dispose()


@pytest.fixture()
def store(engine: Engine) -> RowStore:
    Base.metadata.create_all(engine)
    return RowStore(engine, metadata=Base.metadata)


@pytest.fixture()
def blob(tmp_path) -> VaultBlobStore:
    return VaultBlobStore(
        root=tmp_path / "vault",
        base_url="http://testserver",
        signing_key="test-blob-signing-key-with-enough-bytes",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


def drifted_store(
    engine: Engine,
    avatar_column: str | None = "avatarurl",
    with_owner_column: bool = True,
) -> RowStore:
    """
    Build a store whose Profile table uses a different physical schema.

    All other tables keep the canonical layout.
    """
    metadata = MetaData()
    for table in Base.metadata.sorted_tables:
        if table.name != "Profile":
            table.to_metadata(metadata)

    columns = [Column("id", String(64), primary_key=True)]
    if with_owner_column:
        columns.append(Column("userID", String(64), unique=True))
    columns.append(Column("displayName", String(200)))
    if avatar_column:
        columns.append(Column(avatar_column, String(1000)))
    columns += [
        Column("contact", String(100)),
        Column("bio", Text),
        Column("updatedAt", DateTime),
    ]
    Table("Profile", metadata, *columns)
    metadata.create_all(engine)
    return RowStore(engine, metadata=metadata)


def make_token(user_id: str = "u1", email: str | None = "ana@example.com", **metadata: Any) -> str:
    """Mint an access token the way the authentication provider would."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "email": email,
        "user_metadata": metadata,
        "iat": now,
        "exp": now + timedelta(hours=1),
    }
    return jwt.encode(claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def auth_headers(user_id: str = "u1", **metadata: Any) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, **metadata)}"}


class FakeAuthProvider:
    """In-memory stand-in for the authentication provider."""

    def __init__(self) -> None:
        self.accounts: dict[str, tuple[str, dict[str, Any]]] = {}
        self.codes: dict[str, dict[str, Any]] = {}
        self.signups: list[tuple[str, dict[str, Any], str]] = []
        self.metadata_updates: list[tuple[str, dict[str, Any]]] = []

    def add_account(self, email: str, password: str, user_id: str, **metadata: Any) -> None:
        self.accounts[email] = (password, {"id": user_id, "email": email, "user_metadata": metadata})

    def sign_up(self, email: str, password: str, metadata: dict[str, Any], redirect_to: str) -> None:
        if email in self.accounts:
            raise AuthError("User already registered")
        self.signups.append((email, metadata, redirect_to))

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthError("Invalid login credentials")
        return self._session(account[1])

    def exchange_code_for_session(self, code: str) -> AuthSession:
        user = self.codes.get(code)
        if user is None:
            raise AuthError("invalid flow state, no valid flow state found")
        return self._session(user)

    def authorize_url(self, provider: str, redirect_to: str) -> str:
        return f"https://auth.example.com/authorize?provider={provider}&redirect_to={redirect_to}"

    def update_user_metadata(self, user_id: str, metadata: dict[str, Any]) -> None:
        self.metadata_updates.append((user_id, metadata))

    def _session(self, user: dict[str, Any]) -> AuthSession:
        identity = Identity.from_provider_user(user)
        return AuthSession(identity=identity, access_token=make_token(identity.id), refresh_token="refresh")


@pytest.fixture()
def auth_provider() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture()
def client(store, blob, auth_provider) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_blob_store] = lambda: blob
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
