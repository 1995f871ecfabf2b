"""Pytest configuration and fixtures."""

import json
import os
import secrets
import uuid

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from notekeeper import models  # noqa: F401
from notekeeper.database import Base, get_db
from notekeeper.main import app
from notekeeper.services.provider import AuthProvider, get_auth_provider


class AuthHeaders(dict):
    """Dict subclass that also stores user_id and email."""

    def __init__(self, *args, user_id: str | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


class FakeAuthProvider:
    """In-memory stand-in for the hosted auth provider's REST API."""

    def __init__(self) -> None:
        self.users: dict[str, dict] = {}
        self.access_tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.require_confirmation = False
        self.signup_failure: tuple[int, dict] | None = None
        self.signin_failure: tuple[int, dict] | None = None
        self.logout_failure: tuple[int, dict] | None = None
        self.unreachable = False
        # path -> HTML body served with 200, as a proxy or maintenance page would
        self.html_pages: dict[str, str] = {}
        self.requests: list[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _public_user(self, user: dict) -> dict:
        return {
            "id": user["id"],
            "aud": "authenticated",
            "email": user["email"],
            "user_metadata": user["user_metadata"],
        }

    def issue_session(self, user: dict) -> dict:
        access_token = secrets.token_urlsafe(16)
        refresh_token = secrets.token_urlsafe(16)
        self.access_tokens[access_token] = user["email"]
        self.refresh_tokens[refresh_token] = user["email"]
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": 3600,
            "refresh_token": refresh_token,
            "user": self._public_user(user),
        }

    def _user_for(self, request: httpx.Request) -> dict | None:
        token = request.headers.get("authorization", "").removeprefix("Bearer ")
        email = self.access_tokens.get(token)
        return self.users.get(email) if email else None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path.removeprefix("/auth/v1")
        body = json.loads(request.content) if request.content else {}

        if path in self.html_pages:
            return httpx.Response(
                200, text=self.html_pages[path], headers={"content-type": "text/html"}
            )

        if path == "/signup":
            if self.signup_failure:
                return httpx.Response(self.signup_failure[0], json=self.signup_failure[1])
            if body["email"] in self.users:
                return httpx.Response(
                    422,
                    json={
                        "code": 422,
                        "error_code": "user_already_exists",
                        "msg": "User already registered",
                    },
                )
            if len(body["password"]) < 6:
                return httpx.Response(
                    422,
                    json={
                        "code": 422,
                        "error_code": "weak_password",
                        "msg": "Password should be at least 6 characters.",
                    },
                )
            user = {
                "id": str(uuid.uuid4()),
                "email": body["email"],
                "password": body["password"],
                "user_metadata": body.get("data") or {},
            }
            self.users[user["email"]] = user
            if self.require_confirmation:
                return httpx.Response(200, json=self._public_user(user))
            return httpx.Response(200, json=self.issue_session(user))

        if path == "/token":
            grant_type = request.url.params.get("grant_type")
            if grant_type == "password":
                if self.signin_failure:
                    return httpx.Response(self.signin_failure[0], json=self.signin_failure[1])
                user = self.users.get(body.get("email"))
                if user is None or user["password"] != body.get("password"):
                    return httpx.Response(
                        400,
                        json={
                            "error": "invalid_grant",
                            "error_description": "Invalid login credentials",
                        },
                    )
                return httpx.Response(200, json=self.issue_session(user))
            if grant_type == "refresh_token":
                email = self.refresh_tokens.pop(body.get("refresh_token"), None)
                if email is None:
                    return httpx.Response(
                        400,
                        json={"error": "invalid_grant", "error_description": "Invalid Refresh Token"},
                    )
                return httpx.Response(200, json=self.issue_session(self.users[email]))

        if path == "/user":
            user = self._user_for(request)
            if user is None:
                return httpx.Response(
                    403, json={"code": 403, "error_code": "bad_jwt", "msg": "invalid JWT"}
                )
            return httpx.Response(200, json=self._public_user(user))

        if path == "/logout":
            if self.logout_failure:
                return httpx.Response(self.logout_failure[0], json=self.logout_failure[1])
            token = request.headers.get("authorization", "").removeprefix("Bearer ")
            self.access_tokens.pop(token, None)
            return httpx.Response(204)

        if path == "/health":
            return httpx.Response(200, json={"name": "GoTrue", "version": "fake"})

        return httpx.Response(404, json={"msg": "not found"})


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").rsplit("/", 1)[0] + "/notekeeper_test"
else:
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def fake_provider():
    """Fresh in-memory auth provider."""
    return FakeAuthProvider()


@pytest.fixture
def provider(fake_provider):
    """AuthProvider client wired to the in-memory provider."""
    return AuthProvider(transport=fake_provider.transport())


@pytest.fixture(scope="function")
def client(db, provider):
    """Create a test client with database and provider overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_provider] = lambda: provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email: str, password: str = "testpass123", name: str = "Test User"):
    response = client.post(
        "/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 200
    data = response.json()
    return AuthHeaders(
        {"Authorization": f"Bearer {data['session']['access_token']}"},
        user_id=data["user"]["id"],
        email=email,
    )


@pytest.fixture
def auth_headers(client):
    """Create a user and return auth headers with user info."""
    return register(client, "test@example.com")


@pytest.fixture
def other_auth_headers(client):
    """A second, unrelated user."""
    return register(client, "other@example.com", name="Other User")
