"""Integration tests for social login routes and application wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from app import main as main_module
from app.config import Settings
from app.dependencies import get_authentication_orchestrator
from app.error_handlers import register_exception_handlers
from app.main import create_app
from app.routers.social import router
from social_auth.keys import KeyResolver
from social_auth.orchestrator import AuthenticationOrchestrator
from social_auth.types import AuthResult, NewUserRecord, SessionTokens


class _OrchestratorStub:
    """Stub orchestrator capturing the arguments routes pass through."""

    def __init__(self, result: AuthResult) -> None:
        self.result = result
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def authenticate_with_google(self, **kwargs: Any) -> AuthResult:
        self.calls.append(("google", kwargs))
        return self.result

    async def authenticate_with_apple(self, **kwargs: Any) -> AuthResult:
        self.calls.append(("apple", kwargs))
        return self.result


@dataclass
class _StoredUser:
    id: str
    email: str
    name: str

    def format_response(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name}


class _InMemoryUsers:
    """User repository backed by a dict keyed by email."""

    def __init__(self) -> None:
        self.users: dict[str, _StoredUser] = {}

    async def find_one(self, email: str, is_deleted: bool = False) -> _StoredUser | None:
        return self.users.get(email)

    async def find_by_id(self, user_id: Any) -> _StoredUser | None:
        return next((user for user in self.users.values() if user.id == user_id), None)

    async def create(self, record: NewUserRecord) -> _StoredUser:
        user = _StoredUser(id=f"user-{len(self.users) + 1}", email=record.email, name=record.name)
        self.users[record.email] = user
        return user

    async def update_login(self, user: _StoredUser, update: Any) -> _StoredUser:
        return user


class _StaticTokenIssuer:
    async def generate_auth_tokens(self, user: Any) -> SessionTokens:
        return SessionTokens(
            access_token=f"session-{user.id}",
            time_expired=1_900_000_000,
            refresh_token="session-refresh",
            time_refresh_expired=1_900_086_400,
        )


def _success_result() -> AuthResult:
    return AuthResult(
        status_code=200,
        is_success=True,
        user={"id": "user-1", "email": "a@b.com", "coin": "1000000"},
        tokens=SessionTokens(
            access_token="session-access",
            time_expired=1_900_000_000,
            refresh_token="session-refresh",
            time_refresh_expired=1_900_086_400,
        ),
    )


def _app(stub: _OrchestratorStub) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router)
    app.dependency_overrides[get_authentication_orchestrator] = lambda: stub
    return app


@pytest.mark.asyncio
async def test_google_login_passes_client_context_and_returns_result() -> None:
    """Google route forwards body fields and client headers unchanged."""
    stub = _OrchestratorStub(_success_result())

    async with AsyncClient(
        transport=ASGITransport(app=_app(stub)), base_url="http://testserver"
    ) as client:
        response = await client.post(
            "/auth/google",
            json={"code": "abc123", "platform": "ios", "adsId": "ads-1"},
            headers={"x-forwarded-for": "203.0.113.9, 10.0.0.1", "cf-ipcountry": "VN"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["isSuccess"] is True
    assert body["user"]["coin"] == "1000000"
    assert body["tokens"]["accessToken"] == "session-access"
    provider, kwargs = stub.calls[0]
    assert provider == "google"
    assert kwargs["code"] == "abc123"
    assert kwargs["platform"] == "ios"
    assert kwargs["ads_id"] == "ads-1"
    assert kwargs["client_context"].source_ip == "203.0.113.9"
    assert kwargs["client_context"].country == "VN"


@pytest.mark.asyncio
async def test_apple_login_maps_failure_status() -> None:
    """Failure result status becomes the HTTP status."""
    stub = _OrchestratorStub(AuthResult.failure())

    async with AsyncClient(
        transport=ASGITransport(app=_app(stub)), base_url="http://testserver"
    ) as client:
        response = await client.post(
            "/auth/apple",
            json={
                "identityToken": "header.payload.signature",
                "fullName": {"givenName": "Jane", "familyName": "Doe"},
            },
        )

    assert response.status_code == 400
    assert response.json() == {
        "statusCode": 400,
        "isSuccess": False,
        "message": "AUTHENTICATION_FAILED",
    }
    provider, kwargs = stub.calls[0]
    assert provider == "apple"
    assert kwargs["identity_token"] == "header.payload.signature"
    assert kwargs["full_name"] == {"givenName": "Jane", "familyName": "Doe"}
    assert kwargs["ads_id"] is None
    assert kwargs["client_context"].country == "Unknown"


def test_create_app_builds_orchestrator_for_lifespan() -> None:
    """Application startup wires a real orchestrator that rejects empty tokens."""
    settings = Settings(
        google={"client_id": "client-id", "client_secret": "client-secret"},
        apple={"audiences": ["com.example.app"]},
    )
    app = create_app(user_repository=object(), token_issuer=object(), settings=settings)  # type: ignore[arg-type]

    with TestClient(app) as client:
        assert isinstance(app.state.auth_orchestrator, AuthenticationOrchestrator)
        response = client.post("/auth/apple", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "AUTHENTICATION_FAILED"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "body"),
    [
        ("/auth/google", {"code": 123}),
        ("/auth/google", {"code": "abc123", "platform": ["ios"]}),
        ("/auth/apple", {"identityToken": {"token": "x"}}),
    ],
)
async def test_invalid_body_returns_failure_contract(path: str, body: dict[str, Any]) -> None:
    """Wrongly typed fields are answered with the 400 failure result."""
    stub = _OrchestratorStub(_success_result())

    async with AsyncClient(
        transport=ASGITransport(app=_app(stub)), base_url="http://testserver"
    ) as client:
        response = await client.post(path, json=body)

    assert response.status_code == 400
    assert response.json() == {
        "statusCode": 400,
        "isSuccess": False,
        "message": "AUTHENTICATION_FAILED",
    }
    assert stub.calls == []


@pytest.mark.asyncio
async def test_non_json_body_returns_failure_contract() -> None:
    """Unparseable bodies never reach the orchestrator."""
    stub = _OrchestratorStub(_success_result())

    async with AsyncClient(
        transport=ASGITransport(app=_app(stub)), base_url="http://testserver"
    ) as client:
        response = await client.post(
            "/auth/apple", content=b"not-json", headers={"content-type": "application/json"}
        )

    assert response.status_code == 400
    assert response.json()["message"] == "AUTHENTICATION_FAILED"
    assert stub.calls == []


def test_apple_login_merges_host_extras(
    monkeypatch, signing_key, mint_token, apple_claims
) -> None:
    """Successful logins through the app carry the host-provided extras."""

    def jwks(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json={"keys": [signing_key.jwk]})

    monkeypatch.setattr(
        main_module,
        "build_key_resolver",
        lambda settings: KeyResolver(
            jwks_uri=str(settings.apple.jwks_uri),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(jwks)),
        ),
    )

    async def ads_extras() -> dict[str, Any]:
        return {
            "adsConfig": {"interstitialCountdown": 30, "initialInterstitialCountdown": 5},
            "ironSourceKey": "20786fdad",
            "isSuccess": False,
        }

    settings = Settings(
        google={"client_id": "client-id", "client_secret": "client-secret"},
        apple={"audiences": ["com.example.app"]},
    )
    users = _InMemoryUsers()
    app = create_app(
        user_repository=users,
        token_issuer=_StaticTokenIssuer(),
        settings=settings,
        extras_provider=ads_extras,
    )

    with TestClient(app) as client:
        response = client.post(
            "/auth/apple",
            json={
                "identityToken": mint_token(apple_claims()),
                "fullName": {"givenName": "Jane", "familyName": "Doe"},
            },
        )

    assert response.status_code == 200
    body = response.json()
    assert body["isSuccess"] is True
    assert body["user"] == {"id": "user-1", "email": "a@b.com", "name": "Jane Doe"}
    assert body["tokens"]["accessToken"] == "session-user-1"
    assert body["adsConfig"] == {"interstitialCountdown": 30, "initialInterstitialCountdown": 5}
    assert body["ironSourceKey"] == "20786fdad"
    assert list(users.users) == ["a@b.com"]
