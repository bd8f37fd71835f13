"""Data contract types shared by verification and orchestration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Provider = Literal["google", "apple"]
NormalizedUser = Mapping[str, Any]

DEFAULT_COIN_BALANCE = 1_000_000
AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"


@dataclass(frozen=True)
class SigningKey:
    """Provider public key resolved by key id."""

    key_id: str
    public_key: Any
    algorithm: str = "RS256"


@dataclass(frozen=True)
class VerifiedClaims:
    """Identity token claims that passed signature and claim checks."""

    subject: str
    issuer: str
    audience: str
    expiry: datetime
    email: str | None = None
    email_verified: bool | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ClientContext:
    """Request origin metadata forwarded to user provisioning."""

    source_ip: str
    country: str = "Unknown"


@dataclass(frozen=True)
class GoogleClientConfig:
    """Google OAuth client credentials used for code exchange."""

    client_id: str
    client_secret: str
    redirect_uri: str


@dataclass(frozen=True)
class ProviderTokens:
    """Token payload returned by a provider code exchange."""

    access_token: str
    id_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str | None = None
    scope: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderProfile:
    """Provider-agnostic identity consumed by user resolution."""

    provider: Provider
    subject_id: str
    email: str | None
    email_verified: bool | None = None
    name: str = ""
    picture: str | None = None


@dataclass(frozen=True)
class SessionTokens:
    """Application session tokens produced by the token issuer."""

    access_token: str
    time_expired: int
    refresh_token: str
    time_refresh_expired: int

    def to_response(self) -> dict[str, Any]:
        """Render the camelCase wire shape."""
        return {
            "accessToken": self.access_token,
            "timeExpired": self.time_expired,
            "refreshToken": self.refresh_token,
            "timeRefreshExpired": self.time_refresh_expired,
        }


@dataclass(frozen=True)
class NewUserRecord:
    """User record to create on first login through a provider."""

    email: str
    name: str
    provider: Provider
    provider_subject: str
    last_ip: str
    country: str
    email_verified: bool | None = None
    picture: str | None = None
    platform: str | None = None
    ads_id: str = ""
    coin_balance: int = DEFAULT_COIN_BALANCE
    highest_coin_balance: int = DEFAULT_COIN_BALANCE


@dataclass(frozen=True)
class LoginUpdate:
    """Provider linkage and session metadata applied to an existing user."""

    provider: Provider
    provider_subject: str
    last_ip: str
    country: str
    ads_id: str = ""
    name: str | None = None
    picture: str | None = None
    platform: str | None = None


@dataclass(frozen=True)
class AuthResult:
    """Outcome of one authentication attempt."""

    status_code: int
    is_success: bool
    message: str | None = None
    user: NormalizedUser | None = None
    tokens: SessionTokens | None = None
    extras: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls) -> AuthResult:
        """Build the single user-visible failure result."""
        return cls(status_code=400, is_success=False, message=AUTHENTICATION_FAILED)

    def to_response(self) -> dict[str, Any]:
        """Render the wire contract, omitting absent optional fields."""
        payload: dict[str, Any] = {"statusCode": self.status_code, "isSuccess": self.is_success}
        if self.message is not None:
            payload["message"] = self.message
        if self.user is not None:
            payload["user"] = dict(self.user)
        if self.tokens is not None:
            payload["tokens"] = self.tokens.to_response()
        for key, value in self.extras.items():
            payload.setdefault(key, value)
        return payload
