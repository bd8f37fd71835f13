"""Google OAuth code exchange and userinfo retrieval."""

from __future__ import annotations

import base64
from typing import Any

import httpx
import structlog

from social_auth.exceptions import (
    ExchangeFailedError,
    InvalidRequestError,
    MissingRequiredClaimError,
    ProfileFetchFailedError,
)
from social_auth.keys import DEFAULT_TIMEOUT
from social_auth.types import ProviderProfile, ProviderTokens

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
)

logger = structlog.get_logger(__name__)


def _error_body(response: httpx.Response) -> Any:
    """Return provider error payload as JSON when possible, text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


class _GoogleHTTPClient:
    """Shared HTTP client ownership for Google endpoints."""

    def __init__(
        self,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT)

    async def aclose(self) -> None:
        """Close underlying HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()


class GoogleTokenExchanger(_GoogleHTTPClient):
    """Exchange Google authorization codes for provider tokens."""

    def __init__(
        self,
        token_url: str = GOOGLE_TOKEN_URL,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, http_client=http_client)
        self._token_url = token_url

    async def exchange_code(
        self,
        code: str | None,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str | None,
        platform: str = "android",
    ) -> ProviderTokens:
        """Exchange a single-use authorization code; failures are never retried."""
        if not code or not client_id or not client_secret:
            raise InvalidRequestError("Missing required parameters: code, clientId, clientSecret.")

        form: dict[str, str] = {
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "authorization_code",
            "scope": " ".join(GOOGLE_SCOPES),
            "include_granted_scopes": "true",
        }
        if redirect_uri:
            form["redirect_uri"] = redirect_uri
        basic = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode("ascii")
        headers = {
            "Authorization": f"Basic {basic}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

        try:
            response = await self._client.post(self._token_url, data=form, headers=headers)
        except httpx.RequestError as exc:
            logger.warning("google_token_exchange_failed", platform=platform, reason="network")
            raise ExchangeFailedError("Google token endpoint unavailable.") from exc

        if response.status_code >= 400:
            provider_error = _error_body(response)
            logger.warning(
                "google_token_exchange_failed",
                platform=platform,
                status_code=response.status_code,
                provider_error=provider_error,
            )
            raise ExchangeFailedError(
                f"Google token exchange failed with status {response.status_code}.",
                status_code=response.status_code,
                provider_error=provider_error,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExchangeFailedError(
                "Google token endpoint returned invalid JSON.", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise ExchangeFailedError(
                "Google token endpoint returned invalid payload.", status_code=response.status_code
            )
        access_token = payload.get("access_token")
        id_token = payload.get("id_token")
        if not isinstance(access_token, str) or not access_token:
            raise ExchangeFailedError("Google token response has no access token.")
        if not isinstance(id_token, str) or not id_token:
            raise ExchangeFailedError("Google token response has no ID token.")
        return ProviderTokens(
            access_token=access_token,
            id_token=id_token,
            refresh_token=payload.get("refresh_token"),
            expires_in=_optional_int(payload.get("expires_in")),
            token_type=payload.get("token_type"),
            scope=payload.get("scope"),
            raw=payload,
        )


class GoogleUserFetcher(_GoogleHTTPClient):
    """Fetch the signed-in user's Google profile."""

    def __init__(
        self,
        userinfo_url: str = GOOGLE_USERINFO_URL,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, http_client=http_client)
        self._userinfo_url = userinfo_url

    async def fetch_profile(self, id_token: str | None, access_token: str | None) -> ProviderProfile:
        """Fetch a fresh profile for the token holder."""
        if not id_token or not access_token:
            raise InvalidRequestError("Missing required parameters: idToken, accessToken.")

        try:
            response = await self._client.get(
                self._userinfo_url,
                params={"alt": "json", "access_token": access_token},
                headers={"Authorization": f"Bearer {id_token}"},
            )
        except httpx.RequestError as exc:
            logger.warning("google_profile_fetch_failed", reason="network")
            raise ProfileFetchFailedError("Google userinfo endpoint unavailable.") from exc

        if response.status_code >= 400:
            logger.warning(
                "google_profile_fetch_failed",
                status_code=response.status_code,
                provider_error=_error_body(response),
            )
            raise ProfileFetchFailedError(
                f"Google userinfo failed with status {response.status_code}.",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProfileFetchFailedError(
                "Google userinfo returned invalid JSON.", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise ProfileFetchFailedError(
                "Google userinfo returned invalid payload.", status_code=response.status_code
            )
        return self._normalize(payload)

    @staticmethod
    def _normalize(payload: dict[str, Any]) -> ProviderProfile:
        """Map v2 and v3 userinfo fields onto one profile shape."""
        subject = payload.get("sub") or payload.get("id")
        if subject is None or not str(subject).strip():
            raise MissingRequiredClaimError("Google profile has no subject.")
        email = payload.get("email")
        verified = payload.get("email_verified", payload.get("verified_email"))
        if isinstance(verified, str):
            verified = verified.lower() == "true"
        picture = payload.get("picture")
        return ProviderProfile(
            provider="google",
            subject_id=str(subject),
            email=email.strip() if isinstance(email, str) and email.strip() else None,
            email_verified=verified if isinstance(verified, bool) else None,
            name=str(payload.get("name") or ""),
            picture=picture if isinstance(picture, str) else None,
        )
