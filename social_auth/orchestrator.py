"""Authentication orchestration for Google code flow and Apple token flow."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from social_auth.apple import AppleIdentityVerifier
from social_auth.exceptions import (
    ClaimMismatchError,
    InvalidRequestError,
    MissingRequiredClaimError,
    SocialAuthError,
    UserProvisioningError,
)
from social_auth.google import GoogleTokenExchanger, GoogleUserFetcher
from social_auth.protocols import (
    FormatResponseFormatter,
    ProfileFormatter,
    ResponseExtrasProvider,
    TokenIssuer,
    UserRecord,
    UserRepository,
)
from social_auth.types import (
    AuthResult,
    ClientContext,
    GoogleClientConfig,
    LoginUpdate,
    NewUserRecord,
    ProviderProfile,
)

logger = structlog.get_logger(__name__)


class AuthenticationOrchestrator:
    """Turns provider credentials into a resolved user and session tokens.

    Both flows converge on the same contract: every call returns exactly one
    ``AuthResult``. Failures at any step collapse into a generic 400 result;
    the specific error code is only logged.
    """

    def __init__(
        self,
        google_exchanger: GoogleTokenExchanger,
        google_fetcher: GoogleUserFetcher,
        google_config: GoogleClientConfig,
        apple_verifier: AppleIdentityVerifier,
        user_repository: UserRepository,
        token_issuer: TokenIssuer,
        formatter: ProfileFormatter | None = None,
        extras_provider: ResponseExtrasProvider | None = None,
    ) -> None:
        self._google_exchanger = google_exchanger
        self._google_fetcher = google_fetcher
        self._google_config = google_config
        self._apple_verifier = apple_verifier
        self._users = user_repository
        self._token_issuer = token_issuer
        self._formatter = formatter or FormatResponseFormatter()
        self._extras_provider = extras_provider

    async def authenticate_with_google(
        self,
        code: str | None,
        client_context: ClientContext,
        platform: str = "android",
        ads_id: str | None = None,
        extras: Mapping[str, Any] | None = None,
    ) -> AuthResult:
        """Run code exchange, profile fetch, user resolution and session issuance."""
        try:
            if not code:
                raise InvalidRequestError("Missing authorization code.")
            tokens = await self._google_exchanger.exchange_code(
                code=code,
                client_id=self._google_config.client_id,
                client_secret=self._google_config.client_secret,
                redirect_uri=self._google_config.redirect_uri,
                platform=platform,
            )
            profile = await self._google_fetcher.fetch_profile(
                id_token=tokens.id_token, access_token=tokens.access_token
            )
            user = await self.resolve_user(
                profile=profile,
                client_context=client_context,
                ads_id=ads_id,
                platform=platform,
            )
            return await self.issue_session(user=user, extras=extras)
        except Exception as exc:
            return self._failed(provider="google", exc=exc)

    async def authenticate_with_apple(
        self,
        identity_token: str | None,
        client_context: ClientContext,
        full_name: str | Mapping[str, Any] | None = None,
        ads_id: str | None = None,
        extras: Mapping[str, Any] | None = None,
    ) -> AuthResult:
        """Run token verification, user resolution and session issuance."""
        try:
            claims = await self._apple_verifier.verify_identity_token(identity_token)
            profile = self._apple_verifier.to_profile(claims, full_name=full_name)
            user = await self.resolve_user(
                profile=profile,
                client_context=client_context,
                ads_id=ads_id,
            )
            return await self.issue_session(user=user, extras=extras)
        except Exception as exc:
            return self._failed(provider="apple", exc=exc)

    async def resolve_user(
        self,
        profile: ProviderProfile,
        client_context: ClientContext,
        ads_id: str | None = None,
        platform: str | None = None,
    ) -> UserRecord:
        """Find the non-deleted user by email, creating one on first login."""
        if not profile.email:
            raise MissingRequiredClaimError(f"{profile.provider} identity has no email.")
        if profile.email_verified is False:
            raise ClaimMismatchError(f"{profile.provider} email is not verified.")

        existing = await self._users.find_one(email=profile.email, is_deleted=False)
        if existing is None:
            user = await self._users.create(
                NewUserRecord(
                    email=profile.email,
                    name=profile.name,
                    provider=profile.provider,
                    provider_subject=profile.subject_id,
                    last_ip=client_context.source_ip,
                    country=client_context.country,
                    email_verified=profile.email_verified,
                    picture=profile.picture,
                    platform=platform,
                    ads_id=ads_id or "",
                )
            )
            logger.info("social_user_created", provider=profile.provider, user_id=str(user.id))
        else:
            user = await self._users.update_login(
                existing,
                LoginUpdate(
                    provider=profile.provider,
                    provider_subject=profile.subject_id,
                    last_ip=client_context.source_ip,
                    country=client_context.country,
                    ads_id=ads_id or "",
                    name=profile.name or None,
                    picture=profile.picture,
                    platform=platform,
                ),
            )

        stored = await self._users.find_by_id(user.id)
        if stored is None:
            raise UserProvisioningError("Resolved user could not be reloaded.")
        return stored

    async def issue_session(
        self,
        user: UserRecord,
        extras: Mapping[str, Any] | None = None,
    ) -> AuthResult:
        """Mint session tokens and assemble the success result."""
        tokens = await self._token_issuer.generate_auth_tokens(user)
        merged: dict[str, Any] = {}
        if self._extras_provider is not None:
            merged.update(await self._extras_provider())
        merged.update(extras or {})
        return AuthResult(
            status_code=200,
            is_success=True,
            user=self._formatter.format_user(user),
            tokens=tokens,
            extras=merged,
        )

    @staticmethod
    def _failed(provider: str, exc: Exception) -> AuthResult:
        """Log the specific failure and return the generic failure result."""
        if isinstance(exc, SocialAuthError):
            logger.warning(
                "social_auth_failed",
                provider=provider,
                error_code=exc.code,
                detail=exc.detail,
            )
        else:
            logger.error(
                "social_auth_failed",
                provider=provider,
                error_code="unexpected_error",
                error=str(exc),
                exc_info=exc,
            )
        return AuthResult.failure()
