"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import Settings, configure_structlog, get_settings
from app.error_handlers import register_exception_handlers
from app.routers import social
from social_auth.apple import AppleIdentityVerifier
from social_auth.google import GoogleTokenExchanger, GoogleUserFetcher
from social_auth.keys import KeyResolver
from social_auth.orchestrator import AuthenticationOrchestrator
from social_auth.protocols import (
    ProfileFormatter,
    ResponseExtrasProvider,
    TokenIssuer,
    UserRepository,
)
from social_auth.types import GoogleClientConfig
from social_auth.verifier import TokenVerifier


def build_key_resolver(settings: Settings) -> KeyResolver:
    """Create the Apple key resolver owned by one service instance."""
    return KeyResolver(jwks_uri=str(settings.apple.jwks_uri), timeout=settings.http.timeout())


def create_app(
    user_repository: UserRepository,
    token_issuer: TokenIssuer,
    formatter: ProfileFormatter | None = None,
    settings: Settings | None = None,
    extras_provider: ResponseExtrasProvider | None = None,
) -> FastAPI:
    """Create the FastAPI application around host-supplied collaborators."""
    settings = settings or get_settings()
    configure_structlog(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        key_resolver = build_key_resolver(settings)
        exchanger = GoogleTokenExchanger(
            token_url=str(settings.google.token_url), timeout=settings.http.timeout()
        )
        fetcher = GoogleUserFetcher(
            userinfo_url=str(settings.google.userinfo_url), timeout=settings.http.timeout()
        )
        app.state.auth_orchestrator = AuthenticationOrchestrator(
            google_exchanger=exchanger,
            google_fetcher=fetcher,
            google_config=GoogleClientConfig(
                client_id=settings.google.client_id,
                client_secret=settings.google.client_secret.get_secret_value(),
                redirect_uri=settings.google.redirect_uri,
            ),
            apple_verifier=AppleIdentityVerifier(
                token_verifier=TokenVerifier(
                    key_source=key_resolver,
                    leeway_seconds=settings.verification.leeway_seconds,
                ),
                audiences=settings.apple.audiences,
                issuer=settings.apple.issuer,
            ),
            user_repository=user_repository,
            token_issuer=token_issuer,
            formatter=formatter,
            extras_provider=extras_provider,
        )
        try:
            yield
        finally:
            await key_resolver.aclose()
            await exchanger.aclose()
            await fetcher.aclose()

    app = FastAPI(title=settings.app.service, lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(social.router)
    return app
