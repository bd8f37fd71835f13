"""Public social authentication exports."""

from social_auth.apple import APPLE_ISSUER, APPLE_JWKS_URI, AppleIdentityVerifier
from social_auth.google import GoogleTokenExchanger, GoogleUserFetcher
from social_auth.keys import KeyResolver
from social_auth.orchestrator import AuthenticationOrchestrator
from social_auth.types import AuthResult, ClientContext, GoogleClientConfig, SessionTokens
from social_auth.verifier import TokenVerifier

__all__ = [
    "APPLE_ISSUER",
    "APPLE_JWKS_URI",
    "AppleIdentityVerifier",
    "AuthResult",
    "AuthenticationOrchestrator",
    "ClientContext",
    "GoogleClientConfig",
    "GoogleTokenExchanger",
    "GoogleUserFetcher",
    "KeyResolver",
    "SessionTokens",
    "TokenVerifier",
]
