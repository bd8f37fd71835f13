"""Sign in with Apple identity-token verification."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from social_auth.exceptions import InvalidRequestError
from social_auth.types import ProviderProfile, VerifiedClaims
from social_auth.verifier import TokenVerifier

APPLE_ISSUER = "https://appleid.apple.com"
APPLE_JWKS_URI = "https://appleid.apple.com/auth/keys"


def format_full_name(full_name: str | Mapping[str, Any] | None) -> str:
    """Flatten Apple's name object (sent only on first sign-in) to a display name."""
    if full_name is None:
        return ""
    if isinstance(full_name, str):
        return full_name.strip()
    parts = [full_name.get("givenName"), full_name.get("familyName")]
    return " ".join(str(part).strip() for part in parts if part and str(part).strip())


class AppleIdentityVerifier:
    """Verify Apple identity tokens for the configured app audiences."""

    def __init__(
        self,
        token_verifier: TokenVerifier,
        audiences: Collection[str],
        issuer: str = APPLE_ISSUER,
    ) -> None:
        if not audiences:
            raise ValueError("At least one Apple audience is required.")
        self._token_verifier = token_verifier
        self._audiences = frozenset(audiences)
        self._issuer = issuer

    async def verify_identity_token(self, identity_token: str | None) -> VerifiedClaims:
        """Verify signature, issuer, audience and expiry of an Apple token."""
        if not identity_token:
            raise InvalidRequestError("Invalid identity token.")
        return await self._token_verifier.verify(
            identity_token,
            expected_issuer=self._issuer,
            expected_audience=self._audiences,
        )

    @staticmethod
    def to_profile(
        claims: VerifiedClaims, full_name: str | Mapping[str, Any] | None = None
    ) -> ProviderProfile:
        """Build provider profile from verified claims and client-sent name."""
        return ProviderProfile(
            provider="apple",
            subject_id=claims.subject,
            email=claims.email,
            email_verified=claims.email_verified,
            name=format_full_name(full_name),
        )
