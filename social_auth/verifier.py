"""Signed identity-token verification."""

from __future__ import annotations

import hmac
from collections.abc import Collection
from datetime import UTC, datetime
from typing import Any, Protocol

from jose import jws, jwt
from jose.exceptions import ExpiredSignatureError, JWSError, JWTClaimsError, JWTError

from social_auth.exceptions import (
    ClaimMismatchError,
    InvalidSignatureError,
    MalformedTokenError,
    MissingRequiredClaimError,
    TokenExpiredError,
)
from social_auth.keys import ALLOWED_ALGORITHMS
from social_auth.types import SigningKey, VerifiedClaims


class SigningKeySource(Protocol):
    """Anything able to resolve a signing key by key id."""

    async def get_key(self, key_id: str) -> SigningKey: ...


def _normalize_bool(value: Any) -> bool | None:
    """Normalize boolean claims that some providers send as strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false"}:
        return value.lower() == "true"
    return None


def _expiry(claims: dict[str, Any]) -> datetime:
    raw_exp = claims.get("exp")
    if isinstance(raw_exp, bool) or not isinstance(raw_exp, int | float):
        raise TokenExpiredError("Token has no valid expiry.")
    try:
        return datetime.fromtimestamp(raw_exp, tz=UTC)
    except (OverflowError, OSError, ValueError) as exc:
        raise TokenExpiredError("Token expiry is out of range.") from exc


class TokenVerifier:
    """Verify compact RS256 identity tokens against a provider key set.

    Checks run in a fixed order and each has its own failure type: structure,
    algorithm allow-list, key resolution, signature, then claims. No payload
    field is trusted before the signature check passes.
    """

    def __init__(self, key_source: SigningKeySource, leeway_seconds: int = 0) -> None:
        self._key_source = key_source
        self._leeway_seconds = leeway_seconds

    async def verify(
        self,
        identity_token: str,
        expected_issuer: str,
        expected_audience: str | Collection[str],
    ) -> VerifiedClaims:
        """Verify token and return its trusted claims."""
        token = self._check_structure(identity_token)
        try:
            header = jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedTokenError("Token segments are not base64url JSON objects.") from exc

        algorithm = header.get("alg")
        if not isinstance(algorithm, str) or algorithm not in ALLOWED_ALGORITHMS:
            raise InvalidSignatureError("Token algorithm is not allowed.")
        key_id = header.get("kid")
        if not isinstance(key_id, str) or not key_id.strip():
            raise MalformedTokenError("Token header has no key id.")

        signing_key = await self._key_source.get_key(key_id)
        if not hmac.compare_digest(signing_key.algorithm, algorithm):
            raise InvalidSignatureError("Token algorithm does not match signing key.")
        try:
            jws.verify(token, signing_key.public_key, algorithms=[signing_key.algorithm])
        except JWSError as exc:
            raise InvalidSignatureError("Token signature is invalid.") from exc

        claims = self._decode_claims(token, signing_key, expected_issuer)
        return self._build_claims(claims, expected_audience)

    @staticmethod
    def _check_structure(identity_token: str) -> str:
        """Require a compact token with three non-empty ASCII segments."""
        if not isinstance(identity_token, str):
            raise MalformedTokenError("Token is not a string.")
        if not identity_token.isascii():
            raise MalformedTokenError("Token contains non-ASCII characters.")
        token = identity_token.strip()
        segments = token.split(".")
        if len(segments) != 3 or not all(segments):
            raise MalformedTokenError("Token does not have three segments.")
        return token

    def _decode_claims(
        self, token: str, signing_key: SigningKey, expected_issuer: str
    ) -> dict[str, Any]:
        """Validate expiry and issuer of a token whose signature already matched."""
        _expiry(jwt.get_unverified_claims(token))
        try:
            return jwt.decode(
                token,
                signing_key.public_key,
                algorithms=[signing_key.algorithm],
                issuer=expected_issuer,
                options={
                    "verify_aud": False,
                    "verify_at_hash": False,
                    "require_exp": True,
                    "require_sub": True,
                    "leeway": self._leeway_seconds,
                },
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired.") from exc
        except JWTClaimsError as exc:
            raise ClaimMismatchError(f"Token claims rejected: {exc}.") from exc
        except JWTError as exc:
            # require_* options raise the base error for absent claims
            raise MissingRequiredClaimError(f"Token claims incomplete: {exc}.") from exc

    @staticmethod
    def _build_claims(
        claims: dict[str, Any], expected_audience: str | Collection[str]
    ) -> VerifiedClaims:
        """Match the audience set and map trusted claims to the typed record."""
        accepted = (
            {expected_audience} if isinstance(expected_audience, str) else set(expected_audience)
        )
        raw_audience = claims.get("aud")
        token_audiences = [raw_audience] if isinstance(raw_audience, str) else raw_audience
        if not isinstance(token_audiences, list):
            raise ClaimMismatchError("Token audience is missing.")
        matched = next(
            (aud for aud in token_audiences if isinstance(aud, str) and aud in accepted), None
        )
        if matched is None:
            raise ClaimMismatchError("Token audience does not match.")

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise MissingRequiredClaimError("Token has no subject.")

        email = claims.get("email")
        return VerifiedClaims(
            subject=subject,
            issuer=claims["iss"],
            audience=matched,
            expiry=_expiry(claims),
            email=email if isinstance(email, str) and email.strip() else None,
            email_verified=_normalize_bool(claims.get("email_verified")),
            raw=dict(claims),
        )
