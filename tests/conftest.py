"""Shared fixtures for minting provider-style RS256 identity tokens."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk
from jose import jwt as jose_jwt

from social_auth.apple import APPLE_ISSUER

APPLE_AUDIENCE = "com.example.app"


@dataclass(frozen=True)
class RSAKeyMaterial:
    """Ephemeral RSA signing key plus its public JWK."""

    kid: str
    private_key_pem: str
    jwk: dict[str, str]


def _generate_rsa_key(kid: str) -> RSAKeyMaterial:
    """Generate PEM-encoded RSA private key and matching public JWK."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )
    public_jwk = {str(k): str(v) for k, v in jwk.construct(public_pem, "RS256").to_dict().items()}
    public_jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return RSAKeyMaterial(kid=kid, private_key_pem=private_pem, jwk=public_jwk)


@pytest.fixture(scope="session")
def signing_key() -> RSAKeyMaterial:
    """Provider signing key published in the test key set."""
    return _generate_rsa_key("kid-1")


@pytest.fixture(scope="session")
def rogue_key() -> RSAKeyMaterial:
    """Key that is never published by the provider."""
    return _generate_rsa_key("kid-rogue")


@pytest.fixture
def apple_claims() -> Callable[..., dict[str, Any]]:
    """Build Apple-shaped identity claims with optional overrides."""

    def build(**overrides: Any) -> dict[str, Any]:
        now = datetime.now(UTC)
        claims: dict[str, Any] = {
            "iss": APPLE_ISSUER,
            "aud": APPLE_AUDIENCE,
            "sub": "001234.apple-subject",
            "email": "a@b.com",
            "email_verified": "true",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=10)).timestamp()),
        }
        claims.update(overrides)
        return {key: value for key, value in claims.items() if value is not None}

    return build


@pytest.fixture
def mint_token(signing_key: RSAKeyMaterial) -> Callable[..., str]:
    """Sign claims with RS256 using the published key by default."""

    def mint(
        claims: dict[str, Any],
        key: RSAKeyMaterial | None = None,
        kid: str | None = None,
    ) -> str:
        material = key or signing_key
        return jose_jwt.encode(
            claims,
            material.private_key_pem,
            algorithm="RS256",
            headers={"kid": kid or material.kid},
        )

    return mint
