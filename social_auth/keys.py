"""Provider signing-key resolution with a single-flight JWKS cache."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog
from jose import jwk
from jose.exceptions import JOSEError

from social_auth.exceptions import KeyNotFoundError, KeySourceUnavailableError
from social_auth.types import SigningKey

DEFAULT_TIMEOUT = httpx.Timeout(connect=2.0, read=5.0, write=5.0, pool=5.0)
ALLOWED_ALGORITHMS = frozenset({"RS256"})

logger = structlog.get_logger(__name__)


def build_signing_key(key_data: dict[str, Any]) -> SigningKey:
    """Construct a verification key from one JWK entry."""
    key_id = key_data.get("kid")
    if not isinstance(key_id, str) or not key_id.strip():
        raise ValueError("JWK entry has no key id.")
    if key_data.get("kty") != "RSA":
        raise ValueError("JWK entry is not an RSA key.")
    algorithm = str(key_data.get("alg") or "RS256")
    if algorithm not in ALLOWED_ALGORITHMS:
        raise ValueError(f"JWK algorithm {algorithm} is not allowed.")
    try:
        public_key = jwk.construct(key_data, algorithm=algorithm)
    except (JOSEError, AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ValueError("JWK key material is invalid.") from exc
    return SigningKey(key_id=key_id, public_key=public_key, algorithm=algorithm)


class KeyResolver:
    """Resolve provider public keys by key id.

    Lookups read the cache without locking. A miss triggers one refresh of the
    whole key set; concurrent misses wait on the same in-flight refresh, so a
    burst of tokens signed with a freshly rotated key costs a single request.
    """

    def __init__(
        self,
        jwks_uri: str,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create resolver for one provider key-set endpoint."""
        self._jwks_uri = jwks_uri
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT)
        self._keys: dict[str, SigningKey] = {}
        self._refresh_future: asyncio.Future[None] | None = None

    @property
    def jwks_uri(self) -> str:
        """Return the key-set endpoint this resolver reads."""
        return self._jwks_uri

    def key_ids(self) -> list[str]:
        """Return cached key ids in sorted order."""
        return sorted(self._keys)

    async def get_key(self, key_id: str) -> SigningKey:
        """Return the signing key for ``key_id``, refreshing once on a miss."""
        cached = self._keys.get(key_id)
        if cached is not None:
            return cached

        await self.refresh()
        refreshed = self._keys.get(key_id)
        if refreshed is None:
            raise KeyNotFoundError("Signing key not found in provider key set.", key_id=key_id)
        return refreshed

    async def refresh(self) -> None:
        """Refresh the key set, joining an in-flight refresh when present."""
        if self._refresh_future is None:
            future = asyncio.ensure_future(self._fetch_and_store())
            future.add_done_callback(self._clear_refresh)
            self._refresh_future = future
        await asyncio.shield(self._refresh_future)

    def _clear_refresh(self, future: asyncio.Future[None]) -> None:
        if self._refresh_future is future:
            self._refresh_future = None
        # Waiters may all be cancelled; mark the failure as observed.
        if not future.cancelled():
            future.exception()

    async def _fetch_and_store(self) -> None:
        """Fetch the provider key set and atomically replace the cache."""
        payload = await self._fetch_jwks()
        keys: dict[str, SigningKey] = {}
        for entry in payload:
            if not isinstance(entry, dict):
                logger.warning("jwks_key_skipped", jwks_uri=self._jwks_uri, reason="not_an_object")
                continue
            try:
                signing_key = build_signing_key(entry)
            except ValueError as exc:
                logger.warning(
                    "jwks_key_skipped",
                    jwks_uri=self._jwks_uri,
                    kid=entry.get("kid"),
                    reason=str(exc),
                )
                continue
            keys[signing_key.key_id] = signing_key
        self._keys = keys
        logger.info("jwks_refreshed", jwks_uri=self._jwks_uri, key_count=len(keys))

    async def _fetch_jwks(self) -> list[Any]:
        """Request the key set and return its raw ``keys`` list."""
        try:
            response = await self._client.get(self._jwks_uri)
        except httpx.RequestError as exc:
            raise KeySourceUnavailableError("Key source unavailable.") from exc

        if response.status_code >= 400:
            raise KeySourceUnavailableError(
                f"Key source returned status {response.status_code}."
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise KeySourceUnavailableError("Key source returned invalid JSON.") from exc
        keys = payload.get("keys") if isinstance(payload, dict) else None
        if not isinstance(keys, list):
            raise KeySourceUnavailableError("Key source returned an invalid key set.")
        return keys

    async def aclose(self) -> None:
        """Close underlying HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> KeyResolver:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        del exc_type, exc, tb
        await self.aclose()
