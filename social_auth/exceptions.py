"""Social authentication exception hierarchy."""

from __future__ import annotations

from typing import Any


class SocialAuthError(Exception):
    """Base class for all social authentication failures."""

    code = "authentication_failed"

    def __init__(self, detail: str) -> None:
        """Initialize with an internal, log-only detail message."""
        super().__init__(detail)
        self.detail = detail


class CallerInputError(SocialAuthError):
    """Raised when the credential supplied by the caller is unusable."""


class TokenRejectedError(SocialAuthError):
    """Raised when a well-formed identity token fails a trust check."""


class DependencyError(SocialAuthError):
    """Raised when a provider or collaborator fails to answer."""


class InvalidRequestError(CallerInputError):
    code = "invalid_request"


class MalformedTokenError(CallerInputError):
    code = "malformed_token"


class MissingRequiredClaimError(CallerInputError):
    code = "missing_required_claim"


class InvalidSignatureError(TokenRejectedError):
    code = "invalid_signature"


class TokenExpiredError(TokenRejectedError):
    code = "token_expired"


class ClaimMismatchError(TokenRejectedError):
    code = "claim_mismatch"


class KeyNotFoundError(TokenRejectedError):
    """Raised when the provider key set does not hold the token's key id."""

    code = "key_not_found"

    def __init__(self, detail: str, key_id: str) -> None:
        super().__init__(detail)
        self.key_id = key_id


class KeySourceUnavailableError(DependencyError):
    code = "key_source_unavailable"


class ExchangeFailedError(DependencyError):
    """Raised when the provider rejects or never answers a code exchange."""

    code = "exchange_failed"

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        provider_error: Any = None,
    ) -> None:
        """Initialize with optional provider status and error body."""
        super().__init__(detail)
        self.status_code = status_code
        self.provider_error = provider_error


class ProfileFetchFailedError(DependencyError):
    """Raised when the provider profile endpoint fails."""

    code = "profile_fetch_failed"

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.status_code = status_code


class UserProvisioningError(DependencyError):
    code = "user_provisioning_failed"
