"""Errors raised while authenticating as a GitHub App."""

from __future__ import annotations

import enum


class CredentialErrorKind(enum.StrEnum):
    """Coarse classification of installation token exchange failures."""

    NETWORK = "network"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"


_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404


class GitHubAppError(Exception):
    """Base class for GitHub App authentication errors."""


class AppIdentityError(GitHubAppError):
    """Raised at startup when the app id or private key is unusable."""

    @classmethod
    def invalid_app_id(cls, app_id: object) -> AppIdentityError:
        """Return an error for a non-positive or non-integer app id."""
        return cls(f"GitHub App id must be a positive integer, got {app_id!r}")

    @classmethod
    def empty_private_key(cls) -> AppIdentityError:
        """Return an error when no private key material was provided."""
        return cls("GitHub App private key must be non-empty")

    @classmethod
    def invalid_private_key(cls, detail: str) -> AppIdentityError:
        """Return an error when the PEM cannot be parsed as an RSA key."""
        return cls(f"GitHub App private key is not a usable RSA key: {detail}")


class AssertionSigningError(GitHubAppError):
    """Raised when the app-level JWT cannot be signed."""

    @classmethod
    def from_exception(cls, exc: Exception) -> AssertionSigningError:
        """Wrap the signing library's failure without leaking key material."""
        return cls(f"Failed to sign GitHub App assertion: {type(exc).__name__}")


class InstallationNotFoundError(GitHubAppError):
    """Raised when the app has no installation with the requested id.

    Attributes
    ----------
    installation_id
        The id that was looked up.

    """

    def __init__(self, installation_id: int) -> None:
        """Record the missing installation id."""
        self.installation_id = installation_id
        super().__init__(f"GitHub App installation {installation_id} not found")


class CredentialExchangeError(GitHubAppError):
    """Raised when listing installations or minting a token fails.

    Attributes
    ----------
    kind
        Coarse failure classification.
    status_code
        Upstream HTTP status, when a response was received.

    """

    def __init__(
        self,
        message: str,
        *,
        kind: CredentialErrorKind,
        status_code: int | None = None,
    ) -> None:
        """Initialise with a message, failure kind and optional status code."""
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def timeout(cls, stage: str) -> CredentialExchangeError:
        """Return an error for a request that exceeded its timeout."""
        return cls(
            f"GitHub {stage} request timed out", kind=CredentialErrorKind.NETWORK
        )

    @classmethod
    def network_error(cls, stage: str, detail: str) -> CredentialExchangeError:
        """Return an error for DNS, TLS or connection failures."""
        return cls(
            f"GitHub {stage} network error: {detail}",
            kind=CredentialErrorKind.NETWORK,
        )

    @classmethod
    def http_error(cls, stage: str, status_code: int) -> CredentialExchangeError:
        """Return an error for a non-2xx response, classified by status."""
        if status_code in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}:
            kind = CredentialErrorKind.UNAUTHORIZED
        elif status_code == _HTTP_NOT_FOUND:
            kind = CredentialErrorKind.NOT_FOUND
        else:
            kind = CredentialErrorKind.NETWORK
        return cls(
            f"GitHub {stage} HTTP {status_code}", kind=kind, status_code=status_code
        )

    @classmethod
    def malformed_response(cls, stage: str, detail: str) -> CredentialExchangeError:
        """Return an error for a response body that could not be decoded."""
        return cls(
            f"GitHub {stage} response malformed: {detail}",
            kind=CredentialErrorKind.NETWORK,
        )


__all__ = [
    "AppIdentityError",
    "AssertionSigningError",
    "CredentialErrorKind",
    "CredentialExchangeError",
    "GitHubAppError",
    "InstallationNotFoundError",
]
