"""GitHub App authentication and Projects (v2) mutation primitives."""

from __future__ import annotations

from .client import AuthenticatedClient, GitHubHTTPConfig, build_http_client
from .credentials import (
    AppCredentialBroker,
    AppIdentity,
    CredentialCache,
    InstallationCredential,
    mint_app_assertion,
)
from .errors import (
    AppIdentityError,
    AssertionSigningError,
    CredentialErrorKind,
    CredentialExchangeError,
    GitHubAppError,
    InstallationNotFoundError,
)
from .projects import (
    MutationFailure,
    MutationFailureKind,
    MutationOutcome,
    MutationSuccess,
    ProjectMutationClient,
)

__all__ = [
    "AppCredentialBroker",
    "AppIdentity",
    "AppIdentityError",
    "AssertionSigningError",
    "AuthenticatedClient",
    "CredentialCache",
    "CredentialErrorKind",
    "CredentialExchangeError",
    "GitHubAppError",
    "GitHubHTTPConfig",
    "InstallationCredential",
    "InstallationNotFoundError",
    "MutationFailure",
    "MutationFailureKind",
    "MutationOutcome",
    "MutationSuccess",
    "ProjectMutationClient",
    "build_http_client",
    "mint_app_assertion",
]
