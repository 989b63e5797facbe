"""HTTP plumbing shared by the credential broker and the project client."""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx

DEFAULT_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
_JSON_CONTENT_TYPE = "application/json"


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubHTTPConfig:
    """Endpoints and transport limits for outbound GitHub calls.

    Attributes
    ----------
    api_url
        REST API root used for installation listing.
    graphql_url
        GraphQL endpoint; derived from ``api_url`` when left empty.
    timeout_s
        Timeout applied to every outbound request.
    user_agent
        ``User-Agent`` header value GitHub requires on every request.

    """

    api_url: str = DEFAULT_API_URL
    graphql_url: str = ""
    timeout_s: float = 10.0
    user_agent: str = "boardsync/0.1"

    @property
    def graphql_endpoint(self) -> str:
        """Return the GraphQL endpoint URL."""
        return self.graphql_url or f"{self.api_url.rstrip('/')}/graphql"

    @property
    def installations_url(self) -> str:
        """Return the REST URL listing the app's installations."""
        return f"{self.api_url.rstrip('/')}/app/installations"


def build_http_client(
    config: GitHubHTTPConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the shared client with GitHub headers and a bounded timeout.

    Authorization is set per request, so one client serves both app-level and
    installation-level calls.
    """
    return httpx.AsyncClient(
        timeout=config.timeout_s,
        transport=transport,
        headers={
            "Accept": "application/vnd.github+json",
            "User-Agent": config.user_agent,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        },
    )


def bearer(token: str) -> dict[str, str]:
    """Return an ``Authorization`` header for ``token``."""
    return {"Authorization": f"Bearer {token}"}


class AuthenticatedClient:
    """A GraphQL caller bound to one installation access token."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        *,
        endpoint: str,
    ) -> None:
        """Bind ``http_client`` to ``token`` for calls to ``endpoint``."""
        if not token.strip():
            msg = "access token must be non-empty"
            raise ValueError(msg)
        self._http_client = http_client
        self._token = token
        self._endpoint = endpoint

    @property
    def endpoint(self) -> str:
        """Return the GraphQL endpoint this client posts to."""
        return self._endpoint

    def __repr__(self) -> str:
        """Describe the client without exposing the token."""
        return f"AuthenticatedClient(endpoint={self._endpoint!r})"

    async def post_graphql(self, body: bytes) -> httpx.Response:
        """POST a pre-encoded GraphQL request body.

        Transport exceptions from httpx propagate unchanged so the caller can
        classify them.
        """
        headers: dict[str, typ.Any] = {
            **bearer(self._token),
            "Content-Type": _JSON_CONTENT_TYPE,
        }
        return await self._http_client.post(
            self._endpoint, content=body, headers=headers
        )


__all__ = [
    "DEFAULT_API_URL",
    "GITHUB_API_VERSION",
    "AuthenticatedClient",
    "GitHubHTTPConfig",
    "bearer",
    "build_http_client",
]
