"""ASGI lifespan middleware owning the shared outbound HTTP client."""

from __future__ import annotations

import typing as typ

from boardsync.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import httpx

__all__ = ["HTTPClientLifecycle"]

logger = get_logger(__name__)


class HTTPClientLifecycle:
    """Close the shared ``httpx.AsyncClient`` when the server shuts down.

    Falcon calls ``process_shutdown`` once per worker on the ASGI lifespan
    shutdown event, after in-flight requests have completed.

    Parameters
    ----------
    http_client
        Client used by the credential broker and project client.

    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        """Keep a handle on the client to close."""
        self._http_client = http_client

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: object
    ) -> None:
        """Close the client, releasing pooled connections."""
        if self._http_client.is_closed:
            return
        await self._http_client.aclose()
        log_info(logger, "Closed outbound GitHub HTTP client")
