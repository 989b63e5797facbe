"""Unit tests for boardsync.api.middleware.HTTPClientLifecycle."""

from __future__ import annotations

import falcon.asgi
import falcon.testing
import httpx
import pytest

from boardsync.api.middleware import HTTPClientLifecycle


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(lambda _request: httpx.Response(204))
    )


@pytest.mark.asyncio
async def test_closes_client_on_shutdown() -> None:
    """Lifespan shutdown closes the shared client."""
    http_client = _client()
    app = falcon.asgi.App(middleware=[HTTPClientLifecycle(http_client)])  # type: ignore[no-matching-overload]  # Falcon stubs

    async with falcon.testing.ASGIConductor(app):
        assert not http_client.is_closed

    assert http_client.is_closed


@pytest.mark.asyncio
async def test_already_closed_client_is_left_alone() -> None:
    """A second shutdown is a no-op."""
    http_client = _client()
    await http_client.aclose()
    lifecycle = HTTPClientLifecycle(http_client)

    await lifecycle.process_shutdown({}, object())

    assert http_client.is_closed
