"""End-to-end tests for the assembled application."""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import falcon.testing
import pytest

from boardsync.api.app import create_app
from boardsync.api.factory import build_app_dependencies
from boardsync.config import BoardSyncConfig
from boardsync.github.errors import AppIdentityError
from tests.helpers.fake_github import APP_ID, PROJECT_ID
from tests.helpers.payloads import (
    ISSUE_NODE_ID,
    WEBHOOK_SECRET,
    encode,
    event_payload,
    sign,
)

if typ.TYPE_CHECKING:
    from boardsync.github.client import GitHubHTTPConfig
    from tests.helpers.fake_github import FakeClock, FakeGitHub


def _config(private_key_pem: str, http_config: GitHubHTTPConfig) -> BoardSyncConfig:
    return BoardSyncConfig(
        app_id=APP_ID,
        app_private_key=private_key_pem,
        project_id=PROJECT_ID,
        webhook_secret=WEBHOOK_SECRET,
        http=http_config,
    )


@pytest.mark.asyncio
async def test_signed_delivery_adds_item(
    private_key_pem: str,
    http_config: GitHubHTTPConfig,
    fake_github: FakeGitHub,
    clock: FakeClock,
) -> None:
    """A signed opened-issue delivery reaches GitHub and answers 200."""
    deps = build_app_dependencies(
        _config(private_key_pem, http_config),
        transport=fake_github.transport(),
        clock=clock,
    )
    body = encode(event_payload())

    async with falcon.testing.ASGIConductor(create_app(deps)) as conductor:
        result = await conductor.simulate_post(
            "/webhook",
            body=body,
            headers={
                "X-Hub-Signature-256": sign(body),
                "X-GitHub-Event": "issues",
                "X-GitHub-Delivery": "delivery-e2e",
            },
        )
        forged = await conductor.simulate_post(
            "/webhook", body=body, headers={"X-Hub-Signature-256": "sha256=00"}
        )

    assert result.status_code == HTTPStatus.OK
    assert result.json == {"status": "OK"}
    assert forged.status_code == HTTPStatus.UNAUTHORIZED
    (payload,) = fake_github.graphql_payloads
    assert payload["variables"]["contentId"] == ISSUE_NODE_ID
    assert deps.http_client is not None
    assert deps.http_client.is_closed, "lifespan shutdown closes the client"


def test_invalid_private_key_fails_fast(http_config: GitHubHTTPConfig) -> None:
    """A bad key is caught while building dependencies, not per request."""
    with pytest.raises(AppIdentityError):
        build_app_dependencies(_config("not a key", http_config))
