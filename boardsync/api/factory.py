"""Assemble the webhook dispatcher from startup configuration.

Usage
-----
Build dependencies for the API layer::

    from boardsync.api.factory import build_app_dependencies
    from boardsync.config import BoardSyncConfig

    deps = build_app_dependencies(BoardSyncConfig.from_env())

"""

from __future__ import annotations

import typing as typ

from boardsync.api.app import AppDependencies
from boardsync.common.time import utcnow
from boardsync.github.client import build_http_client
from boardsync.github.credentials import AppCredentialBroker, AppIdentity
from boardsync.github.projects import ProjectMutationClient
from boardsync.webhook.dispatcher import (
    DispatcherDependencies,
    WebhookDispatcher,
    authenticated_client_factory,
)

if typ.TYPE_CHECKING:
    import httpx

    from boardsync.common.time import Clock
    from boardsync.config import BoardSyncConfig

__all__ = ["build_app_dependencies"]


def build_app_dependencies(
    config: BoardSyncConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock = utcnow,
) -> AppDependencies:
    """Build the dispatcher and its shared HTTP client.

    Parameters
    ----------
    config
        Validated process configuration.
    transport
        Optional httpx transport, used by tests to stand in for GitHub.
    clock
        Time source for token expiry checks.

    Returns
    -------
    AppDependencies
        Dependencies for :func:`boardsync.api.app.create_app`.

    Raises
    ------
    AppIdentityError
        If the app id or private key is unusable.

    """
    identity = AppIdentity.from_pem(config.app_id, config.app_private_key)
    http_client = build_http_client(config.http, transport=transport)
    broker = AppCredentialBroker(
        identity, http_client=http_client, config=config.http, clock=clock
    )
    dispatcher = WebhookDispatcher(
        DispatcherDependencies(
            webhook_secret=config.webhook_secret.encode("utf-8"),
            project_id=config.project_id,
            broker=broker,
            projects=ProjectMutationClient(),
            client_factory=authenticated_client_factory(
                http_client, endpoint=config.http.graphql_endpoint
            ),
        )
    )
    return AppDependencies(dispatcher=dispatcher, http_client=http_client)
