"""Application factory for the boardsync Falcon ASGI application.

Usage
-----
Create a health-only app (no GitHub configuration)::

    app = create_app()

Create the full app with the webhook endpoint::

    from boardsync.api.app import AppDependencies, create_app

    app = create_app(AppDependencies(dispatcher=dispatcher, http_client=client))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from boardsync.api.resources import StatusResource, WebhookResource

if typ.TYPE_CHECKING:
    import httpx

    from boardsync.webhook.dispatcher import WebhookDispatcher

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    dispatcher
        Handles ``POST /webhook`` deliveries.
    http_client
        Shared outbound client, closed on ASGI shutdown when provided.

    """

    dispatcher: WebhookDispatcher
    http_client: httpx.AsyncClient | None = None


def create_app(dependencies: AppDependencies | None = None) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    ``/health`` and ``/ready`` are always registered. ``/webhook`` is
    registered only when *dependencies* are provided.

    Parameters
    ----------
    dependencies
        Optional application dependencies.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    middleware: list[object] = []
    if dependencies is not None and dependencies.http_client is not None:
        from boardsync.api.middleware import HTTPClientLifecycle

        middleware.append(HTTPClientLifecycle(dependencies.http_client))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", StatusResource("ok"))
    app.add_route("/ready", StatusResource("ready"))

    if dependencies is not None:
        app.add_route("/webhook", WebhookResource(dependencies.dispatcher))

    return app
