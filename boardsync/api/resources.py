"""Falcon resources for the boardsync HTTP surface.

``WebhookResource`` hands the raw request to the dispatcher and writes back
only the status phrase; classification detail stays in the logs.

Usage
-----
Register the resources on the Falcon app::

    app.add_route("/webhook", WebhookResource(dispatcher))
    app.add_route("/health", StatusResource("ok"))
    app.add_route("/ready", StatusResource("ready"))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from boardsync.signature import SIGNATURE_HEADER
from boardsync.webhook.dispatcher import WebhookRequest

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from boardsync.webhook.dispatcher import WebhookDispatcher

__all__ = ["StatusResource", "WebhookResource"]

EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"


class StatusResource:
    """Liveness or readiness check answering ``{"status": <label>}``."""

    def __init__(self, label: str) -> None:
        """Set the status label returned by the endpoint."""
        self._label = label

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET requests with HTTP 200."""
        resp.media = {"status": self._label}
        resp.status = HTTPStatus.OK


class WebhookResource:
    """``POST /webhook`` endpoint for GitHub App deliveries."""

    def __init__(self, dispatcher: WebhookDispatcher) -> None:
        """Configure the resource with the shared dispatcher.

        Parameters
        ----------
        dispatcher
            Dispatcher that verifies and acts on each delivery.

        """
        self._dispatcher = dispatcher

    async def on_post(self, req: Request, resp: Response) -> None:
        """Dispatch one delivery and return its coarse status.

        Parameters
        ----------
        req
            Falcon request; the body is read unparsed so the signature can be
            checked over the exact bytes GitHub signed.
        resp
            Falcon response receiving the status and a phrase-only body.

        """
        raw_body = await req.stream.read()
        result = await self._dispatcher.dispatch(
            WebhookRequest(
                raw_body=raw_body,
                signature_header=req.get_header(SIGNATURE_HEADER),
                event_name=req.get_header(EVENT_HEADER),
                delivery_id=req.get_header(DELIVERY_HEADER),
            )
        )
        resp.status = result.status
        resp.media = {"status": result.status.phrase}
