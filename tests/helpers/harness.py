"""Wire a real dispatcher to the fake GitHub."""

from __future__ import annotations

import dataclasses
import typing as typ
from unittest import mock

from boardsync.github.client import build_http_client
from boardsync.github.credentials import AppCredentialBroker
from boardsync.github.projects import ProjectMutationClient
from boardsync.observability import WebhookEventLogger
from boardsync.webhook.dispatcher import (
    DispatcherDependencies,
    WebhookDispatcher,
    WebhookRequest,
    authenticated_client_factory,
)

from .fake_github import PROJECT_ID
from .payloads import WEBHOOK_SECRET, encode, sign

if typ.TYPE_CHECKING:
    import httpx

    from boardsync.github.client import GitHubHTTPConfig
    from boardsync.github.credentials import AppIdentity
    from boardsync.webhook.dispatcher import DispatchResult

    from .fake_github import FakeClock, FakeGitHub


@dataclasses.dataclass(slots=True)
class DispatchHarness:
    """A dispatcher, its collaborators and the fake they talk to."""

    fake_github: FakeGitHub
    http_client: httpx.AsyncClient
    broker: AppCredentialBroker
    dispatcher: WebhookDispatcher
    events: mock.MagicMock
    secret: str = WEBHOOK_SECRET

    async def deliver(
        self,
        payload: dict[str, typ.Any],
        *,
        event_name: str = "issues",
        signature: str | None = None,
        secret: str | None = None,
    ) -> DispatchResult:
        """Sign ``payload`` (unless ``signature`` is given) and dispatch it."""
        body = encode(payload)
        if signature is None:
            signature = sign(body, secret or self.secret)
        return await self.dispatcher.dispatch(
            WebhookRequest(
                raw_body=body,
                signature_header=signature,
                event_name=event_name,
                delivery_id="delivery-1",
            )
        )


def build_harness(
    identity: AppIdentity,
    fake_github: FakeGitHub,
    http_config: GitHubHTTPConfig,
    clock: FakeClock,
    *,
    secret: str = WEBHOOK_SECRET,
) -> DispatchHarness:
    """Build a harness; the caller closes ``http_client``."""
    http_client = build_http_client(http_config, transport=fake_github.transport())
    broker = AppCredentialBroker(
        identity, http_client=http_client, config=http_config, clock=clock
    )
    events = mock.create_autospec(WebhookEventLogger, instance=True)
    dispatcher = WebhookDispatcher(
        DispatcherDependencies(
            webhook_secret=secret.encode("utf-8"),
            project_id=PROJECT_ID,
            broker=broker,
            projects=ProjectMutationClient(),
            client_factory=authenticated_client_factory(
                http_client, endpoint=http_config.graphql_endpoint
            ),
        ),
        event_logger=events,
    )
    return DispatchHarness(
        fake_github=fake_github,
        http_client=http_client,
        broker=broker,
        dispatcher=dispatcher,
        events=events,
        secret=secret,
    )
