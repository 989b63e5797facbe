"""Route one webhook delivery from raw request to HTTP status.

The dispatcher is a small state machine run once per request::

    RECEIVED -> VERIFYING_SIGNATURE -> PARSING_PAYLOAD
             -> RESOLVING_CREDENTIAL -> MUTATING_PROJECT -> DONE

Any state may end the request early. Every failure is classified and logged
here; callers only see the resulting :class:`http.HTTPStatus`. Exceptions
outside the credential and mutation taxonomies become ``500`` with reason
``unclassified``.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import enum
import typing as typ
from http import HTTPStatus

from boardsync.github.client import AuthenticatedClient
from boardsync.github.errors import (
    AssertionSigningError,
    CredentialErrorKind,
    CredentialExchangeError,
    InstallationNotFoundError,
)
from boardsync.github.projects import MutationFailure, MutationFailureKind
from boardsync.observability import WebhookEventLogger
from boardsync.signature import verify

from .errors import PayloadMalformedError
from .models import WebhookEvent, parse_webhook_event

if typ.TYPE_CHECKING:
    import httpx

    from boardsync.github.credentials import (
        AppCredentialBroker,
        InstallationCredential,
    )
    from boardsync.github.projects import MutationOutcome, ProjectMutationClient

__all__ = [
    "DispatchResult",
    "DispatchState",
    "DispatcherDependencies",
    "WebhookDispatcher",
    "WebhookRequest",
    "authenticated_client_factory",
    "status_for_mutation_failure",
]

ACTIONABLE_ACTION = "opened"
PING_EVENT = "ping"


class DispatchState(enum.StrEnum):
    """States a single delivery passes through."""

    RECEIVED = "received"
    VERIFYING_SIGNATURE = "verifying_signature"
    PARSING_PAYLOAD = "parsing_payload"
    RESOLVING_CREDENTIAL = "resolving_credential"
    MUTATING_PROJECT = "mutating_project"
    DONE = "done"


@dataclasses.dataclass(frozen=True, slots=True)
class WebhookRequest:
    """Raw request values handed over by the HTTP layer."""

    raw_body: bytes
    signature_header: str | None
    event_name: str | None = None
    delivery_id: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one dispatch.

    Attributes
    ----------
    status
        Status to return to GitHub.
    state
        State in which dispatch stopped.
    reason
        Short machine-readable reason for logs; never sent to the caller.

    """

    status: HTTPStatus
    state: DispatchState
    reason: str


_MUTATION_STATUS: dict[MutationFailureKind, HTTPStatus] = {
    MutationFailureKind.UNAUTHORIZED: HTTPStatus.UNAUTHORIZED,
    MutationFailureKind.TRANSPORT: HTTPStatus.BAD_GATEWAY,
    MutationFailureKind.SERVICE_ERROR: HTTPStatus.BAD_GATEWAY,
    MutationFailureKind.RATE_LIMITED: HTTPStatus.BAD_GATEWAY,
}


def status_for_mutation_failure(kind: MutationFailureKind) -> HTTPStatus:
    """Map a mutation failure kind to the status returned to GitHub.

    Upstream-transient kinds map to 502 and rejected tokens to 401; all other
    kinds are reported as 500.
    """
    return _MUTATION_STATUS.get(kind, HTTPStatus.INTERNAL_SERVER_ERROR)


def _status_for_credential_error(exc: Exception) -> HTTPStatus:
    if isinstance(exc, AssertionSigningError):
        return HTTPStatus.INTERNAL_SERVER_ERROR
    if (
        isinstance(exc, CredentialExchangeError)
        and exc.kind is CredentialErrorKind.NETWORK
    ):
        return HTTPStatus.BAD_GATEWAY
    return HTTPStatus.UNAUTHORIZED


ClientFactory = cabc.Callable[["InstallationCredential"], AuthenticatedClient]


@dataclasses.dataclass(frozen=True, slots=True)
class DispatcherDependencies:
    """Collaborators for :class:`WebhookDispatcher`.

    Attributes
    ----------
    webhook_secret
        Shared secret configured on the GitHub App webhook.
    project_id
        Node id of the target Projects (v2) board.
    broker
        Resolves installation access tokens.
    projects
        Issues the add-item mutation.
    client_factory
        Builds an authenticated GraphQL client from a credential.

    """

    webhook_secret: bytes
    project_id: str
    broker: AppCredentialBroker
    projects: ProjectMutationClient
    client_factory: ClientFactory


def authenticated_client_factory(
    http_client: httpx.AsyncClient, *, endpoint: str
) -> ClientFactory:
    """Return a factory binding ``http_client`` to each credential's token."""

    def _factory(credential: InstallationCredential) -> AuthenticatedClient:
        return AuthenticatedClient(
            http_client, credential.access_token, endpoint=endpoint
        )

    return _factory


class WebhookDispatcher:
    """Verify, parse and act on webhook deliveries.

    The dispatcher holds no per-request state; one instance serves all
    concurrent requests.
    """

    def __init__(
        self,
        dependencies: DispatcherDependencies,
        *,
        event_logger: WebhookEventLogger | None = None,
    ) -> None:
        """Store collaborators."""
        self._deps = dependencies
        self._events = event_logger or WebhookEventLogger()

    async def dispatch(self, request: WebhookRequest) -> DispatchResult:
        """Run one delivery to a terminal state and return its status."""
        delivery_id = request.delivery_id
        self._events.log_received(delivery_id, request.event_name)

        if not verify(
            self._deps.webhook_secret, request.raw_body, request.signature_header
        ):
            return self._reject(
                delivery_id,
                HTTPStatus.UNAUTHORIZED,
                DispatchState.VERIFYING_SIGNATURE,
                "signature_invalid",
            )

        if request.event_name == PING_EVENT:
            return self._skip(delivery_id, DispatchState.VERIFYING_SIGNATURE, "ping")

        try:
            event = parse_webhook_event(request.raw_body, delivery_id=delivery_id)
        except PayloadMalformedError:
            return self._reject(
                delivery_id,
                HTTPStatus.BAD_REQUEST,
                DispatchState.PARSING_PAYLOAD,
                "payload_malformed",
            )

        return await self._route(event)

    async def _route(self, event: WebhookEvent) -> DispatchResult:
        delivery_id = event.delivery_id
        if event.action != ACTIONABLE_ACTION:
            return self._skip(
                delivery_id, DispatchState.PARSING_PAYLOAD, f"action={event.action}"
            )

        content_node_id = event.content_node_id
        if content_node_id is None:
            return self._skip(delivery_id, DispatchState.PARSING_PAYLOAD, "no_content")

        if event.installation_id is None or not event.has_repository:
            return self._reject(
                delivery_id,
                HTTPStatus.BAD_REQUEST,
                DispatchState.PARSING_PAYLOAD,
                "installation_or_repository_missing",
            )

        try:
            credential = await self._deps.broker.resolve(event.installation_id)
        except (
            InstallationNotFoundError,
            CredentialExchangeError,
            AssertionSigningError,
        ) as exc:
            self._events.log_credential_failed(event, exc)
            return DispatchResult(
                status=_status_for_credential_error(exc),
                state=DispatchState.RESOLVING_CREDENTIAL,
                reason=type(exc).__name__,
            )
        except Exception as exc:  # noqa: BLE001
            return self._unclassified(event, DispatchState.RESOLVING_CREDENTIAL, exc)

        try:
            outcome = await self._deps.projects.add_item(
                self._deps.client_factory(credential),
                self._deps.project_id,
                content_node_id,
            )
        except Exception as exc:  # noqa: BLE001
            return self._unclassified(event, DispatchState.MUTATING_PROJECT, exc)
        return self._finish(event, credential, outcome)

    def _finish(
        self,
        event: WebhookEvent,
        credential: InstallationCredential,
        outcome: MutationOutcome,
    ) -> DispatchResult:
        if isinstance(outcome, MutationFailure):
            self._events.log_mutation_failed(event, outcome)
            if (
                outcome.kind is MutationFailureKind.UNAUTHORIZED
                and event.installation_id is not None
            ):
                # Force a fresh token on redelivery.
                self._deps.broker.evict(event.installation_id, credential)
            return DispatchResult(
                status=status_for_mutation_failure(outcome.kind),
                state=DispatchState.MUTATING_PROJECT,
                reason=str(outcome.kind),
            )

        self._events.log_item_added(event, outcome.item_id)
        return DispatchResult(
            status=HTTPStatus.OK, state=DispatchState.DONE, reason="item_added"
        )

    def _unclassified(
        self, event: WebhookEvent, state: DispatchState, exc: Exception
    ) -> DispatchResult:
        self._events.log_unclassified(event, state, exc)
        return DispatchResult(
            status=HTTPStatus.INTERNAL_SERVER_ERROR, state=state, reason="unclassified"
        )

    def _reject(
        self,
        delivery_id: str | None,
        status: HTTPStatus,
        state: DispatchState,
        reason: str,
    ) -> DispatchResult:
        self._events.log_rejected(delivery_id, reason)
        return DispatchResult(status=status, state=state, reason=reason)

    def _skip(
        self, delivery_id: str | None, state: DispatchState, reason: str
    ) -> DispatchResult:
        self._events.log_skipped(delivery_id, reason)
        return DispatchResult(status=HTTPStatus.OK, state=state, reason=reason)
