"""Webhook payload decoding.

Only the fields the dispatcher routes on are declared; msgspec ignores the
rest of GitHub's (large) event payloads.
"""

from __future__ import annotations

import dataclasses

import msgspec

from .errors import PayloadMalformedError

__all__ = ["WebhookEvent", "parse_webhook_event"]


class _NodeRef(msgspec.Struct):
    node_id: str


class _RepositoryRef(msgspec.Struct):
    name: str
    full_name: str | None = None
    node_id: str | None = None
    private: bool | None = None


class _InstallationRef(msgspec.Struct):
    id: int
    node_id: str | None = None


class _WebhookPayload(msgspec.Struct):
    action: str
    issue: _NodeRef | None = None
    pull_request: _NodeRef | None = None
    repository: _RepositoryRef | None = None
    installation: _InstallationRef | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class WebhookEvent:
    """The routing-relevant view of one webhook delivery.

    Attributes
    ----------
    action
        Event action, e.g. ``"opened"``.
    issue_node_id
        Global node id of the issue, when the event carries one.
    pull_request_node_id
        Global node id of the pull request, when the event carries one.
    repository_name
        Short repository name.
    repository_full_name
        ``owner/name`` slug.
    installation_id
        GitHub App installation that produced the event.
    delivery_id
        ``X-GitHub-Delivery`` value, for log correlation.

    """

    action: str
    issue_node_id: str | None = None
    pull_request_node_id: str | None = None
    repository_name: str | None = None
    repository_full_name: str | None = None
    installation_id: int | None = None
    delivery_id: str | None = None

    @property
    def content_node_id(self) -> str | None:
        """Return the node id to add to the board; issues win ties."""
        return self.issue_node_id or self.pull_request_node_id

    @property
    def has_repository(self) -> bool:
        """Return whether the event names its source repository."""
        return bool(self.repository_name)


def parse_webhook_event(
    raw_body: bytes, *, delivery_id: str | None = None
) -> WebhookEvent:
    """Decode ``raw_body`` into a :class:`WebhookEvent`.

    Raises
    ------
    PayloadMalformedError
        If the body is not JSON or lacks a string ``action``, or a declared
        field has the wrong type.

    """
    try:
        payload = msgspec.json.decode(raw_body, type=_WebhookPayload)
    except msgspec.DecodeError as exc:
        raise PayloadMalformedError.from_decode_error(exc) from exc

    repository = payload.repository
    return WebhookEvent(
        action=payload.action,
        issue_node_id=payload.issue.node_id if payload.issue else None,
        pull_request_node_id=(
            payload.pull_request.node_id if payload.pull_request else None
        ),
        repository_name=repository.name if repository else None,
        repository_full_name=repository.full_name if repository else None,
        installation_id=payload.installation.id if payload.installation else None,
        delivery_id=delivery_id,
    )
