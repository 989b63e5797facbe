"""Webhook payload builders shared by unit and behavioural tests."""

from __future__ import annotations

import json
import typing as typ

from boardsync.signature import compute_signature

from .fake_github import INSTALLATION_ID

WEBHOOK_SECRET = "test_secret"
ISSUE_NODE_ID = "test_node_id"
PR_NODE_ID = "PR_kwDOpull"


def event_payload(  # noqa: PLR0913
    action: str = "opened",
    *,
    issue_node_id: str | None = ISSUE_NODE_ID,
    pull_request_node_id: str | None = None,
    repository: str | None = "widgets",
    installation_id: int | None = INSTALLATION_ID,
    extra: dict[str, typ.Any] | None = None,
) -> dict[str, typ.Any]:
    """Return a GitHub-shaped issue or pull request event body."""
    payload: dict[str, typ.Any] = {"action": action, "sender": {"login": "octocat"}}
    if issue_node_id is not None:
        payload["issue"] = {"number": 7, "node_id": issue_node_id}
    if pull_request_node_id is not None:
        payload["pull_request"] = {"number": 8, "node_id": pull_request_node_id}
    if repository is not None:
        payload["repository"] = {
            "name": repository,
            "full_name": f"octo-org/{repository}",
            "node_id": "R_kgDOrepo",
            "private": False,
        }
    if installation_id is not None:
        payload["installation"] = {"id": installation_id, "node_id": "MDIz"}
    if extra:
        payload.update(extra)
    return payload


def encode(payload: dict[str, typ.Any]) -> bytes:
    """Serialise ``payload`` the way GitHub sends it."""
    return json.dumps(payload).encode("utf-8")


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Return the ``X-Hub-Signature-256`` header value for ``body``."""
    return compute_signature(secret, body)
