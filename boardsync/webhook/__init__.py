"""Webhook decoding and dispatch."""

from __future__ import annotations

from .dispatcher import (
    DispatcherDependencies,
    DispatchResult,
    DispatchState,
    WebhookDispatcher,
    WebhookRequest,
    authenticated_client_factory,
)
from .errors import PayloadMalformedError
from .models import WebhookEvent, parse_webhook_event

__all__ = [
    "DispatchResult",
    "DispatchState",
    "DispatcherDependencies",
    "PayloadMalformedError",
    "WebhookDispatcher",
    "WebhookEvent",
    "WebhookRequest",
    "authenticated_client_factory",
    "parse_webhook_event",
]
