"""Structured log events for webhook handling.

Each event is a single line of the form ``[event.type] key=value ...`` so log
aggregators can parse it without a schema. Tokens, secrets and upstream
payloads never appear in these lines.
"""

from __future__ import annotations

import enum
import typing as typ

from boardsync.github.errors import (
    AssertionSigningError,
    CredentialErrorKind,
    CredentialExchangeError,
    InstallationNotFoundError,
)
from boardsync.logging import (
    format_log_message,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    from boardsync.github.projects import MutationFailure
    from boardsync.webhook.dispatcher import DispatchState
    from boardsync.webhook.models import WebhookEvent

logger = get_logger(__name__)


class WebhookEventType(enum.StrEnum):
    """Structured log event types for webhook dispatch."""

    RECEIVED = "webhook.received"
    REJECTED = "webhook.rejected"
    SKIPPED = "webhook.skipped"
    ITEM_ADDED = "webhook.item_added"
    CREDENTIAL_FAILED = "webhook.credential_failed"
    MUTATION_FAILED = "webhook.mutation_failed"
    UNCLASSIFIED = "webhook.unclassified_failure"


class ErrorCategory(enum.StrEnum):
    """Alert routing categories for credential failures."""

    TRANSIENT = "transient"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


def categorize_credential_error(exc: BaseException) -> ErrorCategory:
    """Return the alert category for a credential resolution failure."""
    if isinstance(exc, AssertionSigningError):
        return ErrorCategory.CONFIGURATION
    if isinstance(exc, InstallationNotFoundError):
        return ErrorCategory.AUTHENTICATION
    if isinstance(exc, CredentialExchangeError):
        if exc.kind is CredentialErrorKind.NETWORK:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.AUTHENTICATION
    return ErrorCategory.UNKNOWN


class WebhookEventLogger:
    """Emit structured webhook events through femtologging."""

    def log_received(self, delivery_id: str | None, event_name: str | None) -> None:
        """Log receipt of a delivery before any validation."""
        log_info(
            logger,
            "[%s] delivery_id=%s event=%s",
            WebhookEventType.RECEIVED,
            delivery_id,
            event_name,
        )

    def log_rejected(self, delivery_id: str | None, reason: str) -> None:
        """Log a delivery refused before any GitHub call was made."""
        log_warning(
            logger,
            "[%s] delivery_id=%s reason=%s",
            WebhookEventType.REJECTED,
            delivery_id,
            reason,
        )

    def log_skipped(self, delivery_id: str | None, reason: str) -> None:
        """Log a delivery acknowledged without action."""
        log_info(
            logger,
            "[%s] delivery_id=%s reason=%s",
            WebhookEventType.SKIPPED,
            delivery_id,
            reason,
        )

    def log_item_added(self, event: WebhookEvent, item_id: str) -> None:
        """Log a successful project insertion."""
        log_info(
            logger,
            "[%s] delivery_id=%s repository=%s installation_id=%s "
            "content_id=%s item_id=%s",
            WebhookEventType.ITEM_ADDED,
            event.delivery_id,
            event.repository_full_name or event.repository_name,
            event.installation_id,
            event.content_node_id,
            item_id,
        )

    def log_credential_failed(self, event: WebhookEvent, exc: Exception) -> None:
        """Log a failure to obtain an installation token."""
        log_error(
            logger,
            "[%s] delivery_id=%s installation_id=%s error_type=%s "
            "error_category=%s status_code=%s error_message=%s",
            WebhookEventType.CREDENTIAL_FAILED,
            event.delivery_id,
            event.installation_id,
            type(exc).__name__,
            categorize_credential_error(exc),
            getattr(exc, "status_code", None),
            str(exc),
        )

    def log_mutation_failed(
        self, event: WebhookEvent, failure: MutationFailure
    ) -> None:
        """Log a classified add-item failure."""
        log_error(
            logger,
            "[%s] delivery_id=%s installation_id=%s content_id=%s "
            "error_kind=%s status_code=%s error_message=%s",
            WebhookEventType.MUTATION_FAILED,
            event.delivery_id,
            event.installation_id,
            event.content_node_id,
            failure.kind,
            failure.status_code,
            failure.message,
        )

    def log_unclassified(
        self, event: WebhookEvent, state: DispatchState, exc: Exception
    ) -> None:
        """Log an exception outside the credential and mutation taxonomies."""
        log_exception(
            logger,
            format_log_message(
                "[%s] delivery_id=%s installation_id=%s state=%s error_type=%s",
                WebhookEventType.UNCLASSIFIED,
                event.delivery_id,
                event.installation_id,
                state,
                type(exc).__name__,
            ),
            exc,
        )


__all__ = [
    "ErrorCategory",
    "WebhookEventLogger",
    "WebhookEventType",
    "categorize_credential_error",
]
