"""Unit tests for structured webhook log events."""

from __future__ import annotations

from unittest import mock

import pytest

from boardsync import observability
from boardsync.github.errors import (
    AssertionSigningError,
    CredentialErrorKind,
    CredentialExchangeError,
    InstallationNotFoundError,
)
from boardsync.github.projects import MutationFailure, MutationFailureKind
from boardsync.observability import (
    ErrorCategory,
    WebhookEventLogger,
    WebhookEventType,
    categorize_credential_error,
)
from boardsync.webhook.dispatcher import DispatchState
from boardsync.webhook.models import WebhookEvent

_EVENT = WebhookEvent(
    action="opened",
    issue_node_id="I_kwDOissue",
    repository_name="widgets",
    repository_full_name="octo-org/widgets",
    installation_id=42,
    delivery_id="delivery-7",
)


@pytest.fixture
def emitted(monkeypatch: pytest.MonkeyPatch) -> mock.MagicMock:
    """Capture the logger used by the observability module."""
    logger = mock.MagicMock()
    monkeypatch.setattr(observability, "logger", logger)
    return logger


def _single_line(logger: mock.MagicMock) -> tuple[str, str]:
    (call,) = logger.log.call_args_list
    level, message = call.args
    return level, message


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (
            CredentialExchangeError("x", kind=CredentialErrorKind.NETWORK),
            ErrorCategory.TRANSIENT,
        ),
        (
            CredentialExchangeError(
                "x", kind=CredentialErrorKind.UNAUTHORIZED, status_code=401
            ),
            ErrorCategory.AUTHENTICATION,
        ),
        (InstallationNotFoundError(42), ErrorCategory.AUTHENTICATION),
        (AssertionSigningError("x"), ErrorCategory.CONFIGURATION),
        (RuntimeError("x"), ErrorCategory.UNKNOWN),
    ],
)
def test_categorize_credential_error(
    exc: Exception, expected: ErrorCategory
) -> None:
    """Credential failures are routed to alert categories."""
    assert categorize_credential_error(exc) is expected


def test_item_added_line(emitted: mock.MagicMock) -> None:
    """Successful insertions name repository, content and item."""
    WebhookEventLogger().log_item_added(_EVENT, "PVTI_item")

    level, message = _single_line(emitted)
    assert level == "INFO"
    assert message.startswith(f"[{WebhookEventType.ITEM_ADDED}]")
    assert "repository=octo-org/widgets" in message
    assert "content_id=I_kwDOissue" in message
    assert "item_id=PVTI_item" in message


def test_credential_failure_line(emitted: mock.MagicMock) -> None:
    """Credential failures carry type, category and status."""
    exc = CredentialExchangeError.http_error("access token", 403)

    WebhookEventLogger().log_credential_failed(_EVENT, exc)

    level, message = _single_line(emitted)
    assert level == "ERROR"
    assert "error_type=CredentialExchangeError" in message
    assert "error_category=authentication" in message
    assert "status_code=403" in message


def test_mutation_failure_line(emitted: mock.MagicMock) -> None:
    """Mutation failures carry kind and message."""
    failure = MutationFailure(
        MutationFailureKind.RATE_LIMITED, "slow down", status_code=429
    )

    WebhookEventLogger().log_mutation_failed(_EVENT, failure)

    _, message = _single_line(emitted)
    assert message.startswith("[webhook.mutation_failed]")
    assert "error_kind=rate_limited" in message


def test_rejected_is_warning(emitted: mock.MagicMock) -> None:
    """Rejections log at WARNING without payload data."""
    WebhookEventLogger().log_rejected("delivery-7", "signature_invalid")

    level, message = _single_line(emitted)
    assert level == "WARNING"
    assert message == (
        "[webhook.rejected] delivery_id=delivery-7 reason=signature_invalid"
    )


def test_lines_never_include_tokens(emitted: mock.MagicMock) -> None:
    """Only ids reach the log, never credential material."""
    logger = WebhookEventLogger()
    logger.log_received("delivery-7", "issues")
    logger.log_skipped("delivery-7", "action=closed")
    logger.log_item_added(_EVENT, "PVTI_item")

    for call in emitted.log.call_args_list:
        assert "ghs_" not in call.args[1]


def test_unclassified_line_attaches_exception(emitted: mock.MagicMock) -> None:
    """Unclassified failures log at ERROR with the exception attached."""
    exc = RuntimeError("client closed")

    WebhookEventLogger().log_unclassified(
        _EVENT, DispatchState.RESOLVING_CREDENTIAL, exc
    )

    (call,) = emitted.log.call_args_list
    level, message = call.args
    assert level == "ERROR"
    assert message == (
        "[webhook.unclassified_failure] delivery_id=delivery-7 "
        "installation_id=42 state=resolving_credential error_type=RuntimeError"
    )
    assert call.kwargs["exc_info"] is exc
