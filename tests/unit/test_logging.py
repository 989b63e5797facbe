"""Unit tests for the femtologging helpers in boardsync.logging."""

from __future__ import annotations

import pytest

from boardsync.logging import (
    LogLevel,
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _RecordingLogger:
    """Stand-in for a femtologging logger."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, object | None]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        assert stack_info is False
        self.records.append((level, message, exc_info))
        return message


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", ("DEBUG", False)),
        ("  Warn ", ("WARN", False)),
        ("TRACE", ("TRACE", False)),
        (None, ("INFO", True)),
        ("verbose", ("INFO", True)),
    ],
)
def test_normalize_log_level(raw: str | None, expected: tuple[str, bool]) -> None:
    """Known levels are upper-cased; anything else falls back to INFO."""
    assert normalize_log_level(raw) == expected


def test_every_log_level_round_trips() -> None:
    """Each declared level normalizes to itself."""
    for level in LogLevel:
        assert normalize_log_level(level.lower()) == (level.value, False)


def test_format_log_message() -> None:
    """Templates are only interpolated when arguments are given."""
    assert format_log_message("100% done") == "100% done"
    assert format_log_message("%s=%d", "retries", 0) == "retries=0"


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers(helper: object, level: str) -> None:
    """Each helper formats the message and emits its own level."""
    logger = _RecordingLogger()

    helper(logger, "installation_id=%d", 42)  # type: ignore[operator]

    assert logger.records == [(level, "installation_id=42", None)]


def test_exc_info_is_forwarded() -> None:
    """Exception payloads reach the logger untouched."""
    logger = _RecordingLogger()
    exc = RuntimeError("upstream")

    log_error(logger, "failed: %s", "exchange", exc_info=exc)
    log_exception(logger, "dispatch crashed", exc)

    assert logger.records == [
        ("ERROR", "failed: exchange", exc),
        ("ERROR", "dispatch crashed", exc),
    ]


def test_configure_logging_installs_root_handler(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The normalized level and force flag are passed to basicConfig."""
    captured: dict[str, object] = {}
    monkeypatch.setattr(
        "boardsync.logging.basicConfig", lambda **kwargs: captured.update(kwargs)
    )

    assert configure_logging("bogus", force=True) == ("INFO", True)
    assert captured == {"level": "INFO", "force": True}
