"""boardsync runtime entrypoint.

``boardsync.runtime:create_app`` is the Granian factory target. When
``GITHUB_APP_ID`` is set the app is built with the webhook endpoint;
otherwise only ``/health`` and ``/ready`` are served, which keeps health checks
working while configuration is being rolled out.

Server settings come from the environment:

- ``BOARDSYNC_HOST``: Bind address (default ``0.0.0.0``)
- ``BOARDSYNC_PORT``: Listen port (default ``3000``)
- ``BOARDSYNC_LOG_LEVEL``: Log level (default ``INFO``)

GitHub settings are documented in :mod:`boardsync.config`.

Run the service directly with ``python -m boardsync.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from boardsync.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535
_DEFAULT_PORT = "3000"


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not an integer in range 1-65535.

    """
    try:
        port = int(port_str)
    except ValueError as exc:
        log_error(logger, "Invalid BOARDSYNC_PORT value: %r", port_str)
        raise SystemExit(1) from exc
    if not _MIN_PORT <= port <= _MAX_PORT:
        log_error(
            logger,
            "Invalid BOARDSYNC_PORT value: %r (must be %d-%d)",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
        )
        raise SystemExit(1)
    return port


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Raises
    ------
    SystemExit
        If GitHub configuration is present but invalid.

    """
    from boardsync.api.app import create_app as _create_api_app

    if not os.environ.get("GITHUB_APP_ID"):
        log_warning(logger, "GITHUB_APP_ID not set; serving health endpoints only")
        return _create_api_app()

    from boardsync.api.factory import build_app_dependencies
    from boardsync.config import BoardSyncConfig, ConfigError
    from boardsync.github.errors import AppIdentityError

    try:
        config = BoardSyncConfig.from_env()
        deps = build_app_dependencies(config)
    except (ConfigError, AppIdentityError) as exc:
        log_error(logger, "Startup configuration invalid: %s", exc)
        raise SystemExit(1) from exc

    log_info(
        logger,
        "Webhook endpoint enabled app_id=%d api_url=%s",
        config.app_id,
        config.http.api_url,
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the boardsync server using Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("BOARDSYNC_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("BOARDSYNC_PORT", _DEFAULT_PORT))
    log_level_str = os.environ.get("BOARDSYNC_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid BOARDSYNC_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting boardsync on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "boardsync.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
