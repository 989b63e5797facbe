"""Process configuration read from the environment.

Reads:

- ``GITHUB_APP_ID``: required positive integer
- ``GITHUB_APP_PRIVATE_KEY``: PEM text, or ``GITHUB_APP_PRIVATE_KEY_PATH``
  naming a file that holds it
- ``GITHUB_PROJECT_ID``: required Projects (v2) node id
- ``GITHUB_WEBHOOK_SECRET``: required webhook secret
- ``GITHUB_API_URL``: optional REST root (default ``https://api.github.com``)
- ``GITHUB_GRAPHQL_URL``: optional GraphQL endpoint override
- ``BOARDSYNC_HTTP_TIMEOUT_S``: optional positive float (default ``10``)
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from pathlib import Path

from boardsync.github.client import DEFAULT_API_URL, GitHubHTTPConfig

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = ["BoardSyncConfig", "ConfigError"]

_DEFAULT_TIMEOUT_S = 10.0


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""

    @classmethod
    def missing(cls, name: str) -> ConfigError:
        """Return an error for a required variable that is unset or blank."""
        return cls(f"{name} environment variable is required")

    @classmethod
    def invalid(cls, name: str, value: str, constraint: str) -> ConfigError:
        """Return an error for a variable whose value fails validation."""
        return cls(f"Invalid {name} {value!r}. {constraint}")

    @classmethod
    def unreadable_key_file(cls, path: str, detail: str) -> ConfigError:
        """Return an error for a private key file that cannot be read."""
        return cls(f"Cannot read GitHub App private key from {path}: {detail}")


def _required(env: cabc.Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigError.missing(name)
    return value


def _parse_app_id(raw: str) -> int:
    try:
        app_id = int(raw)
    except ValueError as exc:
        raise ConfigError.invalid(
            "GITHUB_APP_ID", raw, "Must be a positive integer"
        ) from exc
    if app_id <= 0:
        raise ConfigError.invalid("GITHUB_APP_ID", raw, "Must be a positive integer")
    return app_id


def _parse_timeout(raw: str | None) -> float:
    if raw is None or not raw.strip():
        return _DEFAULT_TIMEOUT_S
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise ConfigError.invalid(
            "BOARDSYNC_HTTP_TIMEOUT_S", raw, "Must be a positive number"
        ) from exc
    if timeout <= 0:
        raise ConfigError.invalid(
            "BOARDSYNC_HTTP_TIMEOUT_S", raw, "Must be a positive number"
        )
    return timeout


def _load_private_key(env: cabc.Mapping[str, str]) -> str:
    inline = env.get("GITHUB_APP_PRIVATE_KEY", "")
    if inline.strip():
        # Single-line secrets often carry escaped newlines.
        return inline.replace("\\n", "\n")

    path = env.get("GITHUB_APP_PRIVATE_KEY_PATH", "").strip()
    if not path:
        raise ConfigError.missing("GITHUB_APP_PRIVATE_KEY")
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError.unreadable_key_file(path, exc.strerror or str(exc)) from exc


@dataclasses.dataclass(frozen=True, slots=True)
class BoardSyncConfig:
    """Immutable configuration handed to the core at startup.

    Attributes
    ----------
    app_id
        GitHub App id.
    app_private_key
        PEM-encoded RSA private key of the app.
    project_id
        Node id of the Projects (v2) board that receives new items.
    webhook_secret
        Secret used to verify ``X-Hub-Signature-256``.
    http
        Outbound endpoint and timeout settings.

    """

    app_id: int
    app_private_key: str = dataclasses.field(repr=False)
    project_id: str
    webhook_secret: str = dataclasses.field(repr=False)
    http: GitHubHTTPConfig = dataclasses.field(default_factory=GitHubHTTPConfig)

    @classmethod
    def from_env(cls, env: cabc.Mapping[str, str] | None = None) -> BoardSyncConfig:
        """Build configuration from ``env`` (defaults to ``os.environ``).

        Raises
        ------
        ConfigError
            If a required variable is missing or a value is malformed.

        """
        source = os.environ if env is None else env
        http = GitHubHTTPConfig(
            api_url=source.get("GITHUB_API_URL", "").strip() or DEFAULT_API_URL,
            graphql_url=source.get("GITHUB_GRAPHQL_URL", "").strip(),
            timeout_s=_parse_timeout(source.get("BOARDSYNC_HTTP_TIMEOUT_S")),
        )
        return cls(
            app_id=_parse_app_id(_required(source, "GITHUB_APP_ID")),
            app_private_key=_load_private_key(source),
            project_id=_required(source, "GITHUB_PROJECT_ID"),
            webhook_secret=_required(source, "GITHUB_WEBHOOK_SECRET"),
            http=http,
        )
