"""GitHub App credential broker.

A GitHub App authenticates in two steps. It first signs a short-lived JWT
with its private key; that assertion identifies the *application* and can
only be used against ``/app`` endpoints. It then exchanges the assertion for
an installation access token, which is scoped to one installation and is
what the GraphQL API accepts.

:class:`AppCredentialBroker` performs the exchange, keeps the resulting
tokens in a :class:`CredentialCache` until shortly before they expire, and
collapses concurrent exchanges for the same installation into one request.

Usage
-----
Resolve a token for an incoming event::

    identity = AppIdentity.from_pem(app_id, pem)
    broker = AppCredentialBroker(identity, http_client=client, config=config)
    credential = await broker.resolve(installation_id)

"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import typing as typ

import httpx
import jwt
import msgspec
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from boardsync.common.time import Clock, ensure_utc, utcnow
from boardsync.logging import get_logger, log_debug, log_info

from .client import bearer
from .errors import (
    AppIdentityError,
    AssertionSigningError,
    CredentialExchangeError,
    InstallationNotFoundError,
)

if typ.TYPE_CHECKING:
    from .client import GitHubHTTPConfig

__all__ = [
    "AppCredentialBroker",
    "AppIdentity",
    "CredentialCache",
    "InstallationCredential",
    "mint_app_assertion",
]

logger = get_logger(__name__)

# GitHub rejects assertions whose lifetime exceeds ten minutes. ``iat`` is
# back-dated to absorb clock drift between this host and GitHub.
ASSERTION_CLOCK_DRIFT = dt.timedelta(seconds=60)
ASSERTION_LIFETIME = dt.timedelta(seconds=540)
JWT_ALGORITHM = "RS256"

_DEFAULT_REFRESH_MARGIN = dt.timedelta(seconds=60)
_INSTALLATIONS_PAGE_SIZE = 100
_HTTP_ERROR_STATUS_THRESHOLD = 400

_STAGE_LIST = "installation listing"
_STAGE_TOKEN = "access token"


@dataclasses.dataclass(frozen=True, slots=True)
class AppIdentity:
    """The GitHub App's id and PEM-encoded RSA private key."""

    app_id: int
    private_key: str = dataclasses.field(repr=False)

    @classmethod
    def from_pem(cls, app_id: int, private_key: str) -> AppIdentity:
        """Validate the key material and build an identity.

        Raises
        ------
        AppIdentityError
            If ``app_id`` is not positive or the PEM is not an unencrypted
            RSA private key. This is a startup failure.

        """
        if isinstance(app_id, bool) or not isinstance(app_id, int) or app_id <= 0:
            raise AppIdentityError.invalid_app_id(app_id)
        if not private_key.strip():
            raise AppIdentityError.empty_private_key()
        try:
            key = serialization.load_pem_private_key(
                private_key.encode("utf-8"), password=None
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise AppIdentityError.invalid_private_key(type(exc).__name__) from exc
        if not isinstance(key, rsa.RSAPrivateKey):
            raise AppIdentityError.invalid_private_key(type(key).__name__)
        return cls(app_id=app_id, private_key=private_key)


def mint_app_assertion(identity: AppIdentity, *, now: dt.datetime) -> str:
    """Sign an RS256 JWT that authenticates as the app itself.

    Parameters
    ----------
    identity
        App id and signing key.
    now
        Current time; must be timezone-aware.

    Returns
    -------
    str
        Compact JWT with ``iss``, ``iat`` and ``exp`` claims.

    Raises
    ------
    AssertionSigningError
        If the key cannot produce a signature.

    """
    now_utc = ensure_utc(now, field="now")
    claims = {
        "iss": str(identity.app_id),
        "iat": int((now_utc - ASSERTION_CLOCK_DRIFT).timestamp()),
        "exp": int((now_utc + ASSERTION_LIFETIME).timestamp()),
    }
    try:
        return jwt.encode(claims, identity.private_key, algorithm=JWT_ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as exc:
        raise AssertionSigningError.from_exception(exc) from exc


@dataclasses.dataclass(frozen=True, slots=True)
class InstallationCredential:
    """An installation access token and its expiry."""

    installation_id: int
    access_token: str = dataclasses.field(repr=False)
    expires_at: dt.datetime

    def is_live(
        self,
        now: dt.datetime,
        *,
        margin: dt.timedelta = dt.timedelta(0),
    ) -> bool:
        """Return whether the token is still usable ``margin`` from ``now``."""
        return self.expires_at - margin > now


class CredentialCache:
    """Installation id to credential map owned by one broker.

    The cache is not synchronised on its own; :class:`AppCredentialBroker`
    serialises access with its lock. Entries are replaced whole, never
    mutated.
    """

    def __init__(self) -> None:
        """Start with no cached credentials."""
        self._entries: dict[int, InstallationCredential] = {}

    def __len__(self) -> int:
        """Return the number of cached entries, live or stale."""
        return len(self._entries)

    def __contains__(self, installation_id: object) -> bool:
        """Return whether any entry exists for ``installation_id``."""
        return installation_id in self._entries

    def get(
        self,
        installation_id: int,
        *,
        now: dt.datetime,
        margin: dt.timedelta = dt.timedelta(0),
    ) -> InstallationCredential | None:
        """Return the cached credential if it is live, else ``None``."""
        credential = self._entries.get(installation_id)
        if credential is None or not credential.is_live(now, margin=margin):
            return None
        return credential

    def put(self, credential: InstallationCredential) -> None:
        """Store ``credential``, replacing any entry for the same installation."""
        self._entries[credential.installation_id] = credential

    def evict(
        self,
        installation_id: int,
        expected: InstallationCredential | None = None,
    ) -> InstallationCredential | None:
        """Drop and return the entry for ``installation_id``, if any.

        When ``expected`` is given the entry is dropped only if it is that
        exact credential; a newer replacement stays cached.
        """
        current = self._entries.get(installation_id)
        if current is None or (expected is not None and current is not expected):
            return None
        return self._entries.pop(installation_id)


class _Installation(msgspec.Struct):
    """Subset of an ``/app/installations`` entry used by the broker."""

    id: int
    access_tokens_url: str


class _AccessToken(msgspec.Struct):
    """Body returned by ``POST /app/installations/{id}/access_tokens``."""

    token: str
    expires_at: dt.datetime


T = typ.TypeVar("T")


def _decode(response: httpx.Response, kind: type[T], *, stage: str) -> T:
    try:
        return msgspec.json.decode(response.content, type=kind)
    except msgspec.DecodeError as exc:
        raise CredentialExchangeError.malformed_response(stage, str(exc)) from exc


def _next_page_url(response: httpx.Response) -> str | None:
    url = response.links.get("next", {}).get("url")
    return url if isinstance(url, str) and url else None


class AppCredentialBroker:
    """Resolve installation access tokens for a single GitHub App.

    Parameters
    ----------
    identity
        The app's id and private key.
    http_client
        Shared client; its timeout bounds every call the broker makes.
    config
        Endpoint configuration.
    cache
        Optional cache to use; a private one is created when omitted.
    clock
        Returns the current aware UTC time.
    refresh_margin
        Tokens within this interval of expiry are treated as stale.

    """

    def __init__(  # noqa: PLR0913 - collaborators are injected explicitly
        self,
        identity: AppIdentity,
        *,
        http_client: httpx.AsyncClient,
        config: GitHubHTTPConfig,
        cache: CredentialCache | None = None,
        clock: Clock = utcnow,
        refresh_margin: dt.timedelta = _DEFAULT_REFRESH_MARGIN,
    ) -> None:
        """Store collaborators; no network I/O happens here."""
        self._identity = identity
        self._http_client = http_client
        self._config = config
        self._cache = cache if cache is not None else CredentialCache()
        self._clock = clock
        self._refresh_margin = refresh_margin
        self._lock = asyncio.Lock()
        self._inflight: dict[int, asyncio.Task[InstallationCredential]] = {}

    @property
    def cache(self) -> CredentialCache:
        """Return the cache backing this broker (read-only use)."""
        return self._cache

    async def resolve(self, installation_id: int) -> InstallationCredential:
        """Return a live access token for ``installation_id``.

        A live cached token is returned without network I/O. Otherwise the
        caller joins the exchange already running for that installation or
        starts one. The cache check and the decision to start an exchange
        happen under one lock; the exchange itself runs outside it.

        Raises
        ------
        InstallationNotFoundError
            If the app is not installed with that id.
        CredentialExchangeError
            If listing installations or creating the token fails.
        AssertionSigningError
            If the app assertion cannot be signed.

        """
        async with self._lock:
            cached = self._cache.get(
                installation_id, now=self._clock(), margin=self._refresh_margin
            )
            if cached is not None:
                log_debug(
                    logger,
                    "Installation token cache hit installation_id=%d",
                    installation_id,
                )
                return cached
            task = self._inflight.get(installation_id)
            if task is None:
                task = asyncio.create_task(
                    self._exchange_and_store(installation_id),
                    name=f"installation-token-{installation_id}",
                )
                self._inflight[installation_id] = task

        # Shield so one waiter's cancellation does not abort the shared call.
        return await asyncio.shield(task)

    def evict(
        self,
        installation_id: int,
        credential: InstallationCredential | None = None,
    ) -> None:
        """Forget the cached token, e.g. after GitHub rejected it.

        Pass the rejected ``credential`` to leave a token that another request
        has already refreshed in place.
        """
        if self._cache.evict(installation_id, credential) is not None:
            log_info(
                logger,
                "Evicted installation token installation_id=%d",
                installation_id,
            )

    async def _exchange_and_store(
        self, installation_id: int
    ) -> InstallationCredential:
        try:
            credential = await self._exchange(installation_id)
            async with self._lock:
                self._cache.put(credential)
            return credential
        finally:
            async with self._lock:
                self._inflight.pop(installation_id, None)

    async def _exchange(self, installation_id: int) -> InstallationCredential:
        now = self._clock()
        assertion = mint_app_assertion(self._identity, now=now)
        installation = await self._find_installation(assertion, installation_id)

        response = await self._send(
            "POST",
            installation.access_tokens_url,
            token=assertion,
            stage=_STAGE_TOKEN,
            json={},
        )
        body = _decode(response, _AccessToken, stage=_STAGE_TOKEN)
        if not body.token:
            raise CredentialExchangeError.malformed_response(
                _STAGE_TOKEN, "empty token"
            )
        try:
            expires_at = ensure_utc(body.expires_at, field="expires_at")
        except ValueError as exc:
            raise CredentialExchangeError.malformed_response(
                _STAGE_TOKEN, str(exc)
            ) from exc
        if expires_at <= now:
            raise CredentialExchangeError.malformed_response(
                _STAGE_TOKEN, "token already expired"
            )

        log_info(
            logger,
            "Minted installation token installation_id=%d expires_at=%s",
            installation_id,
            expires_at.isoformat(),
        )
        return InstallationCredential(
            installation_id=installation_id,
            access_token=body.token,
            expires_at=expires_at,
        )

    async def _find_installation(
        self, assertion: str, installation_id: int
    ) -> _Installation:
        url: str | None = self._config.installations_url
        params: dict[str, int] | None = {"per_page": _INSTALLATIONS_PAGE_SIZE}
        while url is not None:
            response = await self._send(
                "GET", url, token=assertion, stage=_STAGE_LIST, params=params
            )
            page = _decode(response, list[_Installation], stage=_STAGE_LIST)
            for installation in page:
                if installation.id == installation_id:
                    return installation
            # ``next`` links already carry the paging query string.
            url = _next_page_url(response)
            params = None
        raise InstallationNotFoundError(installation_id)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        token: str,
        stage: str,
        **kwargs: typ.Any,  # noqa: ANN401 - forwarded to httpx
    ) -> httpx.Response:
        try:
            response = await self._http_client.request(
                method, url, headers=bearer(token), **kwargs
            )
        except httpx.TimeoutException as exc:
            raise CredentialExchangeError.timeout(stage) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise CredentialExchangeError.network_error(stage, str(exc)) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise CredentialExchangeError.http_error(stage, response.status_code)
        return response
