"""Shared fixtures: RSA key material, a fake clock and a fake GitHub."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from boardsync.github.client import GitHubHTTPConfig
from boardsync.github.credentials import AppIdentity
from tests.helpers.fake_github import API_URL, APP_ID, FakeClock, FakeGitHub
from tests.helpers.harness import DispatchHarness, build_harness

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """Generate one RSA key for the whole session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    """Return the session key as unencrypted PKCS#8 PEM."""
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def public_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    """Return the session public key as PEM."""
    return (
        rsa_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("ascii")
    )


@pytest.fixture
def identity(private_key_pem: str) -> AppIdentity:
    """Return a valid app identity."""
    return AppIdentity.from_pem(APP_ID, private_key_pem)


@pytest.fixture
def clock() -> FakeClock:
    """Return a settable clock fixed at a known instant."""
    return FakeClock()


@pytest.fixture
def fake_github(clock: FakeClock) -> FakeGitHub:
    """Return a fake GitHub sharing the test clock."""
    return FakeGitHub(clock=clock)


@pytest.fixture
def http_config() -> GitHubHTTPConfig:
    """Return HTTP config pointing at the fake GitHub host."""
    return GitHubHTTPConfig(api_url=API_URL, timeout_s=5.0)




@pytest_asyncio.fixture
async def harness(
    identity: AppIdentity,
    fake_github: FakeGitHub,
    http_config: GitHubHTTPConfig,
    clock: FakeClock,
) -> cabc.AsyncIterator[DispatchHarness]:
    """Yield a dispatcher wired to the fake GitHub."""
    built = build_harness(identity, fake_github, http_config, clock)
    yield built
    await built.http_client.aclose()
