"""GitHub webhook signature verification.

GitHub signs each delivery with HMAC-SHA256 keyed by the webhook secret and
sends the result in ``X-Hub-Signature-256`` as ``sha256=<hex digest>``.

Examples
--------
>>> header = compute_signature(b"s3cret", b"{}")
>>> verify(b"s3cret", b"{}", header)
True
>>> verify(b"s3cret", b"{}", None)
False

"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def _as_bytes(secret: bytes | str) -> bytes:
    return secret.encode("utf-8") if isinstance(secret, str) else secret


def compute_signature(secret: bytes | str, raw_body: bytes) -> str:
    """Return the ``sha256=<hex>`` signature GitHub would send for ``raw_body``.

    Parameters
    ----------
    secret
        Shared webhook secret. ``str`` values are UTF-8 encoded.
    raw_body
        Request body exactly as received.

    Returns
    -------
    str
        Lowercase hex HMAC-SHA256 digest with the ``sha256=`` prefix.

    """
    digest = hmac.new(_as_bytes(secret), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify(
    secret: bytes | str,
    raw_body: bytes,
    signature_header: str | None,
) -> bool:
    """Return whether ``signature_header`` authenticates ``raw_body``.

    The comparison runs in constant time over the expected value so a caller
    cannot learn the digest byte by byte from response timings.

    Parameters
    ----------
    secret
        Shared webhook secret.
    raw_body
        Request body exactly as received.
    signature_header
        Value of ``X-Hub-Signature-256``; ``None`` when the header is absent.

    Returns
    -------
    bool
        ``True`` only when the header matches the computed signature.

    """
    if not signature_header:
        return False
    expected = compute_signature(secret, raw_body).encode("ascii")
    # compare_digest rejects non-ASCII str input, so compare bytes.
    provided = signature_header.encode("utf-8", errors="replace")
    return hmac.compare_digest(expected, provided)


__all__ = ["SIGNATURE_HEADER", "SIGNATURE_PREFIX", "compute_signature", "verify"]
