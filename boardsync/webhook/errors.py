"""Errors raised while decoding webhook deliveries."""

from __future__ import annotations

import msgspec

# Decoder messages can echo payload fragments; keep log lines short.
_DETAIL_LIMIT = 200


class PayloadMalformedError(ValueError):
    """Raised when a webhook body cannot be decoded into an event."""

    @classmethod
    def from_decode_error(cls, exc: msgspec.DecodeError) -> PayloadMalformedError:
        """Wrap a msgspec decode or validation failure."""
        detail = str(exc)
        if len(detail) > _DETAIL_LIMIT:
            detail = detail[:_DETAIL_LIMIT] + "..."
        return cls(f"Malformed webhook payload: {detail}")
