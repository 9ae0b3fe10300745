"""Relay error kinds and how they surface to the caller."""

from typing import Any


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(RelayError):
    """No valid caller identity, or the session is missing or owned by someone else."""

    status_code = 403


class InvalidConfiguration(RelayError):
    """The requested preset is unknown."""

    status_code = 400


class UpstreamHandshakeFailed(RelayError):
    """Upstream answered with a non-success status before streaming began.

    The upstream body is kept verbatim so it can be forwarded to the caller.
    """

    def __init__(self, status_code: int, body: Any):
        super().__init__(f"Upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class UpstreamStreamError(RelayError):
    """Network failure talking to upstream."""

    status_code = 502


class DecodeSkip(Exception):
    """A single malformed frame. Raised and handled inside the decoder only."""
