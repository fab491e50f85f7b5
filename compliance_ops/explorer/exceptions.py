"""
Error taxonomy for block-explorer calls.

Every call that goes through a dispatcher resolves with a result or with
exactly one of these errors:
- RateLimitedError: the remote API rejected the call for exceeding its quota
- RemoteError: well-formed error reply unrelated to rate limiting
- TransportError: network failure, bad HTTP status or malformed payload
- DispatchCancelledError: the call was still queued when the queue was cleared
"""

from __future__ import annotations

from typing import Any


class ExplorerError(Exception):
    """Base explorer error with request context."""

    def __init__(
        self,
        message: str,
        api: str = "unknown",
        status_code: int | None = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.api = api
        self.status_code = status_code
        self.response_data = response_data


class RateLimitedError(ExplorerError):
    """Remote quota exceeded. Callers may resubmit after backing off."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class RemoteError(ExplorerError):
    """The remote API processed the request and reported a failure."""
    pass


class TransportError(ExplorerError):
    """Network-level failure or an undecodable response."""
    pass


class DispatchCancelledError(ExplorerError):
    """Raised for queued calls discarded by ``clear()``."""

    def __init__(self, message: str = "Queue cleared", **kwargs: Any):
        super().__init__(message, **kwargs)
