"""
Error taxonomy for streamed chat turns.

Every failure surfaced to a caller is a ChatStreamError carrying exactly one
ErrorKind:
- RATE_LIMITED and QUOTA_EXCEEDED for the matching pre-stream statuses
- TRANSPORT for any other status or a failure while reading the stream
- MALFORMED for structurally invalid full responses
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of turn-level failure kinds."""
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    TRANSPORT = "transport"
    MALFORMED = "malformed"


class ChatStreamError(Exception):
    """Base chat streaming error with rich context."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}


class RateLimitError(ChatStreamError):
    """Rate limit error with retry information."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class QuotaExceededError(ChatStreamError):
    """Usage quota or credits exhausted."""
    kind = ErrorKind.QUOTA_EXCEEDED


class TransportError(ChatStreamError):
    """Non-success status or connection-level failure."""
    kind = ErrorKind.TRANSPORT


class MalformedResponseError(ChatStreamError):
    """Structurally invalid response, e.g. no body at all."""
    kind = ErrorKind.MALFORMED
