"""
Failure classification for streamed chat turns.

Maps pre-stream statuses and mid-stream exceptions into the closed
ErrorKind taxonomy, in priority order:
1. 429 -> RATE_LIMITED
2. 402 -> QUOTA_EXCEEDED
3. any other non-success status -> TRANSPORT (server message if present)
4. an exception while reading an already-started stream -> TRANSPORT
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from .exceptions import (
    ChatStreamError,
    QuotaExceededError,
    RateLimitError,
    TransportError,
)
from .models import ErrorBody

HTTP_PAYMENT_REQUIRED = 402
HTTP_TOO_MANY_REQUESTS = 429

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
QUOTA_EXCEEDED_MESSAGE = "AI usage limit reached. Please add credits to continue."
GENERIC_FAILURE_MESSAGE = "Failed to get response"
UNREADABLE_BODY_MESSAGE = "Request failed"

logger = structlog.get_logger(__name__)


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


class ErrorClassifier:
    """Centralized turn error classification with structured logging."""

    @staticmethod
    def parse_error_body(body: bytes | str | None) -> tuple[dict[str, Any], str]:
        """
        Decode a failure body into (response_data, message).

        A body that is not JSON yields the generic "Request failed" message,
        a JSON body without an ``error`` string yields "Failed to get response".
        """
        if not body:
            return {}, UNREADABLE_BODY_MESSAGE
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}, UNREADABLE_BODY_MESSAGE

        error_body = ErrorBody.from_data(data)
        response_data = data if isinstance(data, dict) else {}
        return response_data, error_body.error or GENERIC_FAILURE_MESSAGE

    @staticmethod
    def classify_status(
        status_code: int,
        body: bytes | str | None = None,
        retry_after: str | None = None,
    ) -> ChatStreamError:
        """
        Classify a non-success response received before streaming began.

        Args:
            status_code: HTTP status of the response
            body: Raw response body, if any
            retry_after: Raw ``Retry-After`` header value, if any

        Returns:
            ChatStreamError subclass matching the status
        """
        if is_success_status(status_code):
            raise ValueError(f"Status {status_code} is not a failure")

        response_data, server_message = ErrorClassifier.parse_error_body(body)

        if status_code == HTTP_TOO_MANY_REQUESTS:
            error: ChatStreamError = RateLimitError(
                RATE_LIMIT_MESSAGE,
                retry_after=_parse_retry_after(retry_after),
                status_code=status_code,
                response_data=response_data,
            )
        elif status_code == HTTP_PAYMENT_REQUIRED:
            error = QuotaExceededError(
                QUOTA_EXCEEDED_MESSAGE,
                status_code=status_code,
                response_data=response_data,
            )
        else:
            error = TransportError(
                server_message,
                status_code=status_code,
                response_data=response_data,
            )

        logger.warning(
            "Chat request rejected",
            status_code=status_code,
            error_kind=error.kind.value,
            error_message=error.message,
        )
        return error

    @staticmethod
    def classify_exception(error: BaseException) -> ChatStreamError:
        """
        Classify an exception raised while reading an already-started stream.

        Already-classified errors pass through unchanged; everything else is a
        connection-level TRANSPORT failure.
        """
        if isinstance(error, ChatStreamError):
            return error

        if isinstance(error, httpx.TimeoutException | TimeoutError):
            message = f"Stream timed out: {error!s}"
        elif isinstance(error, httpx.HTTPError | OSError):
            message = f"Stream connection failed: {error!s}"
        else:
            message = f"Stream read failed: {error!s}"

        logger.error(
            "Stream failed",
            error_type=type(error).__name__,
            error_message=str(error),
        )
        return TransportError(message)


def _parse_retry_after(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None
