"""
Chat completion streaming over HTTP.

This package provides:
- Message and endpoint dataclasses
- Classified error taxonomy for failed turns
- An httpx transport yielding raw response chunks
- Incremental ingestion of event-stream replies (see ``streaming``)
"""

from __future__ import annotations

from .classifier import ErrorClassifier
from .client import ChatStreamClient
from .exceptions import (
    ChatStreamError,
    ErrorKind,
    MalformedResponseError,
    QuotaExceededError,
    RateLimitError,
    TransportError,
)
from .models import ChatEndpointConfig, Conversation, Message, MessageRole

__all__ = [
    "ChatEndpointConfig",
    # Exceptions
    "ChatStreamError",
    # Client
    "ChatStreamClient",
    "Conversation",
    "ErrorClassifier",
    "ErrorKind",
    "MalformedResponseError",
    # Core models
    "Message",
    "MessageRole",
    "QuotaExceededError",
    "RateLimitError",
    "TransportError",
]
