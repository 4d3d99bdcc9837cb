"""
Core chat dataclasses and wire envelope models.

This module provides the foundational types for a streamed chat turn:
- Message roles and the mutable conversation message
- Endpoint configuration for the transport
- Pydantic views over the streamed JSON envelope and error bodies
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(Enum):
    """Conversation message roles."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """
    One conversation entry.

    Only the trailing assistant message of an active turn ever has its
    ``content`` mutated.
    """
    role: MessageRole
    content: str

    def to_payload(self) -> dict[str, str]:
        """Serialize to the request body shape."""
        return {"role": self.role.value, "content": self.content}


Conversation = list[Message]


@dataclass(frozen=True)
class ChatEndpointConfig:
    """Transport configuration for the chat endpoint."""
    url: str
    api_key: str

    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    write_timeout: float = 10.0
    pool_timeout: float = 10.0


class ChunkDelta(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: str | None = None


class ChunkChoice(BaseModel):
    model_config = ConfigDict(extra="allow")

    delta: ChunkDelta = Field(default_factory=ChunkDelta)


class ChatCompletionChunk(BaseModel):
    """Streamed JSON envelope; only ``choices[0].delta.content`` is consulted."""
    model_config = ConfigDict(extra="allow")

    # Later choices are never validated
    choices: list[Any] = Field(default_factory=list)

    def first_content(self) -> str | None:
        """Validate and read the head choice; raises ValidationError if it is malformed."""
        if not self.choices:
            return None
        return ChunkChoice.model_validate(self.choices[0]).delta.content


class ErrorBody(BaseModel):
    """JSON body returned with a non-success status."""
    model_config = ConfigDict(extra="allow")

    error: str | None = None

    @classmethod
    def from_data(cls, data: Any) -> ErrorBody:
        if not isinstance(data, dict):
            return cls()
        error = data.get("error")
        return cls(error=error if isinstance(error, str) else None)
