"""
Streaming-specific dataclasses for turn ingestion.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from ..models import Conversation, Message


class FrameKind(Enum):
    """Classification of one decoded line."""
    IGNORE = "ignore"
    SENTINEL = "sentinel"
    DELTA = "delta"
    IGNORE_MALFORMED = "ignore_malformed"


class TurnState(Enum):
    """Lifecycle of a single streamed turn."""
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (TurnState.COMPLETED, TurnState.ERRORED)


@dataclass(frozen=True)
class DeltaEvent:
    """Incremental assistant text carried by one data frame."""
    text: str


@dataclass(frozen=True)
class Frame:
    """Interpreted line."""
    kind: FrameKind
    line: str
    delta: DeltaEvent | None = None
    error: str | None = None

    @classmethod
    def ignore(cls, line: str) -> Frame:
        return cls(kind=FrameKind.IGNORE, line=line)


@dataclass(frozen=True)
class TurnUpdate:
    """Notification emitted to the turn's single subscriber."""
    conversation: Conversation
    state: TurnState
    delta: str | None = None


@dataclass
class IngestState:
    """Mutable per-turn counters with timing tracking."""
    chunk_count: int = 0
    byte_count: int = 0
    line_count: int = 0
    delta_count: int = 0
    ignored_count: int = 0
    malformed_count: int = 0
    started_at: float = field(default_factory=time.monotonic)
    first_delta_at: float | None = None
    finished_at: float | None = None

    def record_chunk(self, chunk: bytes) -> None:
        self.chunk_count += 1
        self.byte_count += len(chunk)

    def record_delta(self) -> None:
        if self.first_delta_at is None:
            self.first_delta_at = time.monotonic()
        self.delta_count += 1

    def finish(self) -> None:
        if self.finished_at is None:
            self.finished_at = time.monotonic()

    def snapshot(self) -> StreamingStats:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        first_delta_latency = (
            self.first_delta_at - self.started_at
            if self.first_delta_at is not None else None
        )
        return StreamingStats(
            total_chunks=self.chunk_count,
            total_bytes=self.byte_count,
            total_lines=self.line_count,
            delta_frames=self.delta_count,
            ignored_frames=self.ignored_count,
            malformed_frames=self.malformed_count,
            total_duration=end - self.started_at,
            first_delta_latency=first_delta_latency,
        )


@dataclass(frozen=True)
class StreamingStats:
    """Statistics for one ingested turn."""
    total_chunks: int
    total_bytes: int
    total_lines: int
    delta_frames: int
    ignored_frames: int
    malformed_frames: int
    total_duration: float
    first_delta_latency: float | None


@dataclass(frozen=True)
class TurnResult:
    """Outcome of a turn that did not raise."""
    state: TurnState
    content: str
    message: Message | None
    stats: StreamingStats
    cancelled: bool = False
