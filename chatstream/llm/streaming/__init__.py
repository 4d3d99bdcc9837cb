"""
Incremental ingestion of streamed chat replies.

This package contains:
- Line framing across arbitrary chunk boundaries
- Frame interpretation (comments, data frames, sentinel)
- Turn accumulation into a single assistant message
- The read loop tying them together
"""

from .accumulator import InvalidTurnTransition, TurnAccumulator
from .decoder import FrameDecoder
from .interpreter import FrameInterpreter
from .models import (
    DeltaEvent,
    Frame,
    FrameKind,
    StreamingStats,
    TurnResult,
    TurnState,
    TurnUpdate,
)
from .pipeline import StreamingTurn

__all__ = [
    "DeltaEvent",
    "Frame",
    "FrameDecoder",
    "FrameInterpreter",
    "FrameKind",
    "InvalidTurnTransition",
    "StreamingStats",
    "StreamingTurn",
    "TurnAccumulator",
    "TurnResult",
    "TurnState",
    "TurnUpdate",
]
