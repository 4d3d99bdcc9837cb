"""
Frame interpretation for OpenAI-style event-stream lines.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from ..models import ChatCompletionChunk
from .models import DeltaEvent, Frame, FrameKind

logger = logging.getLogger(__name__)

DEFAULT_DATA_PREFIX = "data: "
DEFAULT_DONE_SENTINEL = "[DONE]"
DEFAULT_COMMENT_PREFIX = ":"

# Longest payload excerpt written to the log for a dropped frame
MAX_LOGGED_PAYLOAD = 120


class FrameInterpreter:
    """Classifies decoded lines as ignorable, sentinel, delta or malformed."""

    def __init__(
        self,
        data_prefix: str = DEFAULT_DATA_PREFIX,
        done_sentinel: str = DEFAULT_DONE_SENTINEL,
        comment_prefix: str = DEFAULT_COMMENT_PREFIX,
        log_frames: bool = False,
    ):
        self.data_prefix = data_prefix
        self.done_sentinel = done_sentinel
        self.comment_prefix = comment_prefix
        self.log_frames = log_frames

    def interpret(self, line: str) -> Frame:
        """
        Classify one decoded line.

        A payload that is not valid JSON is dropped as IGNORE_MALFORMED; it
        is never requeued, since payloads cannot legally contain a newline.
        """
        if not line.strip() or line.startswith(self.comment_prefix):
            return Frame.ignore(line)
        if not line.startswith(self.data_prefix):
            return Frame.ignore(line)

        payload = line[len(self.data_prefix):].strip()
        if payload == self.done_sentinel:
            return Frame(kind=FrameKind.SENTINEL, line=line)

        try:
            data = json.loads(payload)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError is a ValueError; deep nesting raises RecursionError
            logger.warning(
                "Dropping malformed data frame: %s (payload=%r)",
                e,
                payload[:MAX_LOGGED_PAYLOAD],
            )
            return Frame(kind=FrameKind.IGNORE_MALFORMED, line=line, error=str(e))

        frame = self._frame_from_data(line, data)
        if self.log_frames:
            logger.debug("Frame %s: %r", frame.kind.value, payload[:MAX_LOGGED_PAYLOAD])
        return frame

    def _frame_from_data(self, line: str, data: object) -> Frame:
        if not isinstance(data, dict):
            return Frame.ignore(line)
        try:
            content = ChatCompletionChunk.model_validate(data).first_content()
        except ValidationError:
            # Envelope present but shaped differently; carries no content.
            return Frame.ignore(line)

        if not content:
            return Frame.ignore(line)
        return Frame(kind=FrameKind.DELTA, line=line, delta=DeltaEvent(text=content))
