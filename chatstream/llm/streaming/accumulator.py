"""
Turn accumulation: folds content deltas into one growing assistant message.

The accumulator owns a single handle to the trailing assistant message it
appended, so each delta is an in-place append rather than a rebuild of the
conversation. State machine:

    IDLE -> STREAMING -> COMPLETED | ERRORED

COMPLETED and ERRORED are terminal.
"""

from __future__ import annotations

import io
from collections.abc import Callable

from ..exceptions import ChatStreamError
from ..models import Conversation, Message, MessageRole
from .models import TurnState, TurnUpdate

TurnListener = Callable[[TurnUpdate], None]


class InvalidTurnTransition(RuntimeError):
    """Raised when an event arrives for a turn in a terminal state."""


class TurnAccumulator:
    """Single-turn state machine over a caller-owned conversation."""

    def __init__(
        self,
        conversation: Conversation,
        listener: TurnListener | None = None,
    ):
        self.conversation = conversation
        self.listener = listener
        self.state = TurnState.IDLE
        self.error: ChatStreamError | None = None
        self.cancelled = False

        self._pre_turn_length = len(conversation)
        self._message: Message | None = None
        self._content = io.StringIO()

    @property
    def message(self) -> Message | None:
        """Assistant message appended during this turn, if any."""
        return self._message

    @property
    def content(self) -> str:
        return self._content.getvalue()

    def mark_streaming(self) -> None:
        """Record that the first chunk arrived."""
        self._ensure_active()
        if self.state is TurnState.IDLE:
            self.state = TurnState.STREAMING

    def apply_delta(self, text: str) -> None:
        """Append delta text, creating the assistant message on first use."""
        self._ensure_active()
        if not text:
            return

        self.state = TurnState.STREAMING
        self._content.write(text)
        if self._message is None:
            self._message = Message(role=MessageRole.ASSISTANT, content=text)
            self.conversation.append(self._message)
        else:
            self._message.content = self._content.getvalue()

        self._notify(delta=text)

    def complete(self) -> str:
        """Finalize with whatever was accumulated, possibly nothing."""
        self._ensure_active()
        self.state = TurnState.COMPLETED
        self._notify()
        return self.content

    def fail(self, error: ChatStreamError) -> None:
        """
        Abort the turn and roll the conversation back to its pre-turn state.

        Idempotent once the turn has errored.
        """
        if self.state is TurnState.ERRORED:
            return
        self._ensure_active()

        self.error = error
        self.state = TurnState.ERRORED
        if self._message is not None:
            self._rollback()
        self._notify()

    def cancel(self) -> None:
        """Stop accepting events without finalizing; state is left unchanged."""
        self.cancelled = True

    def _rollback(self) -> None:
        del self.conversation[self._pre_turn_length:]
        self._message = None

    def _ensure_active(self) -> None:
        if self.state.is_terminal:
            raise InvalidTurnTransition(f"Turn already {self.state.value}")
        if self.cancelled:
            raise InvalidTurnTransition("Turn was cancelled")

    def _notify(self, delta: str | None = None) -> None:
        if self.listener is None:
            return
        self.listener(
            TurnUpdate(conversation=self.conversation, state=self.state, delta=delta)
        )
