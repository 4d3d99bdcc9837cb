#!/usr/bin/env python3
"""
Tests for the turn accumulation state machine.
"""

from unittest.mock import Mock

import pytest

from chatstream.llm.exceptions import TransportError
from chatstream.llm.models import Message, MessageRole
from chatstream.llm.streaming.accumulator import InvalidTurnTransition, TurnAccumulator
from chatstream.llm.streaming.models import TurnState


def make_conversation():
    return [
        Message(role=MessageRole.USER, content="hi"),
        Message(role=MessageRole.ASSISTANT, content="hello"),
        Message(role=MessageRole.USER, content="tell me more"),
    ]


class TestTurnAccumulator:
    """Test TurnAccumulator transitions and conversation mutation."""

    def test_starts_idle_without_appending(self):
        conversation = make_conversation()
        accumulator = TurnAccumulator(conversation)
        assert accumulator.state is TurnState.IDLE
        assert len(conversation) == 3
        assert accumulator.message is None

    def test_mark_streaming(self):
        accumulator = TurnAccumulator([])
        accumulator.mark_streaming()
        assert accumulator.state is TurnState.STREAMING
        accumulator.mark_streaming()
        assert accumulator.state is TurnState.STREAMING

    def test_first_delta_appends_assistant_message_once(self):
        conversation = make_conversation()
        accumulator = TurnAccumulator(conversation)

        accumulator.apply_delta("Sure")
        accumulator.apply_delta(", here")
        accumulator.apply_delta(" goes.")

        assert len(conversation) == 4
        assert conversation[-1] is accumulator.message
        assert conversation[-1].role is MessageRole.ASSISTANT
        assert conversation[-1].content == "Sure, here goes."
        assert accumulator.state is TurnState.STREAMING

    def test_existing_assistant_message_is_not_reused(self):
        conversation = [Message(role=MessageRole.ASSISTANT, content="earlier")]
        accumulator = TurnAccumulator(conversation)
        accumulator.apply_delta("new")

        assert [m.content for m in conversation] == ["earlier", "new"]

    def test_empty_delta_is_not_accepted(self):
        conversation = make_conversation()
        listener = Mock()
        accumulator = TurnAccumulator(conversation, listener)
        accumulator.apply_delta("")

        assert len(conversation) == 3
        listener.assert_not_called()

    def test_content_only_grows(self):
        accumulator = TurnAccumulator([])
        seen = []
        for piece in ["a", "bc", "def"]:
            accumulator.apply_delta(piece)
            seen.append(accumulator.content)
        assert all(later.startswith(earlier) for earlier, later in zip(seen, seen[1:]))

    def test_listener_receives_full_conversation_per_delta(self):
        conversation = make_conversation()
        listener = Mock()
        accumulator = TurnAccumulator(conversation, listener)

        accumulator.apply_delta("A")
        accumulator.apply_delta("B")

        assert listener.call_count == 2
        update = listener.call_args_list[1].args[0]
        assert update.conversation is conversation
        assert update.delta == "B"
        assert update.state is TurnState.STREAMING
        assert update.conversation[-1].content == "AB"

    def test_complete_returns_content_and_notifies(self):
        listener = Mock()
        accumulator = TurnAccumulator([], listener)
        accumulator.apply_delta("done")

        assert accumulator.complete() == "done"
        assert accumulator.state is TurnState.COMPLETED
        final = listener.call_args.args[0]
        assert final.state is TurnState.COMPLETED
        assert final.delta is None

    def test_complete_without_deltas(self):
        conversation = make_conversation()
        accumulator = TurnAccumulator(conversation)
        assert accumulator.complete() == ""
        assert accumulator.state is TurnState.COMPLETED
        assert len(conversation) == 3

    def test_fail_rolls_back_partial_message(self):
        conversation = make_conversation()
        before = [(m.role, m.content) for m in conversation]
        listener = Mock()
        accumulator = TurnAccumulator(conversation, listener)
        accumulator.apply_delta("half a th")

        error = TransportError("connection reset")
        accumulator.fail(error)

        assert [(m.role, m.content) for m in conversation] == before
        assert accumulator.state is TurnState.ERRORED
        assert accumulator.error is error
        assert accumulator.message is None
        last_update = listener.call_args.args[0]
        assert last_update.state is TurnState.ERRORED
        assert len(last_update.conversation) == 3

    def test_fail_is_idempotent(self):
        listener = Mock()
        accumulator = TurnAccumulator([], listener)
        accumulator.fail(TransportError("first"))
        accumulator.fail(TransportError("second"))

        assert accumulator.error.message == "first"
        assert listener.call_count == 1

    @pytest.mark.parametrize("finish", ["complete", "fail"])
    def test_terminal_states_reject_events(self, finish):
        accumulator = TurnAccumulator([])
        if finish == "complete":
            accumulator.complete()
        else:
            accumulator.fail(TransportError("x"))

        with pytest.raises(InvalidTurnTransition):
            accumulator.apply_delta("late")
        with pytest.raises(InvalidTurnTransition):
            accumulator.mark_streaming()
        with pytest.raises(InvalidTurnTransition):
            accumulator.complete()

    def test_cancel_keeps_state_and_content(self):
        conversation = []
        accumulator = TurnAccumulator(conversation)
        accumulator.apply_delta("partial")
        accumulator.cancel()

        assert accumulator.state is TurnState.STREAMING
        assert accumulator.cancelled
        assert conversation[-1].content == "partial"
        with pytest.raises(InvalidTurnTransition, match="cancelled"):
            accumulator.apply_delta("more")
