"""
Chat Service for streamed single-turn exchanges.

This module handles the business logic for one chat turn:
- Appending the user's message to the caller's conversation
- Opening the streamed request through the transport client
- Ingesting the reply incrementally via StreamingTurn
- Leaving the conversation exactly as it was before the reply on failure
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from chatstream.config import Configuration
from chatstream.llm.exceptions import ChatStreamError
from chatstream.llm.models import Conversation, Message, MessageRole
from chatstream.llm.streaming import StreamingTurn, TurnResult
from chatstream.llm.streaming.accumulator import TurnListener
from chatstream.logging_utils import log_operation

logger = logging.getLogger(__name__)


class ChatService:
    """
    Turn orchestrator
    1. Takes your message
    2. Sends the conversation to the chat endpoint
    3. Grows the assistant reply as chunks arrive
    4. Rolls the reply back if the stream fails
    """

    class ChatServiceConfig(BaseModel):
        model_config = ConfigDict(arbitrary_types_allowed=True)

        client: Any  # ChatStreamClient
        configuration: Configuration

    def __init__(self, service_config: ChatService.ChatServiceConfig):
        self.client = service_config.client
        self.configuration = service_config.configuration

        self.streaming_config = self.configuration.get_streaming_config()
        self.log_frames = bool(
            self.configuration.get_logging_config().get("log_frames", False)
        )
        self._turn_lock = asyncio.Lock()

    @log_operation("chat_turn")
    async def send_message(
        self,
        conversation: Conversation,
        text: str,
        on_update: TurnListener | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TurnResult:
        """
        Run one turn: append the user message and stream the reply.

        Args:
            conversation: Caller-owned history, mutated in place
            text: User input; surrounding whitespace is trimmed
            on_update: Receives the full conversation after every delta and
                once more when the turn completes or fails
            cancel_event: Set to abandon the turn mid-stream

        Returns:
            TurnResult for the completed (or cancelled) turn

        Raises:
            ValueError: If ``text`` is blank
            ChatStreamError: Classified failure; the assistant reply has been
                removed from ``conversation``
        """
        user_text = text.strip()
        if not user_text:
            raise ValueError("Message must not be empty")

        # One active turn at a time owns the conversation
        async with self._turn_lock:
            conversation.append(Message(role=MessageRole.USER, content=user_text))
            turn = StreamingTurn.from_config(
                conversation,
                self.streaming_config,
                on_update,
                log_frames=self.log_frames,
            )

            try:
                async with self.client.stream_chat(list(conversation)) as chunks:
                    return await turn.run(chunks, cancel_event)
            except ChatStreamError as e:
                turn.fail(e)
                logger.warning(f"Chat turn failed ({e.kind.value}): {e.message}")
                raise
