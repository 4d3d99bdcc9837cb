"""
Single-consumer read loop for one streamed chat turn.

Transport chunks flow one way through FrameDecoder -> FrameInterpreter ->
TurnAccumulator. Awaiting the next chunk is the only suspension point, so a
subscriber only ever observes the conversation between whole deltas.
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from ...logging_utils import ContextualLogger
from ..classifier import ErrorClassifier
from ..exceptions import ChatStreamError
from ..models import Conversation
from .accumulator import TurnAccumulator, TurnListener
from .decoder import FrameDecoder
from .interpreter import FrameInterpreter
from .models import FrameKind, IngestState, TurnResult, TurnState


class _Cancelled(Exception):
    """Internal signal: the cancel event won the race against the next read."""


async def _read_chunk(iterator: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return None


class StreamingTurn:
    """
    Drives one turn from a raw byte-chunk source to a finished assistant reply.

    Failures raised by the chunk source or the decoder are classified, roll
    the conversation back to its pre-turn state and are re-raised as
    ChatStreamError. Per-frame JSON failures never abort the turn.
    """

    def __init__(
        self,
        conversation: Conversation,
        listener: TurnListener | None = None,
        *,
        decoder: FrameDecoder | None = None,
        interpreter: FrameInterpreter | None = None,
        turn_id: str | None = None,
    ):
        self.turn_id = turn_id or str(uuid.uuid4())
        self.accumulator = TurnAccumulator(conversation, listener)
        self.decoder = decoder or FrameDecoder()
        self.interpreter = interpreter or FrameInterpreter()
        self.ingest = IngestState()
        self.log = ContextualLogger({"turn_id": self.turn_id})

    @classmethod
    def from_config(
        cls,
        conversation: Conversation,
        streaming_config: dict[str, Any],
        listener: TurnListener | None = None,
        *,
        log_frames: bool = False,
    ) -> StreamingTurn:
        """Build a turn from the validated ``chat.streaming`` section."""
        return cls(
            conversation,
            listener,
            decoder=FrameDecoder(encoding=streaming_config["encoding"]),
            interpreter=FrameInterpreter(
                data_prefix=streaming_config["data_prefix"],
                done_sentinel=streaming_config["done_sentinel"],
                comment_prefix=streaming_config["comment_prefix"],
                log_frames=log_frames,
            ),
        )

    @property
    def state(self) -> TurnState:
        return self.accumulator.state

    async def run(
        self,
        chunks: AsyncIterable[bytes],
        cancel_event: asyncio.Event | None = None,
    ) -> TurnResult:
        """
        Consume ``chunks`` until the sentinel or end of stream.

        Args:
            chunks: Ordered raw byte chunks from the transport
            cancel_event: When set, aborts the pending read, releases the
                chunk source and returns a cancelled result without
                finalizing the turn

        Returns:
            TurnResult for a completed or cancelled turn

        Raises:
            ChatStreamError: Classified failure; the conversation has been
                rolled back
        """
        iterator = aiter(chunks)
        self.log.debug("Turn started")
        try:
            while True:
                chunk = await self._next_chunk(iterator, cancel_event)
                if chunk is None:
                    break
                self.ingest.record_chunk(chunk)
                self.accumulator.mark_streaming()
                if self._consume(self.decoder.feed(chunk)):
                    self.decoder.discard()
                    return self._finish()

            self._consume(self.decoder.flush())
            return self._finish()

        except _Cancelled:
            return self._cancel()
        except asyncio.CancelledError:
            self._cancel()
            raise
        except Exception as e:
            if self.accumulator.state.is_terminal:
                # Raised by the listener after the turn was finalized
                raise
            error = ErrorClassifier.classify_exception(e)
            self.ingest.finish()
            self.accumulator.fail(error)
            self.log.error(
                "Turn failed",
                error_kind=error.kind.value,
                error_message=error.message,
                deltas=self.ingest.delta_count,
            )
            if error is e:
                raise
            raise error from e
        finally:
            await self._release(iterator)

    def fail(self, error: ChatStreamError) -> None:
        """Mark the turn errored for a failure raised outside the read loop."""
        if self.accumulator.state.is_terminal or self.accumulator.cancelled:
            return
        self.ingest.finish()
        self.accumulator.fail(error)

    async def _next_chunk(
        self,
        iterator: AsyncIterator[bytes],
        cancel_event: asyncio.Event | None,
    ) -> bytes | None:
        if cancel_event is None:
            return await _read_chunk(iterator)
        if cancel_event.is_set():
            raise _Cancelled

        read_task = asyncio.create_task(_read_chunk(iterator))
        cancel_task = asyncio.create_task(cancel_event.wait())
        done, pending = await asyncio.wait(
            [read_task, cancel_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if read_task in done:
            return read_task.result()
        raise _Cancelled

    def _consume(self, lines) -> bool:
        """Feed decoded lines to the accumulator; True once the sentinel is seen."""
        for line in lines:
            self.ingest.line_count += 1
            frame = self.interpreter.interpret(line)

            if frame.kind is FrameKind.SENTINEL:
                return True
            if frame.kind is FrameKind.DELTA and frame.delta is not None:
                self.ingest.record_delta()
                self.accumulator.apply_delta(frame.delta.text)
            elif frame.kind is FrameKind.IGNORE_MALFORMED:
                self.ingest.malformed_count += 1
            else:
                self.ingest.ignored_count += 1
        return False

    def _finish(self) -> TurnResult:
        self.ingest.finish()
        content = self.accumulator.complete()
        stats = self.ingest.snapshot()
        self.log.info(
            "Turn completed",
            chunks=stats.total_chunks,
            deltas=stats.delta_frames,
            malformed=stats.malformed_frames,
            chars=len(content),
        )
        return TurnResult(
            state=self.accumulator.state,
            content=content,
            message=self.accumulator.message,
            stats=stats,
        )

    def _cancel(self) -> TurnResult:
        self.ingest.finish()
        self.accumulator.cancel()
        self.log.info("Turn cancelled", state=self.accumulator.state.value)
        return TurnResult(
            state=self.accumulator.state,
            content=self.accumulator.content,
            message=self.accumulator.message,
            stats=self.ingest.snapshot(),
            cancelled=True,
        )

    async def _release(self, iterator: AsyncIterator[bytes]) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            self.log.warning("Error closing chunk source", error_message=str(e))
