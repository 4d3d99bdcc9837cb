"""
Interactive terminal chat over the streaming endpoint.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

from chatstream.chat_service import ChatService
from chatstream.config import Configuration
from chatstream.llm.client import ChatStreamClient
from chatstream.llm.exceptions import ChatStreamError, RateLimitError
from chatstream.llm.models import Conversation, MessageRole
from chatstream.llm.streaming import TurnState, TurnUpdate
from chatstream.logging_utils import configure_logging

PROMPT = "you> "


class TerminalRenderer:
    """Redraws the trailing assistant message as a growing line of text."""

    def __init__(self, stream=sys.stdout):
        self.stream = stream
        self._shown = 0

    def reset(self) -> None:
        self._shown = 0

    def __call__(self, update: TurnUpdate) -> None:
        if update.state is TurnState.ERRORED:
            if self._shown:
                self.stream.write(" [discarded]\n")
                self.stream.flush()
            return

        last = update.conversation[-1] if update.conversation else None
        if last is None or last.role is not MessageRole.ASSISTANT:
            return

        if self._shown == 0:
            self.stream.write("assistant> ")
        self.stream.write(last.content[self._shown:])
        self._shown = len(last.content)
        if update.state is TurnState.COMPLETED:
            self.stream.write("\n")
        self.stream.flush()


async def chat_loop(service: ChatService, shutdown_event: asyncio.Event) -> None:
    """Prompt, stream and render until EOF or shutdown."""
    conversation: Conversation = []
    renderer = TerminalRenderer()

    while not shutdown_event.is_set():
        try:
            text = await asyncio.to_thread(input, PROMPT)
        except EOFError:
            break
        if not text.strip():
            continue

        renderer.reset()
        try:
            result = await service.send_message(
                conversation, text, renderer, cancel_event=shutdown_event
            )
        except RateLimitError as e:
            wait = f" (retry after {e.retry_after:g}s)" if e.retry_after else ""
            print(f"error: {e.message}{wait}", file=sys.stderr)
            continue
        except ChatStreamError as e:
            print(f"error: {e.message}", file=sys.stderr)
            continue

        if result.cancelled:
            print()
            break
        if result.message is None:
            print("assistant> (no reply)")


async def main() -> None:
    """Main entry point - terminal chat with graceful shutdown handling."""
    config = Configuration()
    configure_logging(config.get_logging_config())

    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        logging.info("Received shutdown signal, initiating graceful shutdown...")
        shutdown_event.set()

    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

    async with ChatStreamClient(config.build_endpoint_config()) as client:
        service = ChatService(
            ChatService.ChatServiceConfig(client=client, configuration=config)
        )
        chat_task = asyncio.create_task(chat_loop(service, shutdown_event))

        done, pending = await asyncio.wait(
            [chat_task, asyncio.create_task(shutdown_event.wait())],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        for task in done:
            if task == chat_task:
                exception = task.exception()
                if exception is not None:
                    raise exception

    logging.info("Chat session closed")


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
