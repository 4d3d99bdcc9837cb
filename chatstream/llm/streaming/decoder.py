"""
Line framing for chunked event-stream bodies.

Chunk boundaries are arbitrary: a line, a CRLF pair or a multi-byte
character may be split across any number of chunks. The decoder keeps a
residual buffer of text that has not yet formed a complete line and only
ever emits whole lines.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterator

logger = logging.getLogger(__name__)


class FrameDecoder:
    """Turns a byte-chunk sequence into logical text lines."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._finished = False

    @property
    def residual(self) -> str:
        """Text held back because it has not formed a complete line yet."""
        return self._buffer

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, chunk: bytes) -> Iterator[str]:
        """
        Append one chunk and yield every line it completes.

        Lines are yielded without their ``\\n`` terminator and with a single
        trailing ``\\r`` removed.
        """
        if self._finished:
            raise RuntimeError("Decoder already flushed; call reset() first")

        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def flush(self) -> Iterator[str]:
        """
        Emit any residual text as one last line at end of stream.

        Handles servers that omit the final line terminator. Runs once;
        later calls yield nothing.
        """
        if self._finished:
            return
        self._finished = True

        self._buffer += self._decoder.decode(b"", final=True)
        # Anything with a terminator was completed by the final decode.
        yield from self._drain()

        residual, self._buffer = self._buffer, ""
        if residual.strip():
            yield _strip_cr(residual)

    def discard(self) -> int:
        """Drop the residual buffer without emitting it; returns its length."""
        dropped = len(self._buffer)
        if dropped:
            logger.debug("Discarding %d residual characters", dropped)
        self._buffer = ""
        self._decoder.reset()
        self._finished = True
        return dropped

    def reset(self) -> None:
        """Reset for a new stream."""
        self._decoder.reset()
        self._buffer = ""
        self._finished = False

    async def iter_lines(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
        """Lazily decode a whole chunk source, flushing at its end."""
        async for chunk in chunks:
            for line in self.feed(chunk):
                yield line
        for line in self.flush():
            yield line

    def _drain(self) -> Iterator[str]:
        while (newline_index := self._buffer.find("\n")) != -1:
            line = self._buffer[:newline_index]
            self._buffer = self._buffer[newline_index + 1:]
            yield _strip_cr(line)


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line
