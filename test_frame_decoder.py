#!/usr/bin/env python3
"""
Tests for line framing across arbitrary chunk boundaries.
"""

import pytest

from chatstream.llm.streaming.decoder import FrameDecoder


def feed_all(decoder: FrameDecoder, chunks: list[bytes]) -> list[str]:
    lines = []
    for chunk in chunks:
        lines.extend(decoder.feed(chunk))
    lines.extend(decoder.flush())
    return lines


class TestFrameDecoder:
    """Test FrameDecoder buffering and flushing."""

    def test_splits_complete_lines(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"a\nb\n")) == ["a", "b"]
        assert decoder.residual == ""

    def test_keeps_partial_line_buffered(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"data: {\"x\"")) == []
        assert decoder.residual == "data: {\"x\""
        assert list(decoder.feed(b": 1}\n")) == ["data: {\"x\": 1}"]
        assert decoder.residual == ""

    def test_strips_trailing_carriage_return(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"one\r\ntwo\r\n")) == ["one", "two"]

    def test_crlf_split_across_chunks(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"line\r")) == []
        assert list(decoder.feed(b"\nnext")) == ["line"]
        assert decoder.residual == "next"

    def test_only_one_carriage_return_removed(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"x\r\r\n")) == ["x\r"]

    def test_blank_lines_are_emitted(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"a\n\nb\n")) == ["a", "", "b"]

    def test_multibyte_character_split_across_chunks(self):
        encoded = "héllo ✓\n".encode()
        chunks = [encoded[i:i + 1] for i in range(len(encoded))]
        assert feed_all(FrameDecoder(), chunks) == ["héllo ✓"]

    def test_invalid_bytes_are_replaced_not_raised(self):
        lines = feed_all(FrameDecoder(), [b"bad \xff byte\n"])
        assert lines == ["bad � byte"]

    def test_flush_emits_unterminated_final_line(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"first\nlast")) == ["first"]
        assert list(decoder.flush()) == ["last"]
        assert decoder.residual == ""

    def test_flush_skips_whitespace_residual(self):
        decoder = FrameDecoder()
        list(decoder.feed(b"first\n  "))
        assert list(decoder.flush()) == []

    def test_flush_runs_once(self):
        decoder = FrameDecoder()
        list(decoder.feed(b"a\nb"))
        assert list(decoder.flush()) == ["b"]
        assert list(decoder.flush()) == []

    def test_flush_does_not_reemit_drained_lines(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"a\nb\n")) == ["a", "b"]
        assert list(decoder.flush()) == []

    def test_feed_after_flush_raises(self):
        decoder = FrameDecoder()
        list(decoder.flush())
        with pytest.raises(RuntimeError, match="already flushed"):
            decoder.feed(b"late\n")

    def test_discard_drops_residual(self):
        decoder = FrameDecoder()
        list(decoder.feed(b"done\ndata: {\"partial"))
        assert decoder.discard() == len("data: {\"partial")
        assert decoder.residual == ""
        assert list(decoder.flush()) == []

    def test_reset_allows_reuse(self):
        decoder = FrameDecoder()
        list(decoder.feed(b"stale"))
        list(decoder.flush())
        decoder.reset()
        assert list(decoder.feed(b"fresh\n")) == ["fresh"]

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
    def test_chunk_size_does_not_change_lines(self, size):
        body = b"data: one\r\n: comment\n\ndata: two\ndata: tail"
        chunks = [body[i:i + size] for i in range(0, len(body), size)]
        assert feed_all(FrameDecoder(), chunks) == feed_all(FrameDecoder(), [body])

    @pytest.mark.asyncio
    async def test_iter_lines_consumes_async_source(self):
        async def source():
            yield b"a\nb"
            yield b"c\nd"

        decoder = FrameDecoder()
        lines = [line async for line in decoder.iter_lines(source())]
        assert lines == ["a", "bc", "d"]
        assert decoder.finished
