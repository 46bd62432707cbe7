"""
Unit tests for the streaming run-length codec
=============================================

Tests for formats/rle.py including:
- (count, value) pair layout and run splitting
- Flush policies
- Clean end of stream versus corruption
- Bulk read semantics
"""

import io
import math

import pytest

from errors import CorruptRleStreamError, TruncatedRleStreamError
from formats.rle import (
    MAX_RUN, RleFlushPolicy, RleReader, RleWriter, rle_decode, rle_encode
)


class TestRleEncoding:
    """Test RleWriter output"""

    def test_known_example(self):
        """Test the reference example AAAB"""
        assert rle_encode(bytes([0x41, 0x41, 0x41, 0x42])) == bytes([0x03, 0x41, 0x01, 0x42])

    def test_empty_input_emits_nothing(self):
        """Test that encoding zero bytes emits no pairs"""
        assert rle_encode(b"") == b""

    def test_single_byte(self):
        """Test a lone byte becomes one pair of count 1"""
        assert rle_encode(b"\xff") == b"\x01\xff"

    def test_alternating_bytes(self):
        """Test that every change of value starts a new run"""
        assert rle_encode(b"ABAB") == b"\x01A\x01B\x01A\x01B"

    @pytest.mark.parametrize("length", [1, 2, 254, 255, 256, 510, 511, 1000, 65536])
    def test_long_runs_split_into_bounded_pairs(self, length):
        """Test that N identical bytes emit ceil(N/255) pairs summing to N"""
        encoded = rle_encode(b"\x07" * length)

        counts = list(encoded[0::2])
        values = set(encoded[1::2])

        assert len(counts) == math.ceil(length / MAX_RUN)
        assert all(1 <= count <= MAX_RUN for count in counts)
        assert sum(counts) == length
        assert values == {0x07}

    def test_only_last_pair_is_short(self):
        """Test that split runs fill every pair but the last"""
        encoded = rle_encode(b"z" * 600)
        assert encoded == bytes([255, 0x7A, 255, 0x7A, 90, 0x7A])

    def test_run_continues_across_writes(self):
        """Test that separate write() calls extend the same run"""
        sink = io.BytesIO()
        with RleWriter(sink) as writer:
            writer.write(b"A" * 100)
            writer.write(b"A" * 100)
            writer.write(b"B")
        assert sink.getvalue() == bytes([200, 0x41, 1, 0x42])

    def test_full_run_then_same_byte_across_writes(self):
        """Test that a full pending run is flushed before the next identical byte"""
        sink = io.BytesIO()
        with RleWriter(sink) as writer:
            writer.write(b"Q" * 255)
            writer.write(b"Q")
        assert sink.getvalue() == bytes([255, 0x51, 1, 0x51])

    def test_write_returns_length(self):
        """Test that write() reports every byte as consumed"""
        writer = RleWriter(io.BytesIO())
        assert writer.write(b"hello") == 5
        assert writer.write(memoryview(b"xy")) == 2
        writer.close()

    def test_pending_run_held_until_close(self):
        """Test that the last run only reaches the sink on close"""
        sink = io.BytesIO()
        writer = RleWriter(sink)
        writer.write(b"CCC")
        assert sink.getvalue() == b""
        writer.close()
        assert sink.getvalue() == b"\x03C"

    def test_close_leaves_sink_open_by_default(self):
        """Test that the sink is not closed unless requested"""
        sink = io.BytesIO()
        RleWriter(sink).close()
        assert not sink.closed

    def test_closefd_closes_sink(self):
        """Test that closefd=True closes the sink on close"""
        sink = io.BytesIO()
        RleWriter(sink, closefd=True).close()
        assert sink.closed

    def test_write_after_close_fails(self):
        """Test that writing to a closed encoder raises ValueError"""
        writer = RleWriter(io.BytesIO())
        writer.close()
        with pytest.raises(ValueError):
            writer.write(b"x")

    def test_failed_close_still_closes_sink(self):
        """Test that a write error on close is raised once and the sink is still closed"""
        class FullDisk(io.BytesIO):
            def write(self, b):
                raise OSError("disk full")

        sink = FullDisk()
        writer = RleWriter(sink, closefd=True)
        writer.write(b"AAA")

        with pytest.raises(OSError, match="disk full"):
            writer.close()
        assert writer.closed
        assert sink.closed


class TestRleFlushPolicy:
    """Test explicit flush behaviour"""

    def test_split_run_flush_emits_pending_run(self):
        """Test that SPLIT_RUN makes the pending run visible and splits it"""
        sink = io.BytesIO()
        writer = RleWriter(sink, flush_policy=RleFlushPolicy.SPLIT_RUN)
        writer.write(b"AA")
        writer.flush()
        assert sink.getvalue() == b"\x02A"

        writer.write(b"A")
        writer.close()
        assert sink.getvalue() == b"\x02A\x01A"

    def test_buffer_flush_keeps_run_pending(self):
        """Test that BUFFER keeps counting across flushes"""
        sink = io.BytesIO()
        writer = RleWriter(sink, flush_policy=RleFlushPolicy.BUFFER)
        writer.write(b"AA")
        writer.flush()
        assert sink.getvalue() == b""

        writer.write(b"A")
        writer.close()
        assert sink.getvalue() == b"\x03A"

    def test_default_policy_is_split_run(self):
        """Test the default flush policy"""
        assert RleWriter(io.BytesIO()).flush_policy is RleFlushPolicy.SPLIT_RUN

    def test_policy_accepts_value_string(self):
        """Test that policies can be given by their configuration value"""
        writer = RleWriter(io.BytesIO(), flush_policy="buffer")
        assert writer.flush_policy is RleFlushPolicy.BUFFER

    def test_flush_with_nothing_pending(self):
        """Test that flushing an idle encoder emits nothing"""
        sink = io.BytesIO()
        writer = RleWriter(sink)
        writer.flush()
        writer.close()
        assert sink.getvalue() == b""


class TestRleDecoding:
    """Test RleReader behaviour"""

    def test_known_example(self):
        """Test decoding the reference example"""
        assert rle_decode(bytes([0x03, 0x41, 0x01, 0x42])) == b"AAAB"

    def test_empty_input_is_clean_end(self):
        """Test that an empty stream decodes to zero bytes"""
        assert rle_decode(b"") == b""

    def test_round_trip_mixed_content(self):
        """Test round trip of runs, singletons and every byte value"""
        data = bytes(range(256)) * 3 + b"\x00" * 1000 + b"xyz" + b"\xff" * 300
        assert rle_decode(rle_encode(data)) == data

    def test_zero_count_is_corruption(self):
        """Test that a count byte of 0 is always rejected"""
        with pytest.raises(CorruptRleStreamError, match="Invalid RLE count: 0") as exc_info:
            rle_decode(b"\x00\x41")
        assert not isinstance(exc_info.value, TruncatedRleStreamError)
        assert exc_info.value.error_code == "rle_zero_count"

    def test_zero_count_after_valid_pairs(self):
        """Test that corruption mid-stream is still detected"""
        with pytest.raises(CorruptRleStreamError):
            rle_decode(b"\x02A\x00B")

    def test_missing_value_byte_is_truncation(self):
        """Test that EOF after a count byte is an unexpected EOF"""
        with pytest.raises(TruncatedRleStreamError, match="Unexpected EOF") as exc_info:
            rle_decode(b"\x03")
        assert isinstance(exc_info.value, CorruptRleStreamError)
        assert isinstance(exc_info.value, EOFError)
        assert exc_info.value.error_code == "rle_truncated"

    def test_truncation_after_valid_pairs(self):
        """Test truncation following complete pairs"""
        with pytest.raises(TruncatedRleStreamError):
            rle_decode(b"\x02A\x05")

    def test_zero_length_request_returns_zero(self):
        """Test that asking for 0 bytes is not end of stream"""
        reader = RleReader(io.BytesIO(b"\x03A"))
        assert reader.readinto(bytearray(0)) == 0
        assert reader.read() == b"AAA"

    def test_short_read_at_end_of_stream(self):
        """Test that a read crossing the end returns only what was produced"""
        reader = RleReader(io.BytesIO(b"\x03A"))
        buffer = bytearray(10)
        assert reader.readinto(buffer) == 3
        assert buffer[:3] == b"AAA"
        assert reader.readinto(buffer) == 0

    def test_read_splits_runs_across_calls(self):
        """Test that a run may be consumed over several reads"""
        reader = RleReader(io.BytesIO(b"\x05Z\x02Y"))
        assert reader.read(2) == b"ZZ"
        assert reader.read(4) == b"ZZZY"
        assert reader.read(4) == b"Y"
        assert reader.read(4) == b""

    def test_tiny_input_chunks(self):
        """Test decoding when the source is read one byte at a time"""
        data = b"ab" * 50 + b"c" * 700
        reader = RleReader(io.BytesIO(rle_encode(data)), chunk_size=1)
        assert reader.read() == data

    def test_invalid_chunk_size(self):
        """Test that a non-positive chunk size is rejected"""
        with pytest.raises(ValueError, match="chunk_size must be positive"):
            RleReader(io.BytesIO(), chunk_size=0)

    def test_closefd_closes_source(self):
        """Test that closefd=True closes the source on close"""
        source = io.BytesIO(b"")
        RleReader(source, closefd=True).close()
        assert source.closed
