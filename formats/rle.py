"""
Streaming Run-Length Codec
==========================

Each run of identical bytes is stored as a (count, value) pair with count
in 1..255. Longer runs are split into consecutive pairs.
"""

import io
import logging
from enum import Enum
from itertools import groupby

from errors import CorruptRleStreamError, TruncatedRleStreamError

logger = logging.getLogger(__name__)

MAX_RUN = 255


class RleFlushPolicy(Enum):
    """What an explicit flush() does with the run still being counted"""
    SPLIT_RUN = "split_run"  # Emit the pending run, even if more identical bytes follow
    BUFFER = "buffer"        # Keep the run pending, only flush the sink


class RleWriter(io.RawIOBase):
    """
    Streaming run-length encoder.

    Bytes written are collapsed into (count, value) pairs and forwarded to
    the sink. The run being counted is emitted on close(), and on flush()
    when the flush policy is SPLIT_RUN. Splitting on flush makes buffered
    output visible downstream at the cost of breaking a run that a later
    identical byte would have extended.
    """

    def __init__(self, sink, flush_policy: RleFlushPolicy = RleFlushPolicy.SPLIT_RUN,
                 closefd: bool = False):
        self._sink = sink
        self.flush_policy = RleFlushPolicy(flush_policy)
        self._closefd = closefd
        self._last = -1
        self._count = 0

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed RleWriter")
        data = bytes(b)
        out = bytearray()
        for value, group in groupby(data):
            run = sum(1 for _ in group)
            if self._count and value == self._last:
                extend = min(run, MAX_RUN - self._count)
                self._count += extend
                run -= extend
            while run:
                if self._count:
                    out += bytes((self._count, self._last))
                self._last = value
                self._count = min(run, MAX_RUN)
                run -= self._count
        if out:
            self._sink.write(out)
        return len(data)

    def _emit_pending(self):
        if self._count:
            pair = bytes((self._count, self._last))
            self._count = 0
            self._sink.write(pair)

    def flush(self):
        if self.closed:
            return
        if self.flush_policy is RleFlushPolicy.SPLIT_RUN:
            self._emit_pending()
        self._sink.flush()

    def close(self):
        if self.closed:
            return
        try:
            self._emit_pending()
            self._sink.flush()
        finally:
            try:
                super().close()
            finally:
                if self._closefd:
                    self._sink.close()


class RleReader(io.RawIOBase):
    """
    Streaming run-length decoder matching RleWriter.

    End of input at a pair boundary is a clean end of stream. A count byte
    of 0, or end of input between a count byte and its value byte, raise
    CorruptRleStreamError (TruncatedRleStreamError for the latter).
    """

    def __init__(self, source, chunk_size: int = 64 * 1024, closefd: bool = False):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._source = source
        self._chunk_size = chunk_size
        self._closefd = closefd
        self._input = b""
        self._pos = 0
        self._remaining = 0
        self._value = 0

    def readable(self) -> bool:
        return True

    def _next_input_byte(self) -> int:
        if self._pos >= len(self._input):
            self._input = self._source.read(self._chunk_size)
            self._pos = 0
            if not self._input:
                return -1
        value = self._input[self._pos]
        self._pos += 1
        return value

    def _start_run(self) -> bool:
        """Load the next pair; False at clean end of stream"""
        count = self._next_input_byte()
        if count == -1:
            return False
        if count == 0:
            raise CorruptRleStreamError("Invalid RLE count: 0")
        value = self._next_input_byte()
        if value == -1:
            raise TruncatedRleStreamError("Unexpected EOF in RLE stream")
        self._remaining = count
        self._value = value
        return True

    def readinto(self, b) -> int:
        if self.closed:
            raise ValueError("read from closed RleReader")
        view = memoryview(b).cast('B')
        wanted = len(view)
        produced = 0
        while produced < wanted:
            if self._remaining == 0 and not self._start_run():
                break
            take = min(self._remaining, wanted - produced)
            view[produced:produced + take] = bytes((self._value,)) * take
            produced += take
            self._remaining -= take
        return produced

    def close(self):
        if self.closed:
            return
        super().close()
        if self._closefd:
            self._source.close()


def rle_encode(data: bytes) -> bytes:
    """Run-length encode a complete buffer"""
    sink = io.BytesIO()
    with RleWriter(sink) as writer:
        writer.write(data)
    return sink.getvalue()


def rle_decode(data: bytes) -> bytes:
    """Decode a complete run-length encoded buffer"""
    with RleReader(io.BytesIO(data)) as reader:
        return reader.read()
