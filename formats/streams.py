"""
Codec Stream Adapters
=====================

Open encode/decode streams for each primary codec and for the Huffman-only
post-process layer. Every opener takes the stream it wraps plus the codec
settings and returns a file-like object. None of the returned streams close
the stream they wrap; the framer owns that.
"""

import bz2
import gzip
import io
import logging
import lzma
import zlib

import lz4.frame
import zstandard as zstd

from formats.rle import RleReader, RleWriter

logger = logging.getLogger(__name__)

RAW_DEFLATE_WBITS = -zlib.MAX_WBITS


class PassthroughWriter(io.RawIOBase):
    """Forwards bytes unchanged (the 'none' codec)"""

    def __init__(self, sink):
        self._sink = sink

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed stream")
        self._sink.write(b)
        return memoryview(b).nbytes

    def flush(self):
        if not self.closed:
            self._sink.flush()


class PassthroughReader(io.RawIOBase):
    """
    Returns the wrapped stream's bytes unchanged.

    Short reads from the source are retried, so readinto() only returns
    less than requested at end of stream.
    """

    def __init__(self, source):
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        view = memoryview(b).cast('B')
        produced = 0
        while produced < len(view):
            data = self._source.read(len(view) - produced)
            if not data:
                break
            view[produced:produced + len(data)] = data
            produced += len(data)
        return produced


class CompressorWriter(io.RawIOBase):
    """
    Adapts a one-shot compressor object (compress()/flush() protocol, as
    exposed by zlib, lz4.frame and zstandard) to a writable stream.

    flush() only flushes the sink; the compressor's internal state is
    finalized on close() so that explicit flushes never change the
    encoded size.
    """

    def __init__(self, sink, compressor, header: bytes = b""):
        self._sink = sink
        self._compressor = compressor
        self._finished = False
        if header:
            self._sink.write(header)

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed stream")
        data = self._compressor.compress(b)
        if data:
            self._sink.write(data)
        return memoryview(b).nbytes

    def flush(self):
        if not self.closed:
            self._sink.flush()

    def close(self):
        if self.closed:
            return
        try:
            if not self._finished:
                self._finished = True
                tail = self._compressor.flush()
                if tail:
                    self._sink.write(tail)
                self._sink.flush()
        finally:
            super().close()


class DeflateReader(io.RawIOBase):
    """Inflates a deflate stream (raw by default) pulled from the source"""

    def __init__(self, source, wbits: int = RAW_DEFLATE_WBITS, chunk_size: int = 64 * 1024):
        self._source = source
        self._decompressor = zlib.decompressobj(wbits)
        self._chunk_size = chunk_size

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        view = memoryview(b).cast('B')
        produced = 0
        while produced < len(view) and not self._decompressor.eof:
            data = self._decompressor.unconsumed_tail
            if not data:
                data = self._source.read(self._chunk_size)
                if not data:
                    raise EOFError("Compressed stream ended before the end-of-stream marker was reached")
            out = self._decompressor.decompress(data, len(view) - produced)
            view[produced:produced + len(out)] = out
            produced += len(out)
        return produced


# Primary codecs

def open_none_encoder(sink, settings):
    return PassthroughWriter(sink)


def open_none_decoder(source, settings):
    return PassthroughReader(source)


def open_gzip_encoder(sink, settings):
    # Empty filename and fixed mtime keep the header identical across runs and sinks
    return gzip.GzipFile(filename='', mode='wb', fileobj=sink,
                         compresslevel=settings.gzip_level, mtime=0)


def open_gzip_decoder(source, settings):
    # GzipFile expects full reads when parsing the header
    return gzip.GzipFile(filename='', mode='rb', fileobj=PassthroughReader(source))


def open_xz_encoder(sink, settings):
    return lzma.LZMAFile(sink, mode='wb', format=lzma.FORMAT_XZ, preset=settings.xz_preset)


def open_xz_decoder(source, settings):
    return lzma.LZMAFile(source, mode='rb', format=lzma.FORMAT_XZ)


def open_bzip2_encoder(sink, settings):
    return bz2.BZ2File(sink, mode='wb', compresslevel=settings.bzip2_level)


def open_bzip2_decoder(source, settings):
    return bz2.BZ2File(source, mode='rb')


def open_rle_encoder(sink, settings):
    return RleWriter(sink, flush_policy=settings.rle_flush_policy)


def open_rle_decoder(source, settings):
    return RleReader(source, chunk_size=settings.read_chunk_size)


def open_lz4_encoder(sink, settings):
    compressor = lz4.frame.LZ4FrameCompressor(compression_level=settings.lz4_level)
    return CompressorWriter(sink, compressor, header=compressor.begin())


def open_lz4_decoder(source, settings):
    return lz4.frame.LZ4FrameFile(source, mode='rb')


def open_zstd_encoder(sink, settings):
    compressor = zstd.ZstdCompressor(level=settings.zstd_level).compressobj()
    return CompressorWriter(sink, compressor)


def open_zstd_decoder(source, settings):
    return zstd.ZstdDecompressor().stream_reader(source, read_size=settings.read_chunk_size,
                                                 closefd=False)


# Huffman-only deflate (primary codec and post-process layer)

def open_huffman_encoder(sink, settings):
    compressor = zlib.compressobj(settings.huffman_level, zlib.DEFLATED, RAW_DEFLATE_WBITS,
                                  zlib.DEF_MEM_LEVEL, zlib.Z_HUFFMAN_ONLY)
    return CompressorWriter(sink, compressor)


def open_huffman_decoder(source, settings):
    return DeflateReader(source, chunk_size=settings.read_chunk_size)
