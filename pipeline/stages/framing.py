"""
Stream Framing
==============

Self-describing artifacts: one tag byte naming the Format, followed by the
Format's encoded bytes. The tag drives construction of the decode chain.
"""

import io
import logging
from typing import List, Optional

from errors import EmptyArtifactError
from formats.registry import DEFAULT_REGISTRY, Format, FormatRegistry
from serializer_configs import CodecSettings

logger = logging.getLogger(__name__)


class EncodeChain(io.RawIOBase):
    """
    Writable end of a Format's encode pipeline.

    Raw bytes written here pass through the primary codec, then the
    post-process layer if any, into the destination. close() closes each
    layer starting with the one nearest the raw data, so every codec has
    discharged its buffered state before the next one finishes. The
    destination is flushed but stays open.
    """

    def __init__(self, fmt: Format, tag: int, streams: List, destination):
        self.format = fmt
        self.tag = tag
        self._streams = streams  # Raw-facing layer first
        self._destination = destination
        self._finished = False
        self.bytes_in = 0

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed EncodeChain")
        n = memoryview(b).nbytes
        self._streams[0].write(b)
        self.bytes_in += n
        return n

    def flush(self):
        if self._finished or self.closed:
            return
        for stream in self._streams:
            stream.flush()
        self._destination.flush()

    def close(self):
        if self.closed:
            return
        try:
            for stream in self._streams:
                stream.close()
            self._destination.flush()
        finally:
            self._finished = True
            super().close()
        logger.debug(f"Closed {self.format} encode chain after {self.bytes_in} raw bytes")


class DecodeChain(io.RawIOBase):
    """Readable end of a Format's decode pipeline, yielding the raw bytes"""

    def __init__(self, fmt: Format, tag: int, streams: List):
        self.format = fmt
        self.tag = tag
        self._streams = streams  # Raw-facing layer first

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self.closed:
            raise ValueError("read from closed DecodeChain")
        return self._streams[0].readinto(b)

    def close(self):
        if self.closed:
            return
        try:
            for stream in self._streams:
                stream.close()
        finally:
            super().close()


class StreamFramer:
    """
    Builds encode and decode chains from a Format or a tag byte.

    Layer order comes from the registry: on encode the primary codec wraps
    the post-process layer, which wraps the destination; on decode the
    post-process layer is undone first.
    """

    def __init__(self,
                 registry: FormatRegistry = DEFAULT_REGISTRY,
                 settings: Optional[CodecSettings] = None):
        self.registry = registry
        self.settings = settings or CodecSettings()

    def open_encoder(self, destination, fmt) -> EncodeChain:
        """
        Write the tag byte and return the encode chain over destination.

        Args:
            destination: Writable binary stream
            fmt: Format or format name; must be registered

        Returns:
            EncodeChain accepting raw bytes; the caller must close it
        """
        fmt = self.registry.resolve(fmt)
        tag = self.registry.tag_for(fmt)
        layers = self.registry.layers(fmt)

        destination.write(bytes((tag,)))

        streams = []
        sink = destination
        for layer in reversed(layers):
            sink = layer.open_encoder(sink, self.settings)
            streams.append(sink)
        streams.reverse()

        logger.debug(f"Opened {fmt} encode chain (tag 0x{tag:02x}, {len(streams)} layers)")
        return EncodeChain(fmt, tag, streams, destination)

    def read_tag(self, source) -> Format:
        """Read exactly one byte from source and resolve it to a Format"""
        head = source.read(1)
        if not head:
            raise EmptyArtifactError()
        return self.registry.format_for(head[0])

    def open_decoder(self, source) -> DecodeChain:
        """
        Read the tag byte and return the matching decode chain over source.

        Raises:
            EmptyArtifactError: source holds no bytes at all
            UnknownFormatTagError: the tag byte is not registered
        """
        fmt = self.read_tag(source)
        tag = self.registry.tag_for(fmt)

        streams = []
        src = source
        for layer in reversed(self.registry.layers(fmt)):
            src = layer.open_decoder(src, self.settings)
            streams.append(src)
        streams.reverse()

        logger.debug(f"Opened {fmt} decode chain (tag 0x{tag:02x})")
        return DecodeChain(fmt, tag, streams)

    def write(self, raw: bytes, destination, fmt) -> int:
        """Frame raw bytes into destination; returns the raw size"""
        with self.open_encoder(destination, fmt) as chain:
            chain.write(raw)
        return len(raw)

    def encode(self, raw: bytes, fmt) -> bytes:
        """Frame raw bytes into an in-memory artifact"""
        buffer = io.BytesIO()
        self.write(raw, buffer, fmt)
        return buffer.getvalue()

    def decode(self, artifact: bytes) -> bytes:
        """Recover the raw bytes of an in-memory artifact"""
        with self.open_decoder(io.BytesIO(artifact)) as chain:
            return chain.read()
