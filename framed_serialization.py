#!/usr/bin/env python3
"""
Framed Serialization
====================

Persist a value's byte representation behind a one-byte format tag, with
optional automatic selection of the smallest compressed form.

Usage:
    from framed_serialization import serialize, deserialize, CompressionMode

    serialize(data, "data.bin", CompressionMode.AUTO)
    value = deserialize("data.bin")

Artifacts are self-describing: deserialize() needs no mode argument. The
decoded value is returned as-is; checking its type is up to the caller.
"""

import io
import logging
import os
from contextlib import contextmanager
from enum import Enum
from typing import Any, Optional, Union

from base_classes import ArtifactInfo, ObjectTransformer
from formats.registry import DEFAULT_REGISTRY, CodecId, Format, FormatRegistry
from pipeline.stages.framing import StreamFramer
from pipeline.stages.selection import FormatSelector, SelectionResult
from serializer_configs import SerializerConfig
from transformers import get_transformer

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

PLAIN_FORMAT = Format(CodecId.NONE)


class CompressionMode(Enum):
    """How serialize() chooses a Format when none is given explicitly"""
    NONE = "none"  # Uncompressed, tag 0x00
    AUTO = "auto"  # Smallest of the configured candidates


ModeSpec = Union[CompressionMode, Format, str, bool, None]


@contextmanager
def _open_destination(destination):
    if isinstance(destination, (str, os.PathLike)):
        with open(destination, 'wb') as f:
            yield f
    else:
        yield destination


@contextmanager
def _open_source(source):
    if isinstance(source, (str, os.PathLike)):
        with open(source, 'rb') as f:
            yield f
    else:
        yield source


class FramedSerializer:
    """Composes the object transformer, the format selector and the stream framer"""

    def __init__(self,
                 config: Optional[SerializerConfig] = None,
                 registry: FormatRegistry = DEFAULT_REGISTRY,
                 transformer: Optional[ObjectTransformer] = None):
        self.config = config or SerializerConfig()
        self.registry = registry
        self.framer = StreamFramer(registry, self.config.codec_settings)
        self.selector = FormatSelector(self.framer, self.config.candidate_formats(),
                                       max_workers=self.config.probe_workers)
        if transformer is None:
            kwargs = {}
            if self.config.transformer == 'pickle':
                kwargs['protocol'] = self.config.pickle_protocol
            transformer = get_transformer(self.config.transformer, **kwargs)
        self.transformer = transformer
        self.last_selection: Optional[SelectionResult] = None

    def resolve_mode(self, mode: ModeSpec = None) -> Union[CompressionMode, Format]:
        """
        Normalize a mode argument.

        Returns CompressionMode.AUTO or the registered Format to encode with.
        Unregistered formats raise UnregisteredFormatError before any I/O.
        """
        if mode is None:
            mode = self.config.default_mode
        if isinstance(mode, bool):
            mode = CompressionMode.AUTO if mode else CompressionMode.NONE
        if isinstance(mode, str):
            try:
                mode = CompressionMode(mode.strip().lower())
            except ValueError:
                mode = Format.parse(mode)
        if mode is CompressionMode.AUTO:
            return mode
        if mode is CompressionMode.NONE:
            mode = PLAIN_FORMAT
        return self.registry.resolve(mode)

    def encode(self, value: Any, mode: ModeSpec = None) -> tuple:
        """Transform value and decide its Format; nothing is written yet"""
        plan = self.resolve_mode(mode)
        raw = self.transformer.encode(value)
        if plan is CompressionMode.AUTO:
            self.last_selection = self.selector.select(raw)
            return raw, self.last_selection.winner
        return raw, plan

    def serialize(self, value: Any, destination, mode: ModeSpec = None) -> Format:
        """
        Write value to destination (a path or writable binary stream).

        Returns:
            The Format the artifact was written with
        """
        raw, fmt = self.encode(value, mode)
        with _open_destination(destination) as out:
            self.framer.write(raw, out, fmt)
        if isinstance(destination, (str, os.PathLike)):
            logger.info(f"Wrote {destination} as {fmt} ({len(raw):,} raw bytes)")
        return fmt

    def deserialize(self, source) -> Any:
        """Read a value back from a path or readable binary stream"""
        with _open_source(source) as src:
            with self.framer.open_decoder(src) as chain:
                raw = chain.read()
        return self.transformer.decode(raw)

    def dumps(self, value: Any, mode: ModeSpec = None) -> bytes:
        buffer = io.BytesIO()
        self.serialize(value, buffer, mode)
        return buffer.getvalue()

    def loads(self, data: bytes) -> Any:
        return self.deserialize(io.BytesIO(data))

    def inspect(self, source, decode: bool = False) -> ArtifactInfo:
        """Describe an artifact's framing; decode=True also measures the payload"""
        with _open_source(source) as src:
            data = src.read()
        fmt = self.framer.read_tag(io.BytesIO(data[:1]))
        info = ArtifactInfo(tag=self.registry.tag_for(fmt), format_name=fmt.name, size=len(data))
        if decode:
            info.raw_size = len(self.framer.decode(data))
        return info


def _serializer(config: Optional[SerializerConfig],
                transformer: Optional[ObjectTransformer]) -> FramedSerializer:
    if config is None:
        config = SerializerConfig.from_env()
    return FramedSerializer(config, transformer=transformer)


def serialize(value: Any, destination, mode: ModeSpec = None, *,
              transformer: Optional[ObjectTransformer] = None,
              config: Optional[SerializerConfig] = None) -> Format:
    """Write value to a path or binary stream; see FramedSerializer.serialize"""
    return _serializer(config, transformer).serialize(value, destination, mode)


def deserialize(source, *,
                transformer: Optional[ObjectTransformer] = None,
                config: Optional[SerializerConfig] = None) -> Any:
    """Read a value from a path or binary stream; the format comes from its tag"""
    return _serializer(config, transformer).deserialize(source)


def dumps(value: Any, mode: ModeSpec = None, *,
          transformer: Optional[ObjectTransformer] = None,
          config: Optional[SerializerConfig] = None) -> bytes:
    return _serializer(config, transformer).dumps(value, mode)


def loads(data: bytes, *,
          transformer: Optional[ObjectTransformer] = None,
          config: Optional[SerializerConfig] = None) -> Any:
    return _serializer(config, transformer).loads(data)
