"""
Codec Registry and Tag Protocol
===============================

Immutable bidirectional mapping between Formats and the one-byte tags that
lead every persisted artifact. A Format is a primary codec optionally
followed by a Huffman-only deflate pass; its encode pipeline is the ordered
tuple of codec layers (primary first, post-process last).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Tuple

from errors import UnknownFormatTagError, UnregisteredFormatError
from formats import streams

logger = logging.getLogger(__name__)

HUFFMAN_SUFFIX = "+huffman"


class CodecId(Enum):
    """Primary byte-stream codecs"""
    NONE = "none"
    GZIP = "gzip"
    XZ = "xz"
    BZIP2 = "bzip2"
    HUFFMAN_ONLY = "huffman"
    RLE = "rle"
    LZ4 = "lz4"
    ZSTD = "zstd"


@dataclass(frozen=True)
class Format:
    """A primary codec plus an optional Huffman-only post-process layer"""
    codec: CodecId
    huffman: bool = False

    @property
    def name(self) -> str:
        return self.codec.value + (HUFFMAN_SUFFIX if self.huffman else "")

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, name: str) -> "Format":
        """Parse a name such as 'gzip' or 'xz+huffman'"""
        text = name.strip().lower()
        huffman = text.endswith(HUFFMAN_SUFFIX)
        if huffman:
            text = text[:-len(HUFFMAN_SUFFIX)]
        try:
            return cls(CodecId(text), huffman)
        except ValueError:
            raise ValueError(f"Unknown format name: {name}") from None


@dataclass(frozen=True)
class CodecSpec:
    """Stream constructors for one codec layer"""
    name: str
    open_encoder: Callable
    open_decoder: Callable


CODECS: Mapping[CodecId, CodecSpec] = MappingProxyType({
    CodecId.NONE: CodecSpec("none", streams.open_none_encoder, streams.open_none_decoder),
    CodecId.GZIP: CodecSpec("gzip", streams.open_gzip_encoder, streams.open_gzip_decoder),
    CodecId.XZ: CodecSpec("xz", streams.open_xz_encoder, streams.open_xz_decoder),
    CodecId.BZIP2: CodecSpec("bzip2", streams.open_bzip2_encoder, streams.open_bzip2_decoder),
    CodecId.HUFFMAN_ONLY: CodecSpec("huffman", streams.open_huffman_encoder,
                                    streams.open_huffman_decoder),
    CodecId.RLE: CodecSpec("rle", streams.open_rle_encoder, streams.open_rle_decoder),
    CodecId.LZ4: CodecSpec("lz4", streams.open_lz4_encoder, streams.open_lz4_decoder),
    CodecId.ZSTD: CodecSpec("zstd", streams.open_zstd_encoder, streams.open_zstd_decoder),
})

HUFFMAN_LAYER = CODECS[CodecId.HUFFMAN_ONLY]

# Tags 0x00-0x04 and 0x11-0x13 are found in existing artifacts and must never change.
DEFAULT_TAGS: Tuple[Tuple[Format, int], ...] = (
    (Format(CodecId.NONE), 0x00),
    (Format(CodecId.GZIP), 0x01),
    (Format(CodecId.XZ), 0x02),
    (Format(CodecId.BZIP2), 0x03),
    (Format(CodecId.HUFFMAN_ONLY), 0x04),
    (Format(CodecId.RLE), 0x05),
    (Format(CodecId.LZ4), 0x06),
    (Format(CodecId.ZSTD), 0x07),
    (Format(CodecId.GZIP, huffman=True), 0x11),
    (Format(CodecId.XZ, huffman=True), 0x12),
    (Format(CodecId.BZIP2, huffman=True), 0x13),
    (Format(CodecId.RLE, huffman=True), 0x15),
)


class FormatRegistry:
    """
    Fixed Format <-> tag table.

    Built once from (Format, tag) pairs; duplicate tags or formats are
    rejected at construction and the table cannot be changed afterwards.
    """

    def __init__(self, entries: Iterable[Tuple[Format, int]],
                 codecs: Mapping[CodecId, CodecSpec] = CODECS):
        by_format: Dict[Format, int] = {}
        by_tag: Dict[int, Format] = {}
        for fmt, tag in entries:
            if not 0 <= tag <= 255:
                raise ValueError(f"Tag for {fmt} must fit in one byte, got {tag}")
            if fmt in by_format:
                raise ValueError(f"Format {fmt} registered twice")
            if tag in by_tag:
                raise ValueError(f"Tag 0x{tag:02x} collides: {by_tag[tag]} and {fmt}")
            if fmt.codec not in codecs:
                raise ValueError(f"No codec available for {fmt}")
            if fmt.huffman and fmt.codec in (CodecId.NONE, CodecId.HUFFMAN_ONLY):
                raise ValueError(f"{fmt} cannot take a Huffman post-process layer")
            by_format[fmt] = tag
            by_tag[tag] = fmt

        self._by_format = MappingProxyType(by_format)
        self._by_tag = MappingProxyType(by_tag)
        self._codecs = codecs
        logger.debug(f"Format registry built with {len(by_format)} formats")

    def __contains__(self, fmt) -> bool:
        return fmt in self._by_format

    def __len__(self) -> int:
        return len(self._by_format)

    def tag_for(self, fmt: Format) -> int:
        """Tag byte for a format; unregistered formats are a programming error"""
        try:
            return self._by_format[fmt]
        except (KeyError, TypeError):
            raise UnregisteredFormatError(fmt) from None

    def format_for(self, tag: int) -> Format:
        """Format named by a tag byte read from an artifact"""
        try:
            return self._by_tag[tag]
        except KeyError:
            raise UnknownFormatTagError(tag) from None

    def layers(self, fmt: Format) -> Tuple[CodecSpec, ...]:
        """Codec layers in encode data-flow order: primary, then post-process"""
        self.tag_for(fmt)
        primary = self._codecs[fmt.codec]
        if fmt.huffman:
            return (primary, HUFFMAN_LAYER)
        return (primary,)

    def formats(self) -> List[Format]:
        """Registered formats in declaration order"""
        return list(self._by_format)

    def compressing_formats(self) -> List[Format]:
        return [fmt for fmt in self._by_format if fmt.codec is not CodecId.NONE]

    def resolve(self, fmt) -> Format:
        """Accept a Format or its name and check it is registered"""
        if isinstance(fmt, str):
            fmt = Format.parse(fmt)
        self.tag_for(fmt)
        return fmt

    def get_registry_stats(self) -> Dict[str, object]:
        return {
            "total_formats": len(self._by_format),
            "post_processed": sum(1 for fmt in self._by_format if fmt.huffman),
            "tags": {fmt.name: f"0x{tag:02x}" for fmt, tag in self._by_format.items()},
        }


# Global registry instance
DEFAULT_REGISTRY = FormatRegistry(DEFAULT_TAGS)


def get_format_registry() -> FormatRegistry:
    """Get the global format registry"""
    return DEFAULT_REGISTRY
