"""
Serializer Configurations
=========================

Codec settings, candidate sets for automatic format selection, and
pre-configured settings for common use cases.
"""

import json
import logging
import os
import pickle
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import psutil

from formats.registry import DEFAULT_REGISTRY, Format
from formats.rle import RleFlushPolicy
from transformers import available_transformers

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FRAMED_SERIALIZATION_CONFIG"

# Every compressing codec with and without the Huffman post-process layer
DEFAULT_CANDIDATES = [
    "gzip", "xz", "bzip2", "huffman",
    "gzip+huffman", "xz+huffman", "bzip2+huffman",
]

CLASSIC_CANDIDATES = ["gzip", "xz", "bzip2"]


@dataclass
class CodecSettings:
    """Per-codec tuning shared by every encode and decode chain"""

    gzip_level: int = 9
    xz_preset: int = 6
    bzip2_level: int = 9
    huffman_level: int = -1  # zlib default level
    lz4_level: int = 0
    zstd_level: int = 3
    rle_flush_policy: RleFlushPolicy = RleFlushPolicy.SPLIT_RUN
    read_chunk_size: int = 64 * 1024  # 64KB reads from the underlying source

    def __post_init__(self) -> None:
        """Validate codec parameters"""
        if not 0 <= self.gzip_level <= 9:
            raise ValueError("gzip_level must be between 0 and 9")
        if not 0 <= self.xz_preset <= 9:
            raise ValueError("xz_preset must be between 0 and 9")
        if not 1 <= self.bzip2_level <= 9:
            raise ValueError("bzip2_level must be between 1 and 9")
        if not -1 <= self.huffman_level <= 9:
            raise ValueError("huffman_level must be between -1 and 9")
        if not 0 <= self.lz4_level <= 16:
            raise ValueError("lz4_level must be between 0 and 16")
        if not 1 <= self.zstd_level <= 22:
            raise ValueError("zstd_level must be between 1 and 22")
        if self.read_chunk_size <= 0:
            raise ValueError("read_chunk_size must be positive")
        try:
            self.rle_flush_policy = RleFlushPolicy(self.rle_flush_policy)
        except ValueError:
            raise ValueError(f"Invalid rle_flush_policy: {self.rle_flush_policy}") from None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['rle_flush_policy'] = self.rle_flush_policy.value
        return data


@dataclass
class SerializerConfig:
    """Configuration settings for framed serialization"""

    # Automatic selection settings; declaration order breaks ties
    candidates: List[str] = field(default_factory=lambda: list(DEFAULT_CANDIDATES))
    probe_workers: int = 1

    # Mode used when serialize() is called without one: 'none', 'auto' or a format name
    default_mode: str = 'none'

    # Object transformer settings
    transformer: str = 'pickle'
    pickle_protocol: int = pickle.HIGHEST_PROTOCOL

    codec_settings: CodecSettings = field(default_factory=CodecSettings)

    def __post_init__(self) -> None:
        """Validate configuration parameters"""
        if isinstance(self.codec_settings, dict):
            self.codec_settings = CodecSettings(**self.codec_settings)

        if not self.candidates:
            raise ValueError("candidates must not be empty")
        seen = set()
        for name in self.candidates:
            fmt = Format.parse(name)
            if fmt not in DEFAULT_REGISTRY:
                raise ValueError(f"Candidate format is not registered: {name}")
            if fmt in seen:
                raise ValueError(f"Duplicate candidate format: {name}")
            seen.add(fmt)

        if self.probe_workers <= 0:
            raise ValueError("probe_workers must be positive")
        if isinstance(self.default_mode, str):
            self.default_mode = self.default_mode.strip().lower()
        if self.default_mode not in ('none', 'auto'):
            try:
                fmt = Format.parse(self.default_mode)
            except ValueError:
                raise ValueError(f"Invalid default_mode: {self.default_mode}") from None
            if fmt not in DEFAULT_REGISTRY:
                raise ValueError(f"Invalid default_mode: {self.default_mode}")
        if self.transformer not in available_transformers():
            raise ValueError(f"Invalid transformer: {self.transformer}")
        if self.pickle_protocol < 0 or self.pickle_protocol > pickle.HIGHEST_PROTOCOL:
            raise ValueError(f"pickle_protocol must be between 0 and {pickle.HIGHEST_PROTOCOL}")

    def candidate_formats(self) -> List[Format]:
        return [Format.parse(name) for name in self.candidates]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'candidates': list(self.candidates),
            'probe_workers': self.probe_workers,
            'default_mode': self.default_mode,
            'transformer': self.transformer,
            'pickle_protocol': self.pickle_protocol,
            'codec_settings': self.codec_settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SerializerConfig":
        known = {'candidates', 'probe_workers', 'default_mode', 'transformer',
                 'pickle_protocol', 'codec_settings'}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        data = dict(data)
        if 'codec_settings' in data:
            data['codec_settings'] = CodecSettings(**data['codec_settings'])
        return cls(**data)

    @classmethod
    def from_json_file(cls, path) -> "SerializerConfig":
        path = Path(path)
        with open(path, 'r') as f:
            data = json.load(f)
        logger.info(f"Loaded serializer configuration from {path}")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, var: str = CONFIG_ENV_VAR) -> "SerializerConfig":
        """Load from the JSON file named by an environment variable, or use defaults"""
        path = os.environ.get(var)
        if not path:
            logger.debug(f"{var} not set, using default configuration")
            return cls()
        return cls.from_json_file(path)


class ConfigPresets:
    """Pre-configured settings for common use cases"""

    @staticmethod
    def default() -> SerializerConfig:
        """
        Every compressing codec with and without Huffman post-processing
        """
        return SerializerConfig()

    @staticmethod
    def classic() -> SerializerConfig:
        """
        The three general-purpose codecs only
        - No Huffman post-processing
        """
        return SerializerConfig(candidates=list(CLASSIC_CANDIDATES))

    @staticmethod
    def extended() -> SerializerConfig:
        """
        Every registered compressing format, including rle, lz4 and zstd
        """
        return SerializerConfig(
            candidates=[fmt.name for fmt in DEFAULT_REGISTRY.compressing_formats()]
        )

    @staticmethod
    def fast() -> SerializerConfig:
        """
        Optimized for low latency
        - Fast codecs only
        - Parallel probing
        """
        return SerializerConfig(
            candidates=["lz4", "zstd", "gzip"],
            probe_workers=3,
            codec_settings=CodecSettings(gzip_level=1, zstd_level=1, lz4_level=0),
        )

    @staticmethod
    def archival() -> SerializerConfig:
        """
        Optimized for smallest output
        - Maximum levels everywhere
        - Automatic selection by default
        """
        return SerializerConfig(
            candidates=list(DEFAULT_CANDIDATES) + ["zstd", "rle+huffman"],
            default_mode='auto',
            codec_settings=CodecSettings(
                gzip_level=9, xz_preset=9, bzip2_level=9, huffman_level=9,
                lz4_level=16, zstd_level=19,
            ),
        )


# Rough peak working memory of one probing trial, as a multiple of the payload
TRIAL_MEMORY_FACTOR = 2
# xz at high presets allocates its dictionary up front
TRIAL_MEMORY_OVERHEAD = 100 * 1024 * 1024


class AdaptiveConfig:
    """Adjust configuration based on system resources"""

    @staticmethod
    def auto_configure(payload_size: int,
                       base: Optional[SerializerConfig] = None) -> SerializerConfig:
        """Size the probing worker pool for a payload on this machine"""
        config = replace(base) if base is not None else SerializerConfig()

        cpu_count = os.cpu_count() or 1
        available_memory = psutil.virtual_memory().available

        per_trial = payload_size * TRIAL_MEMORY_FACTOR + TRIAL_MEMORY_OVERHEAD
        memory_bound = max(1, int(available_memory // per_trial))

        config.probe_workers = max(1, min(cpu_count, len(config.candidates), memory_bound))
        if memory_bound == 1 and cpu_count > 1:
            logger.warning(
                f"Only {available_memory / 1024 / 1024:.0f} MB available, probing sequentially"
            )
        logger.debug(f"Auto-configured {config.probe_workers} probe workers "
                     f"for a {payload_size:,} byte payload")
        return config
