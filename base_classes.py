"""
Base Classes for Framed Serialization
=====================================

Contains core data structures and abstract base classes used throughout the library.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ArtifactInfo:
    """Description of a persisted artifact's framing"""
    tag: int
    format_name: str
    size: int  # Total artifact size including the tag byte
    raw_size: Optional[int] = None  # Decoded payload size, when known

    @property
    def payload_size(self) -> int:
        return max(self.size - 1, 0)

    @property
    def compression_ratio(self) -> float:
        if self.raw_size:
            return self.size / self.raw_size
        return 1.0


class ObjectTransformer(ABC):
    """Abstract base class for value <-> byte sequence transformers"""

    name: str = ""

    @abstractmethod
    def encode(self, value: Any) -> bytes:
        pass

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        pass
