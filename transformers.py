"""
Object Transformers
===================

Convert values to the byte sequences that get framed and compressed, and back.
"""

import json
import logging
import pickle
from typing import Any, Dict, Type

from base_classes import ObjectTransformer
from errors import ObjectTransformError

logger = logging.getLogger(__name__)


class PickleTransformer(ObjectTransformer):
    """Pickle-based transformer (default).

    Unpickling runs arbitrary code from the artifact; only load data from
    trusted sources.
    """

    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        if protocol < 0 or protocol > pickle.HIGHEST_PROTOCOL:
            raise ValueError(f"pickle protocol must be between 0 and {pickle.HIGHEST_PROTOCOL}")
        self.protocol = protocol

    def encode(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise ObjectTransformError(
                f"Value of type {type(value).__name__} is not picklable", cause=e
            ) from e

    def decode(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError) as e:
            raise ObjectTransformError("Payload is not a valid pickle", cause=e) from e


class JsonTransformer(ObjectTransformer):
    """Compact JSON transformer with sorted keys"""

    name = "json"

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    def encode(self, value: Any) -> bytes:
        try:
            return json.dumps(value, separators=(',', ':'), sort_keys=True,
                              ensure_ascii=False).encode(self.encoding)
        except (TypeError, ValueError) as e:
            raise ObjectTransformError(
                f"Value of type {type(value).__name__} is not JSON serializable", cause=e
            ) from e

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode(self.encoding))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ObjectTransformError("Payload is not valid JSON", cause=e) from e


class BytesTransformer(ObjectTransformer):
    """Identity transformer for values that already are bytes"""

    name = "bytes"

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise ObjectTransformError(
                f"Expected a bytes-like value, got {type(value).__name__}"
            )
        return bytes(value)

    def decode(self, data: bytes) -> bytes:
        return bytes(data)


_TRANSFORMERS: Dict[str, Type[ObjectTransformer]] = {
    PickleTransformer.name: PickleTransformer,
    JsonTransformer.name: JsonTransformer,
    BytesTransformer.name: BytesTransformer,
}


def available_transformers() -> list:
    return sorted(_TRANSFORMERS)


def get_transformer(name: str, **kwargs) -> ObjectTransformer:
    """Create a transformer by name"""
    try:
        transformer_class = _TRANSFORMERS[name]
    except KeyError:
        raise ValueError(f"Unknown transformer: {name}") from None
    logger.debug(f"Using {name} transformer")
    return transformer_class(**kwargs)
