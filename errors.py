"""
Error Taxonomy for Framed Serialization
=======================================

Every failure raised by this library derives from SerializationError.
None of them are retryable: a corrupt artifact or an unencodable value
fails the same way on every attempt. Failures of the underlying storage
or codec libraries (OSError, zlib.error, lzma.LZMAError, ...) are not
wrapped and propagate unchanged.
"""

import time
from typing import Any, Dict, Optional


class SerializationError(Exception):
    """Base class for non-retryable serialization errors"""

    default_code: Optional[str] = None

    def __init__(self, message: str, cause: Optional[Exception] = None,
                 error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """
        Initialize a serialization error.

        Args:
            message: Error description
            cause: Original exception that caused this error
            error_code: Specific error code for categorization
            details: Additional error context
        """
        super().__init__(message)
        self.cause = cause
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.timestamp = time.time()

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        if self.cause:
            return f"{base_msg} (caused by {type(self.cause).__name__}: {self.cause})"
        return base_msg

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(message={self.args[0]!r}, "
                f"cause={self.cause!r}, error_code={self.error_code!r}, "
                f"details={self.details!r})")

    def log_context(self) -> Dict[str, Any]:
        """Get error context for structured logging"""
        return {
            'error_type': type(self).__name__,
            'error_code': self.error_code,
            'message': str(self),
            'timestamp': self.timestamp,
            'details': self.details,
            'cause': str(self.cause) if self.cause else None
        }


class EmptyArtifactError(SerializationError, EOFError):
    """The artifact holds zero bytes, so there is no tag to read"""

    default_code = "empty_artifact"

    def __init__(self, message: str = "Artifact is empty: no format tag present"):
        super().__init__(message)


class UnknownFormatTagError(SerializationError):
    """The leading tag byte does not name any registered format"""

    default_code = "unknown_tag"

    def __init__(self, tag: int):
        super().__init__(f"Unknown format tag: 0x{tag:02x}", details={'tag': tag})
        self.tag = tag


class UnregisteredFormatError(SerializationError, ValueError):
    """A format was requested for encoding that has no tag in the registry"""

    default_code = "unregistered_format"

    def __init__(self, fmt: Any):
        super().__init__(f"Format {fmt} is not registered", details={'format': str(fmt)})
        self.format = fmt


class CorruptRleStreamError(SerializationError):
    """The run-length stream violates the (count, value) pair layout"""

    default_code = "rle_zero_count"


class TruncatedRleStreamError(CorruptRleStreamError, EOFError):
    """The stream ended between a run's count byte and its value byte"""

    default_code = "rle_truncated"


class ObjectTransformError(SerializationError):
    """The value could not be converted to or from its byte representation"""

    default_code = "transform_failed"
