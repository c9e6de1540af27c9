"""Error taxonomy shared by the vector math, engine, and index layers.

Every failure raised by semkit is a SemanticError carrying a machine-readable
ErrorCode plus an optional details dict. Subclasses exist per code so callers
can catch the kind they care about:

    try:
        index.search("query")
    except InvalidInputError as e:
        print(e.code, e.details)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    MODEL_NOT_LOADED = "MODEL_NOT_LOADED"
    INVALID_INPUT = "INVALID_INPUT"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"
    COMPUTATION_FAILED = "COMPUTATION_FAILED"
    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"


class SemanticError(Exception):
    """Base exception for semkit failures."""

    code: ErrorCode

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class ModelNotLoadedError(SemanticError):
    """Raised when the embedding model has not been initialized."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.MODEL_NOT_LOADED, details=details)


class InvalidInputError(SemanticError):
    """Raised on empty or malformed arguments."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.INVALID_INPUT, details=details)


class EmbeddingFailedError(SemanticError):
    """Raised when the underlying model call fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.EMBEDDING_FAILED, details=details)


class ComputationFailedError(SemanticError):
    """Raised on a mathematically undefined operation (zero-magnitude vector)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.COMPUTATION_FAILED, details=details)


class DimensionMismatchError(SemanticError):
    """Raised when two vectors of different length are compared or combined."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.DIMENSION_MISMATCH, details=details)
