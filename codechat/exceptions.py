"""Application exception hierarchy.

All custom exceptions inherit from CodechatError and carry an error code
so API handlers and the chat loop can react to them uniformly.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "CHAT-1000"
    VALIDATION_ERROR = "CHAT-1001"
    SERVICE_UNAVAILABLE = "CHAT-1002"

    # Database errors (2xxx)
    DATABASE_ERROR = "CHAT-2000"
    ITEM_NOT_FOUND = "CHAT-2001"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "CHAT-3000"

    # LLM errors (5xxx)
    LLM_SERVICE_ERROR = "CHAT-5000"
    LLM_TIMEOUT = "CHAT-5001"
    LLM_RATE_LIMIT = "CHAT-5002"

    # Retrieval errors (6xxx)
    RETRIEVAL_ERROR = "CHAT-6000"

    # Chat state errors (7xxx)
    CHAT_STATE_ERROR = "CHAT-7000"


class CodechatError(Exception):
    """Base exception for all codechat errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(CodechatError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class DatabaseError(CodechatError):
    """Postgres query or connection error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class ItemNotFoundError(DatabaseError):
    """Requested content row does not exist."""

    def __init__(
        self,
        item_id: int,
        table: str,
    ) -> None:
        super().__init__(
            f"No item with id {item_id} in {table}",
            ErrorCode.ITEM_NOT_FOUND,
            {"item_id": item_id, "table": table},
        )


class EmbeddingError(CodechatError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class LLMError(CodechatError):
    """Chat-completion service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class RetrievalError(CodechatError):
    """Semantic search error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RETRIEVAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class ChatStateError(CodechatError):
    """Persisted chat state could not be read or written."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CHAT_STATE_ERROR, details)
