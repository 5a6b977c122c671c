"""
Error kinds and exception hierarchy.

Every failure carries an ``ErrorKind`` from the closed enumeration below so
the specific cause survives the call chain. Translation to an HTTP status
and a generic user-facing message happens only in the API exception
handler (see ``PUBLIC_MESSAGES`` / ``HTTP_STATUS``).

    RagChatError
    +-- InvalidInputError
    +-- NotFoundError
    +-- ExtractionError      (text extractor)
    +-- EmbeddingError       (embedder)
    +-- IngestionError       (upload orchestrator, wraps the above)
    +-- RetrievalError       (query path)
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_FILE = "missing_file"
    INVALID_FILE_TYPE = "invalid_file_type"
    FILE_TOO_LARGE = "file_too_large"
    DUPLICATE_DOCUMENT = "duplicate_document"
    LOCAL_WRITE_FAILED = "local_write_failed"
    EXTRACTION_FAILED = "extraction_failed"
    EMBEDDING_FAILED = "embedding_failed"
    STORE_FAILED = "store_failed"
    RETRIEVAL_UNAVAILABLE = "retrieval_unavailable"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"


# Coarse upload outcomes reported to callers
OUTCOMES = {
    ErrorKind.MISSING_FILE: "MissingFile",
    ErrorKind.INVALID_FILE_TYPE: "InvalidFileType",
    ErrorKind.FILE_TOO_LARGE: "FileTooLarge",
    ErrorKind.DUPLICATE_DOCUMENT: "DuplicateDocument",
    ErrorKind.LOCAL_WRITE_FAILED: "LocalWriteFailed",
    ErrorKind.EXTRACTION_FAILED: "ExtractionOrEmbeddingFailed",
    ErrorKind.EMBEDDING_FAILED: "ExtractionOrEmbeddingFailed",
    ErrorKind.STORE_FAILED: "ExtractionOrEmbeddingFailed",
}

PUBLIC_MESSAGES = {
    ErrorKind.MISSING_FILE: "No file provided",
    ErrorKind.INVALID_FILE_TYPE: "Invalid file type",
    ErrorKind.FILE_TOO_LARGE: "File is too large",
    ErrorKind.DUPLICATE_DOCUMENT: "This document already exists",
    ErrorKind.LOCAL_WRITE_FAILED: "Error writing file locally",
    ErrorKind.EXTRACTION_FAILED: "Error embedding document",
    ErrorKind.EMBEDDING_FAILED: "Error embedding document",
    ErrorKind.STORE_FAILED: "Error embedding document",
    ErrorKind.RETRIEVAL_UNAVAILABLE: "Retrieval is unavailable",
    ErrorKind.INVALID_INPUT: "Invalid form data",
    ErrorKind.NOT_FOUND: "Not found",
}

HTTP_STATUS = {
    ErrorKind.MISSING_FILE: 400,
    ErrorKind.INVALID_FILE_TYPE: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_DOCUMENT: 409,
    ErrorKind.FILE_TOO_LARGE: 413,
    ErrorKind.LOCAL_WRITE_FAILED: 500,
    ErrorKind.EXTRACTION_FAILED: 500,
    ErrorKind.EMBEDDING_FAILED: 500,
    ErrorKind.STORE_FAILED: 500,
    ErrorKind.RETRIEVAL_UNAVAILABLE: 503,
}


class RagChatError(Exception):
    """Base exception; ``kind`` identifies the failure category."""

    default_kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str = "", kind: Optional[ErrorKind] = None):
        self.kind = kind or self.default_kind
        self.message = message or PUBLIC_MESSAGES[self.kind]
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return PUBLIC_MESSAGES[self.kind]

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


class InvalidInputError(RagChatError):
    default_kind = ErrorKind.INVALID_INPUT


class NotFoundError(RagChatError):
    default_kind = ErrorKind.NOT_FOUND


class ExtractionError(RagChatError):
    """Raised when a file cannot be turned into plain text."""
    default_kind = ErrorKind.EXTRACTION_FAILED


class EmbeddingError(RagChatError):
    """Raised when the embedding model fails, times out or returns bad vectors."""
    default_kind = ErrorKind.EMBEDDING_FAILED


class RetrievalError(RagChatError):
    default_kind = ErrorKind.RETRIEVAL_UNAVAILABLE


class IngestionError(RagChatError):
    """
    Raised by the upload orchestrator.

    ``kind`` keeps the specific cause for logs; ``outcome`` is the coarse
    result callers act on.
    """

    def __init__(self, kind: ErrorKind, message: str = "", filename: Optional[str] = None):
        super().__init__(message, kind)
        self.filename = filename

    @property
    def outcome(self) -> str:
        return OUTCOMES.get(self.kind, "ExtractionOrEmbeddingFailed")
