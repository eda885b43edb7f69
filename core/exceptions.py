"""Error taxonomy for ingestion, indexing and answering."""
from typing import Optional

from core.domain import ErrorCode


class RAGError(Exception):
    """Base error carrying a machine-readable error code."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging
        return f"[{self.error_code.value}] {self.message}"


# ============= Per-file (non-fatal) =============

class UnsupportedFormat(RAGError):
    """File extension has no registered extractor."""
    error_code = ErrorCode.UNSUPPORTED_FORMAT


class ExtractionFailure(RAGError):
    """Underlying parser failed (corrupt file, encoding error)."""
    error_code = ErrorCode.EXTRACTION_FAILED


# ============= Knowledge base / index =============

class EmptyKnowledgeBase(RAGError):
    """Ingestion found no files or no extractable text."""
    error_code = ErrorCode.EMPTY_KNOWLEDGE_BASE


class IndexNotReady(RAGError):
    """Retrieval attempted while the index is ABSENT."""
    error_code = ErrorCode.INDEX_NOT_READY


class AppendFailure(RAGError):
    """Embedding or persistence failed while appending a chat reply."""
    error_code = ErrorCode.APPEND_FAILED


class PersistenceFailure(RAGError):
    """Writing the index snapshot failed; the previous snapshot is intact."""
    error_code = ErrorCode.PERSISTENCE_FAILED


# ============= Upstream model server =============

class UpstreamFailure(RAGError):
    """Embedding or language-model call failed."""
    error_code = ErrorCode.UPSTREAM_FAILURE


class UpstreamTimeout(UpstreamFailure):
    """Embedding or language-model call exceeded its deadline."""
    error_code = ErrorCode.UPSTREAM_TIMEOUT
