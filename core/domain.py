"""Shared enumerations and domain models used across the application."""
from enum import Enum

from dataclasses import dataclass, field
from typing import List, Optional

CHAT_SOURCE = "chat"

# ============= Enums =============

class ErrorCode(str, Enum):
    """Error codes for logs and user-facing error messages."""
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    EMPTY_KNOWLEDGE_BASE = "EMPTY_KNOWLEDGE_BASE"
    INDEX_NOT_READY = "INDEX_NOT_READY"
    APPEND_FAILED = "APPEND_FAILED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class IndexState(str, Enum):
    """Vector index lifecycle: ABSENT -> LOADING -> LOADED | BUILDING -> BUILT."""
    ABSENT = "absent"
    LOADING = "loading"
    LOADED = "loaded"
    BUILDING = "building"
    BUILT = "built"

    @property
    def is_ready(self) -> bool:
        return self in (IndexState.LOADED, IndexState.BUILT)


# ============= Domain Models =============

@dataclass(frozen=True)
class ChunkRecord:
    """Atomic retrievable unit. content_hash is set for chat-derived records only."""
    content: str
    source: str
    content_hash: Optional[str] = None

    @property
    def is_chat(self) -> bool:
        return self.source == CHAT_SOURCE

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "source": self.source,
            "contentHash": self.content_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChunkRecord":
        return cls(
            content=data["content"],
            source=data["source"],
            content_hash=data.get("contentHash"),
        )


@dataclass
class ChunkSearchResult:
    """A retrieved record and its similarity in [0, 1]"""
    record: ChunkRecord
    score: float


@dataclass
class IndexStats:
    record_count: int
    supported_formats: List[str] = field(default_factory=list)
    top_k: int = 0


@dataclass
class ToolInput:
    question: str
    context: str = ""


@dataclass
class AnswerResult:
    answer: str
    strategy_used: str
