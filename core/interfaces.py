"""Core interfaces for the RAG system"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List

from core.domain import ChunkRecord, ChunkSearchResult, IndexState, IndexStats, ToolInput

# ============= Vector Index Interface =============
class IVectorIndex(ABC):
    """Owned record set + embeddings with load/build/query/append/persist."""

    @property
    @abstractmethod
    def state(self) -> IndexState:
        pass

    @abstractmethod
    def exists_on_disk(self) -> bool:
        """True if a committed snapshot exists at the storage location"""
        pass

    @abstractmethod
    async def load(self) -> None:
        """Restore the committed snapshot (no re-embedding)"""
        pass

    @abstractmethod
    async def build(self, records: List[ChunkRecord]) -> None:
        """Embed records, replace the owned set and persist"""
        pass

    @abstractmethod
    async def query(self, text: str, k: int) -> List[ChunkSearchResult]:
        """Top-k records by similarity, highest first. Raises IndexNotReady."""
        pass

    @abstractmethod
    async def append(self, content: str, source: str) -> bool:
        """Add one record unless its content hash is already stored.

        Returns True if a record was added, False on dedup/empty no-op.
        """
        pass

    @abstractmethod
    async def persist(self) -> None:
        """Atomically overwrite the on-disk snapshot"""
        pass

    @abstractmethod
    def stats(self) -> IndexStats:
        pass

# ============= Embedding Service Interface =============
class IEmbeddingService(ABC):
    """Interface for embedding generation"""

    @abstractmethod
    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for text chunks"""
        pass

    @abstractmethod
    async def generate_query_embedding(self, query: str) -> List[float]:
        """Generate embedding for search query"""
        pass

# ============= Language Model Interface =============
class ILLMService(ABC):
    """Given a prompt string, returns a completion string."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        pass

# ============= Text Extraction Interface =============
class ITextExtractor(ABC):
    """Converts one file of a known kind into plain text."""

    extensions: Iterable[str] = ()

    @abstractmethod
    def extract(self, file_path: str) -> str:
        pass

# ============= Response Strategy Interfaces =============
class IResponseTool(ABC):
    """A response strategy: one operation, run(question, context) -> answer."""

    name: str
    description: str
    aliases: Iterable[str] = ()

    @abstractmethod
    async def run(self, tool_input: ToolInput) -> str:
        pass


class IToolRouter(ABC):
    """Maps question text to a strategy key in the tool registry."""

    @abstractmethod
    async def select(self, question: str, tools: Dict[str, IResponseTool]) -> str:
        pass
