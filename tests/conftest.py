"""
Shared test fixtures.

Provides: deterministic embedding double, scripted LLM double, temp document
and index folders, and a fully wired ServiceContainer around the doubles.
No fixture talks to a model server.
"""

import hashlib
import re
from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest

from core.exceptions import UpstreamFailure
from core.interfaces import IEmbeddingService, ILLMService
from infrastructure.document_processors import TextExtractorRegistry
from infrastructure.faiss_store import FAISSVectorIndex
from infrastructure.text_splitter import ChunkSplitter
from services.async_processor import BackgroundTaskRunner
from services.factory import ServiceContainer
from services.ingestion_pipeline import IngestionPipeline
from services.rag_service import RAGService
from services.tool_router import FixedToolRouter, LLMToolRouter
from services.tools import build_tool_registry

FORMATS = [".pdf", ".txt", ".docx", ".csv", ".html", ".md"]
TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


class FakeEmbeddingService(IEmbeddingService):
    """Bag-of-words hashed into DIM buckets, L2-normalized."""

    DIM = 1024

    def __init__(self):
        self.calls = 0
        self.fail = False

    def _embed(self, text: str) -> List[float]:
        vec = np.zeros(self.DIM, dtype="float32")
        for token in TOKEN_PATTERN.findall(text.lower()):
            bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % self.DIM
            vec[bucket] += 1.0
        if not vec.any():
            vec[0] = 1.0
        return (vec / np.linalg.norm(vec)).tolist()

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        self.calls += len(texts)
        if self.fail:
            raise UpstreamFailure("embedding server down")
        return [self._embed(t) for t in texts]

    async def generate_query_embedding(self, query: str) -> List[float]:
        return (await self.generate_embeddings([query]))[0]


class ScriptedLLM(ILLMService):
    """Returns queued replies in order, then the default reply. Records prompts."""

    def __init__(self, replies: Optional[List[str]] = None, default: str = "Here is a helpful answer."):
        self.replies = list(replies or [])
        self.default = default
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.replies:
            return self.replies.pop(0)
        return self.default


@pytest.fixture
def fake_embedding() -> FakeEmbeddingService:
    return FakeEmbeddingService()


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    """Empty knowledge-base folder."""
    path = tmp_path / "docs"
    path.mkdir()
    return path


@pytest.fixture
def index_dir(tmp_path: Path) -> Path:
    """Vector store location (not created up front)."""
    return tmp_path / "vector_store"


@pytest.fixture
def sky_docs(docs_dir: Path) -> Path:
    (docs_dir / "a.txt").write_text("The sky is blue.", encoding="utf-8")
    (docs_dir / "b.txt").write_text("Grass is green.", encoding="utf-8")
    return docs_dir


@pytest.fixture
def make_index(fake_embedding: FakeEmbeddingService, index_dir: Path):
    """Factory for indexes sharing one storage location (simulates restarts)."""

    def _make(embedding: Optional[IEmbeddingService] = None) -> FAISSVectorIndex:
        return FAISSVectorIndex(
            embedding or fake_embedding,
            index_path=str(index_dir),
            supported_formats=FORMATS,
            top_k=5,
        )

    return _make


@pytest.fixture
def pipeline() -> IngestionPipeline:
    return IngestionPipeline(TextExtractorRegistry(), ChunkSplitter(500, 50), batch_size=5)


def build_container(
    docs_dir: Path,
    index_dir: Path,
    embedding: IEmbeddingService,
    llm: ILLMService,
    routing: str = "fixed",
) -> ServiceContainer:
    """Same wiring as services.factory.build_services, around test doubles."""
    index = FAISSVectorIndex(embedding, index_path=str(index_dir), supported_formats=FORMATS, top_k=5)
    runner = BackgroundTaskRunner()
    router = LLMToolRouter(llm) if routing == "llm" else FixedToolRouter()
    rag_service = RAGService(
        vector_index=index,
        tools=build_tool_registry(llm),
        router=router,
        task_runner=runner,
        top_k=5,
        preview_chars=300,
        public_folder=str(docs_dir),
        supported_formats=FORMATS,
    )
    return ServiceContainer(
        embedding_service=embedding,
        llm_service=llm,
        vector_index=index,
        pipeline=IngestionPipeline(TextExtractorRegistry(), ChunkSplitter(500, 50), batch_size=5),
        task_runner=runner,
        rag_service=rag_service,
    )


@pytest.fixture
def container(docs_dir, index_dir, fake_embedding, scripted_llm) -> ServiceContainer:
    return build_container(docs_dir, index_dir, fake_embedding, scripted_llm)
