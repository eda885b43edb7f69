from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from config import settings
from core.interfaces import IEmbeddingService, ILLMService, IVectorIndex
from infrastructure.document_processors import TextExtractorRegistry
from infrastructure.embedding_services import OllamaEmbedding
from infrastructure.faiss_store import FAISSVectorIndex
from infrastructure.text_splitter import ChunkSplitter
from services.async_processor import BackgroundTaskRunner
from services.ingestion_pipeline import IngestionPipeline
from services.llm_service import OllamaLLMService
from services.rag_service import RAGService
from services.tool_router import build_router
from services.tools import build_tool_registry


@dataclass
class ServiceContainer:
    """Single-instance services shared by all requests (stored on app.state)."""
    embedding_service: IEmbeddingService
    llm_service: ILLMService
    vector_index: IVectorIndex
    pipeline: IngestionPipeline
    task_runner: BackgroundTaskRunner
    rag_service: RAGService


# Provider functions for each component
def get_embedding_service() -> IEmbeddingService:
    """Create embedding service based on configuration."""
    provider = settings.EMBEDDING_PROVIDER.lower()
    if provider == "ollama":
        return OllamaEmbedding(
            base_url=settings.OLLAMA_BASE_URL,
            model=settings.EMBEDDING_MODEL,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )
    elif provider in ("sentence-transformers", "sentence_transformers"):
        # Heavy import (torch); only pay for it when selected
        from infrastructure.sentence_transformer_embedding import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(settings.EMBEDDING_MODEL)
    else:
        raise ValueError(f"Unknown embedding provider: {settings.EMBEDDING_PROVIDER}")

def get_llm_service() -> ILLMService:
    return OllamaLLMService(
        base_url=settings.OLLAMA_BASE_URL,
        model=settings.LLM_MODEL,
        temperature=settings.LLM_TEMPERATURE,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
    )

def get_vector_index(embedding_service: IEmbeddingService) -> IVectorIndex:
    return FAISSVectorIndex(
        embedding_service,
        index_path=settings.VECTOR_STORE_PATH,
        supported_formats=settings.supported_formats,
        top_k=settings.TOP_K,
    )

def get_ingestion_pipeline() -> IngestionPipeline:
    return IngestionPipeline(
        extractors=TextExtractorRegistry(),
        splitter=ChunkSplitter(settings.CHUNK_SIZE, settings.CHUNK_OVERLAP),
        batch_size=settings.BATCH_SIZE,
    )

def build_services(
    embedding_service: Optional[IEmbeddingService] = None,
    llm_service: Optional[ILLMService] = None,
) -> ServiceContainer:
    """
    Wire the whole object graph from settings.
    Pass embedding/LLM doubles to run without a model server.
    """
    embedding_service = embedding_service or get_embedding_service()
    llm_service = llm_service or get_llm_service()
    vector_index = get_vector_index(embedding_service)
    task_runner = BackgroundTaskRunner()

    tools = build_tool_registry(llm_service)
    router = build_router(settings.TOOL_ROUTING, llm_service, settings.DEFAULT_TOOL)
    rag_service = RAGService(
        vector_index=vector_index,
        tools=tools,
        router=router,
        task_runner=task_runner,
        top_k=settings.TOP_K,
        preview_chars=settings.CONTEXT_PREVIEW_CHARS,
        public_folder=settings.PUBLIC_FOLDER,
        supported_formats=settings.supported_formats,
    )
    return ServiceContainer(
        embedding_service=embedding_service,
        llm_service=llm_service,
        vector_index=vector_index,
        pipeline=get_ingestion_pipeline(),
        task_runner=task_runner,
        rag_service=rag_service,
    )

# FastAPI dependencies
def get_rag_service(request: Request) -> RAGService:
    """The application's single RAGService (set up in the lifespan)."""
    return request.app.state.services.rag_service
