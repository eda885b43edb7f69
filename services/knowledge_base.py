"""Process-start transition of the vector index: load if persisted, else build."""
import logging
from typing import Iterable

from config import settings
from core.domain import IndexState
from core.exceptions import EmptyKnowledgeBase, PersistenceFailure, UpstreamFailure
from core.interfaces import IVectorIndex
from services.ingestion_pipeline import IngestionPipeline

logger = logging.getLogger(settings.LOGGER_NAME)


async def initialize_knowledge_base(
    index: IVectorIndex,
    pipeline: IngestionPipeline,
    root: str,
    formats: Iterable[str],
) -> IndexState:
    """
    ABSENT -> LOADED when a snapshot exists, otherwise ingest + embed -> BUILT.

    Never raises for the non-fatal cases: an empty knowledge base, an
    unreadable snapshot with nothing to rebuild from, or an unreachable
    embedding server all leave the index ABSENT (retrieval disabled).
    """
    if index.exists_on_disk():
        try:
            await index.load()
            logger.info("Vector store loaded from disk.")
            return index.state
        except PersistenceFailure as e:
            logger.error(f"{e}. Rebuilding from documents.")

    try:
        records = await pipeline.run(root, list(formats))
    except EmptyKnowledgeBase as e:
        logger.warning(f"{e.message}. Continuing without retrieval.")
        return index.state

    try:
        await index.build(records)
    except (UpstreamFailure, PersistenceFailure) as e:
        logger.error(f"Knowledge base init failed: {e}")
        return index.state

    logger.info(f"Knowledge base initialized with {len(records)} chunks.")
    return index.state
