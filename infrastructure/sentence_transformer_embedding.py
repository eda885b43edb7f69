"""Local sentence-transformers embeddings (EMBEDDING_PROVIDER=sentence-transformers)"""
import asyncio
import logging
from typing import List, Optional

import numpy as np
from sentence_transformers import SentenceTransformer

from config import settings
from core.interfaces import IEmbeddingService
from infrastructure.embedding_services import l2_normalize

logger = logging.getLogger(settings.LOGGER_NAME)


class SentenceTransformerEmbedding(IEmbeddingService):
    """
    Sentence transformer with L2 normalization (unit vectors).
    The model is loaded once per process and shared.
    """

    _model: Optional[SentenceTransformer] = None  # Singleton cache

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        if SentenceTransformerEmbedding._model is None:
            SentenceTransformerEmbedding._model = self._load_model(model_name)
        self.model = SentenceTransformerEmbedding._model

    @staticmethod
    def _load_model(model_name: str) -> SentenceTransformer:
        """Local cache first; download only on a cache miss."""
        try:
            model = SentenceTransformer(model_name, local_files_only=True)
            logger.info(f"[Embedding] Using cached model '{model_name}'")
            return model
        except Exception as e:
            logger.warning(f"[Embedding] '{model_name}' not cached ({e}); downloading")

        model = SentenceTransformer(model_name)
        logger.info(f"[Embedding] Downloaded model '{model_name}'")
        return model

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        raw = await asyncio.to_thread(
            self.model.encode,
            texts,
            convert_to_tensor=False
        )
        return l2_normalize(np.array(raw, dtype="float32")).tolist()

    async def generate_query_embedding(self, query: str) -> List[float]:
        raw = await asyncio.to_thread(
            self.model.encode,
            query,
            convert_to_tensor=False
        )
        normalized = l2_normalize(np.array(raw, dtype="float32").reshape(1, -1))
        return normalized[0].tolist()
