"""Embedding generation with L2 normalization for consistent similarity scoring"""
import logging
from typing import List

import numpy as np
import requests

from config import settings
from core.exceptions import UpstreamFailure
from core.interfaces import IEmbeddingService
from infrastructure.upstream import call_upstream

logger = logging.getLogger(settings.LOGGER_NAME)


def l2_normalize(arr: np.ndarray) -> np.ndarray:
    """
    L2 normalize vectors to unit length (||v|| = 1).

    With unit vectors FAISS L2 distance maps onto cosine similarity:
    ||a-b||² = 2(1 - cos(a,b)).

    Args:
        arr: (N, D) array of N vectors with D dimensions

    Returns:
        (N, D) array of unit-normalized vectors
    """
    norms = np.linalg.norm(arr, axis=1, keepdims=True)
    norms[norms == 0] = 1e-12  # Avoid division by zero
    return arr / norms


class OllamaEmbedding(IEmbeddingService):
    """Embeddings from a local Ollama server (POST /api/embed)."""

    def __init__(
        self,
        base_url: str = settings.OLLAMA_BASE_URL,
        model: str = settings.EMBEDDING_MODEL,
        timeout: float = settings.UPSTREAM_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _embed_sync(self, texts: List[str]) -> List[List[float]]:
        response = requests.post(
            f"{self.base_url}/api/embed",
            json={"model": self.model, "input": texts},
            timeout=self.timeout,
        )
        response.raise_for_status()
        embeddings = response.json().get("embeddings")
        if not embeddings or len(embeddings) != len(texts):
            raise UpstreamFailure(
                f"Embedding response malformed: expected {len(texts)} vectors"
            )
        return embeddings

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        raw = await call_upstream(
            self._embed_sync, texts, timeout=self.timeout, operation="Embedding"
        )
        return l2_normalize(np.array(raw, dtype="float32")).tolist()

    async def generate_query_embedding(self, query: str) -> List[float]:
        embeddings = await self.generate_embeddings([query])
        return embeddings[0]
