# infrastructure/faiss_store.py
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Set, Tuple
from uuid import uuid4

import faiss
import numpy as np

from config import settings
from core.domain import CHAT_SOURCE, ChunkRecord, ChunkSearchResult, IndexState, IndexStats
from core.exceptions import (
    AppendFailure, EmptyKnowledgeBase, IndexNotReady, PersistenceFailure, UpstreamFailure
)
from core.interfaces import IEmbeddingService, IVectorIndex
from utils.common import get_content_hash

logger = logging.getLogger(settings.LOGGER_NAME)

METADATA_FILENAME = "faiss_metadata.json"
INDEX_FILE_PATTERN = "faiss-*.index"
SNAPSHOT_VERSION = 1


def _fsync_file(path: Path) -> None:
    with open(path, "rb") as f:
        os.fsync(f.fileno())


def _fsync_dir(path: Path) -> None:
    if os.name != "posix":
        return  # directories cannot be opened for fsync on Windows
    fd = os.open(str(path), os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class FAISSVectorIndex(IVectorIndex):
    """
    Process-wide vector index over ChunkRecords (IndexFlatL2 on unit vectors).

    Key properties:
    - Row i of the FAISS index pairs with self._records[i]
    - Single asyncio.Lock() serializes append/persist/build and guards reads,
      so a query sees either the pre-append or the post-append record set
    - Appended records carry a content hash; a hash is never stored twice
    - Snapshot = generation-named index file + faiss_metadata.json. The metadata
      file is replaced atomically and is the commit point, so a crash mid-write
      leaves the previous snapshot loadable
    - Superseded index files are removed only after the directory is fsynced
    """

    def __init__(
        self,
        embedding_service: IEmbeddingService,
        index_path: str = settings.VECTOR_STORE_PATH,
        supported_formats: Optional[List[str]] = None,
        top_k: int = settings.TOP_K,
        embed_batch_size: int = 64,
    ):
        self._embedding_service = embedding_service
        self._dir = Path(index_path)
        self._metadata_path = self._dir / METADATA_FILENAME
        self._supported_formats = list(supported_formats or settings.supported_formats)
        self._top_k = top_k
        self._embed_batch_size = embed_batch_size

        self._index: Optional[faiss.IndexFlatL2] = None
        self._records: List[ChunkRecord] = []
        self._dedup_hashes: Set[str] = set()
        self._state = IndexState.ABSENT
        self._lock = asyncio.Lock()  # Protects all mutations

    # ---------- State ----------

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def records(self) -> Tuple[ChunkRecord, ...]:
        return tuple(self._records)

    def exists_on_disk(self) -> bool:
        return self._metadata_path.exists()

    def stats(self) -> IndexStats:
        count = len(self._records) if self._state.is_ready else 0
        return IndexStats(
            record_count=count,
            supported_formats=list(self._supported_formats),
            top_k=self._top_k,
        )

    # ---------- Lifecycle ----------

    async def load(self) -> None:
        """ABSENT -> LOADING -> LOADED from the committed snapshot."""
        async with self._lock:
            self._state = IndexState.LOADING
            try:
                index, records = await asyncio.to_thread(self._read_snapshot)
            except Exception as e:
                self._state = IndexState.ABSENT
                raise PersistenceFailure(f"Failed to load index from {self._dir}: {e}") from e

            self._install(index, records)
            self._state = IndexState.LOADED
            logger.info(f"[FAISS] Loaded {len(records)} records from {self._dir}")

    async def build(self, records: List[ChunkRecord]) -> None:
        """Embed records, persist them as a new snapshot, then swap them in (BUILT)."""
        if not records:
            raise EmptyKnowledgeBase("Cannot build an index from zero chunks")

        async with self._lock:
            previous = self._state
            self._state = IndexState.BUILDING
            try:
                vectors = await self._embed_all([r.content for r in records])
                index = faiss.IndexFlatL2(vectors.shape[1])
                index.add(vectors)  # type: ignore
                try:
                    await asyncio.to_thread(self._write_snapshot, index, records)
                except Exception as e:
                    raise PersistenceFailure(f"Failed to persist new index: {e}") from e
            except Exception:
                self._state = previous
                raise

            self._install(index, list(records))
            self._state = IndexState.BUILT
            logger.info(f"[FAISS] Built index with {len(records)} records (dim={index.d})")

    # ---------- Operations ----------

    async def query(self, text: str, k: int) -> List[ChunkSearchResult]:
        """
        Top-k records by cosine similarity (highest first), scores in [0,1].

        Raises:
            IndexNotReady: index is ABSENT (callers treat as empty context)
        """
        self._ensure_ready()
        if k <= 0:
            return []

        query_embedding = await self._embedding_service.generate_query_embedding(text)
        query_vector = np.array([query_embedding], dtype="float32")

        async with self._lock:
            total = self._index.ntotal  # type: ignore
            if total == 0:
                return []
            distances, indices = await asyncio.to_thread(
                self._index.search, query_vector, min(k, total)  # type: ignore
            )

            results: List[ChunkSearchResult] = []
            for pos, row in enumerate(indices[0]):
                if row == -1 or row >= len(self._records):
                    continue
                # Unit vectors: d² = 2(1-cos) -> map to [0,1] with 1 - d²/4
                similarity = 1.0 - (float(distances[0][pos]) / 4.0)
                similarity = max(0.0, min(1.0, similarity))
                results.append(ChunkSearchResult(record=self._records[row], score=similarity))
            return results

    async def append(self, content: str, source: str = CHAT_SOURCE) -> bool:
        """
        Add one record keyed by the SHA256 of its exact content.

        Returns False (no-op) for blank content or an already-stored hash.

        Raises:
            IndexNotReady: index is ABSENT
            AppendFailure: embedding failed
            PersistenceFailure: snapshot write failed (in-memory add rolled back)
        """
        if not content or not content.strip():
            return False
        self._ensure_ready()

        content_hash = get_content_hash(content)
        if content_hash in self._dedup_hashes:
            logger.debug(f"[FAISS] Skipping duplicate content {content_hash[:12]}")
            return False

        try:
            embedding = await self._embedding_service.generate_query_embedding(content)
        except UpstreamFailure as e:
            raise AppendFailure(f"Embedding failed for appended content: {e.message}") from e
        vector = np.array([embedding], dtype="float32")

        async with self._lock:
            # Re-check: a concurrent append may have committed the same hash
            if content_hash in self._dedup_hashes:
                return False
            if vector.shape[1] != self._index.d:  # type: ignore
                raise AppendFailure(
                    f"Embedding dimension {vector.shape[1]} does not match index ({self._index.d})"  # type: ignore
                )

            row = self._index.ntotal  # type: ignore
            record = ChunkRecord(content=content, source=source, content_hash=content_hash)
            self._index.add(vector)  # type: ignore
            self._records.append(record)
            try:
                await self._persist_locked()
            except PersistenceFailure:
                self._index.remove_ids(np.array([row], dtype="int64"))  # type: ignore
                self._records.pop()
                raise

            self._dedup_hashes.add(content_hash)

        logger.info(f"[FAISS] Appended record from '{source}'. Total records: {len(self._records)}")
        return True

    async def persist(self) -> None:
        async with self._lock:
            await self._persist_locked()

    # ---------- Internals ----------

    def _ensure_ready(self) -> None:
        if not self._state.is_ready or self._index is None:
            raise IndexNotReady(f"Vector index is {self._state.value}")

    def _install(self, index: Optional[faiss.IndexFlatL2], records: List[ChunkRecord]) -> None:
        self._index = index
        self._records = records
        self._dedup_hashes = {r.content_hash for r in records if r.content_hash}

    async def _embed_all(self, texts: List[str]) -> np.ndarray:
        vectors: List[List[float]] = []
        for i in range(0, len(texts), self._embed_batch_size):
            batch = texts[i:i + self._embed_batch_size]
            vectors.extend(await self._embedding_service.generate_embeddings(batch))
            logger.debug(f"[FAISS] Embedded {len(vectors)}/{len(texts)} chunks")
        return np.array(vectors, dtype="float32")

    async def _persist_locked(self) -> None:
        """Must be called under self._lock."""
        self._ensure_ready()
        try:
            await asyncio.to_thread(self._write_snapshot, self._index, list(self._records))
        except Exception as e:
            logger.error(f"[FAISS] Failed to persist index: {e}")
            raise PersistenceFailure(f"Failed to persist index to {self._dir}: {e}") from e

    def _write_snapshot(self, index: faiss.IndexFlatL2, records: List[ChunkRecord]) -> None:
        """Write new index file, then commit by atomically replacing the metadata file."""
        self._dir.mkdir(parents=True, exist_ok=True)

        index_file = f"faiss-{uuid4().hex}.index"
        index_path = self._dir / index_file
        tmp_path = self._metadata_path.with_name(METADATA_FILENAME + ".tmp")
        payload = {
            "version": SNAPSHOT_VERSION,
            "dimension": index.d,
            "index_file": index_file,
            "records": [r.to_dict() for r in records],
        }

        try:
            faiss.write_index(index, str(index_path))
            _fsync_file(index_path)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._metadata_path)
        except Exception:
            index_path.unlink(missing_ok=True)
            tmp_path.unlink(missing_ok=True)
            raise

        # The rename is only durable once the directory entry is on disk.
        # Until then the previous index file must survive.
        try:
            _fsync_dir(self._dir)
        except OSError as e:
            logger.warning(f"[FAISS] Could not sync {self._dir}; keeping previous index files: {e}")
            return

        # Committed: superseded index files are garbage now
        for stale in self._dir.glob(INDEX_FILE_PATTERN):
            if stale.name != index_file:
                try:
                    stale.unlink()
                except OSError as e:
                    logger.warning(f"[FAISS] Could not remove stale {stale.name}: {e}")

        logger.info(f"[FAISS] Saved snapshot with {len(records)} records.")

    def _read_snapshot(self) -> Tuple[faiss.IndexFlatL2, List[ChunkRecord]]:
        with open(self._metadata_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version {version}")

        index = faiss.read_index(str(self._dir / data["index_file"]))
        records = [ChunkRecord.from_dict(r) for r in data.get("records", [])]
        if index.ntotal != len(records):
            raise ValueError(
                f"Snapshot mismatch: {index.ntotal} vectors for {len(records)} records"
            )
        return index, records
