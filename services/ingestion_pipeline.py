"""Discovery -> extraction -> splitting across a folder, in bounded batches"""
import asyncio
import logging
import os
from typing import Iterable, List

from config import settings
from core.domain import ChunkRecord
from core.exceptions import EmptyKnowledgeBase, ExtractionFailure, UnsupportedFormat
from infrastructure.document_processors import TextExtractorRegistry
from infrastructure.file_discovery import discover_files
from infrastructure.text_splitter import ChunkSplitter

logger = logging.getLogger(settings.LOGGER_NAME)


class IngestionPipeline:
    """
    Turns a document folder into a flat, ordered list of ChunkRecords.

    Files are processed BATCH_SIZE at a time: files inside a batch run
    concurrently, batches run one after another. Output keeps discovery order
    across files and split order within a file. A file that cannot be
    extracted contributes zero chunks and does not stop the run.
    """

    def __init__(
        self,
        extractors: TextExtractorRegistry,
        splitter: ChunkSplitter,
        batch_size: int = settings.BATCH_SIZE,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.extractors = extractors
        self.splitter = splitter
        self.batch_size = batch_size

    async def discover(self, root: str, formats: Iterable[str]) -> List[str]:
        return await asyncio.to_thread(discover_files, root, list(formats))

    def _extract_and_split(self, file_path: str) -> List[ChunkRecord]:
        text = self.extractors.extract(file_path)
        return list(self.splitter.split(text, os.path.basename(file_path)))

    async def process_file(self, file_path: str) -> List[ChunkRecord]:
        """Chunks for one file; [] on UnsupportedFormat / ExtractionFailure."""
        try:
            chunks = await asyncio.to_thread(self._extract_and_split, file_path)
        except UnsupportedFormat as e:
            logger.warning(f"Skipping {file_path}: {e}")
            return []
        except ExtractionFailure as e:
            logger.error(f"Failed to process {file_path}: {e}")
            return []

        if not chunks:
            logger.warning(f"No text extracted from {file_path}")
        return chunks

    async def run(self, root: str, formats: Iterable[str]) -> List[ChunkRecord]:
        """
        Ingest every supported file under root.

        Raises:
            EmptyKnowledgeBase: no files found, or none produced any chunk
        """
        files = await self.discover(root, formats)
        if not files:
            raise EmptyKnowledgeBase(f"No files found in knowledge base folder {root}")

        logger.info(f"Ingesting {len(files)} files in batches of {self.batch_size}")
        all_chunks: List[ChunkRecord] = []
        for start in range(0, len(files), self.batch_size):
            batch = files[start:start + self.batch_size]
            results = await asyncio.gather(*(self.process_file(f) for f in batch))
            for chunks in results:
                all_chunks.extend(chunks)
            logger.debug(
                f"Batch {start // self.batch_size + 1}: {len(batch)} files, "
                f"{sum(len(c) for c in results)} chunks"
            )

        if not all_chunks:
            raise EmptyKnowledgeBase("No documents processed for knowledge base")

        logger.info(f"Ingested {len(all_chunks)} chunks from {len(files)} files")
        return all_chunks
