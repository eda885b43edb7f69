"""Overlapping fixed-size chunking with natural-boundary preference"""
from typing import Iterator, List, Sequence, Tuple

from langchain_text_splitters import TextSplitter

from config import settings
from core.domain import ChunkRecord

# Tried in order: paragraph, line, sentence, word
DEFAULT_SEPARATORS: List[str] = [
    "\n\n", "\n", ". ", "! ", "? ", "; ", " ",
]


class ChunkSequence:
    """Lazy, finite, restartable: every iteration re-splits the source text."""

    def __init__(self, splitter: "ChunkSplitter", text: str, source: str):
        self._splitter = splitter
        self._text = text
        self._source = source

    def __iter__(self) -> Iterator[ChunkRecord]:
        for content in self._splitter.iter_chunks(self._text):
            yield ChunkRecord(content=content, source=self._source)


class ChunkSplitter(TextSplitter):
    """
    Character-based splitter on langchain's TextSplitter API, so
    create_documents()/split_documents() work with metadata as usual.

    Guarantees of spans() for text of length L, chunk size C, overlap O (O < C):
    - every span is at most C characters;
    - span[i] ends with exactly the O characters span[i+1] starts with;
    - text[s0:e0] + text[s1+O:e1] + ... == text.

    split()/split_text() then drop spans that are whitespace only, since a
    chunk must have content after trimming. Text with whitespace runs longer
    than C - O (common in HTML get_text() output) therefore loses those runs
    and the chunks no longer rebuild the text exactly.

    Cut points prefer the latest separator inside the window (paragraph,
    then sentence, then word) and fall back to a hard cut at C.
    """

    def __init__(
        self,
        chunk_size: int = settings.CHUNK_SIZE,
        chunk_overlap: int = settings.CHUNK_OVERLAP,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and < chunk_size")
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        self.separators = list(separators)

    def split(self, text: str, source: str) -> ChunkSequence:
        return ChunkSequence(self, text, source)

    def split_text(self, text: str) -> List[str]:
        return list(self.iter_chunks(text))

    def iter_chunks(self, text: str) -> Iterator[str]:
        for start, end in self.spans(text):
            content = text[start:end]
            if content.strip():
                yield content

    def spans(self, text: str) -> Iterator[Tuple[int, int]]:
        """Yield (start, end) offsets of each chunk; nothing for blank text."""
        if not text or not text.strip():
            return

        length = len(text)
        start = 0
        while True:
            end = min(start + self._chunk_size, length)
            if end < length:
                # Earliest cut that still moves the next window forward
                end = self._find_break(text, start + self._chunk_overlap + 1, end)
            yield start, end
            if end >= length:
                return
            start = end - self._chunk_overlap

    def _find_break(self, text: str, lo: int, hi: int) -> int:
        """Latest cut position in [lo, hi] that falls right after a separator."""
        for sep in self.separators:
            idx = text.rfind(sep, max(lo - len(sep), 0), hi)
            if idx != -1 and idx + len(sep) >= lo:
                return idx + len(sep)
        return hi
