"""Tests for ChunkSplitter."""

import pytest

from infrastructure.text_splitter import ChunkSplitter

PROSE = (
    "Retrieval augmented generation pairs a search index with a language model. "
    "Documents are split into overlapping chunks! Each chunk is embedded once.\n"
    "At question time the closest chunks are pulled back; the model reads them "
    "as context? That keeps answers grounded in the source material.\n\n"
) * 12


def _contents(splitter: ChunkSplitter, text: str):
    return [c.content for c in splitter.split(text, "doc.txt")]


def _rebuild(chunks, overlap: int) -> str:
    return chunks[0] + "".join(c[overlap:] for c in chunks[1:])


class TestChunkSplitter:
    @pytest.mark.parametrize("size,overlap", [(500, 50), (120, 30), (64, 0), (40, 39)])
    def test_size_overlap_and_reconstruction(self, size: int, overlap: int) -> None:
        splitter = ChunkSplitter(size, overlap)
        chunks = _contents(splitter, PROSE)

        assert len(chunks) > 1
        assert all(len(c) <= size for c in chunks)
        for prev, nxt in zip(chunks, chunks[1:]):
            if overlap:
                assert prev[-overlap:] == nxt[:overlap]
        assert _rebuild(chunks, overlap) == PROSE

    def test_blank_text_yields_nothing(self) -> None:
        splitter = ChunkSplitter(500, 50)
        assert _contents(splitter, "") == []
        assert _contents(splitter, "   \n\n\t  ") == []

    def test_short_text_is_single_chunk(self) -> None:
        splitter = ChunkSplitter(500, 50)
        assert _contents(splitter, "The sky is blue.") == ["The sky is blue."]

    def test_hard_cut_without_separators(self) -> None:
        chunks = _contents(ChunkSplitter(500, 50), "x" * 1200)

        assert [len(c) for c in chunks] == [500, 500, 300]

    def test_prefers_paragraph_boundary(self) -> None:
        text = "A" * 300 + "\n\n" + "B" * 300

        chunks = _contents(ChunkSplitter(500, 50), text)

        assert chunks[0] == "A" * 300 + "\n\n"
        assert chunks[1].endswith("B" * 300)
        assert _rebuild(chunks, 50) == text

    def test_prefers_word_boundary_over_hard_cut(self) -> None:
        text = " ".join(["word"] * 40)

        chunks = _contents(ChunkSplitter(50, 10), text)

        assert all(c.endswith(" ") for c in chunks[:-1])

    def test_chunks_carry_source(self) -> None:
        records = list(ChunkSplitter(100, 10).split(PROSE, "guide.md"))
        assert records
        assert {r.source for r in records} == {"guide.md"}
        assert all(r.content_hash is None for r in records)

    def test_sequence_is_restartable(self) -> None:
        sequence = ChunkSplitter(100, 20).split(PROSE, "doc.txt")

        first = [c.content for c in sequence]
        second = [c.content for c in sequence]

        assert first and first == second

    def test_whitespace_only_chunks_are_skipped(self) -> None:
        text = "alpha" + " " * 200 + "omega"

        chunks = _contents(ChunkSplitter(50, 5), text)

        assert all(c.strip() for c in chunks)
        assert "alpha" in chunks[0]
        assert "omega" in chunks[-1]

    @pytest.mark.parametrize("size,overlap", [(0, 0), (-5, 0), (100, 100), (100, 150), (100, -1)])
    def test_invalid_parameters(self, size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            ChunkSplitter(size, overlap)


class TestWhitespaceRuns:
    TEXT = "a" * 10 + " " * 30 + "b" * 10

    def test_spans_still_rebuild_text(self) -> None:
        splitter = ChunkSplitter(12, 2)
        spans = list(splitter.spans(self.TEXT))

        rebuilt = self.TEXT[spans[0][0]:spans[0][1]] + "".join(
            self.TEXT[start + 2:end] for start, end in spans[1:]
        )

        assert rebuilt == self.TEXT
        assert any(not self.TEXT[start:end].strip() for start, end in spans)

    def test_blank_spans_are_dropped_from_chunks(self) -> None:
        chunks = _contents(ChunkSplitter(12, 2), self.TEXT)

        assert all(c.strip() for c in chunks)
        assert chunks[0].startswith("a" * 10)
        assert chunks[-1].endswith("b" * 10)
        assert _rebuild(chunks, 2) != self.TEXT


class TestTextSplitterApi:
    def test_split_text_matches_split(self) -> None:
        splitter = ChunkSplitter(120, 30)

        assert splitter.split_text(PROSE) == _contents(splitter, PROSE)

    def test_create_documents_carries_metadata(self) -> None:
        splitter = ChunkSplitter(120, 30)

        docs = splitter.create_documents([PROSE], metadatas=[{"source": "guide.md"}])

        assert [d.page_content for d in docs] == splitter.split_text(PROSE)
        assert {d.metadata["source"] for d in docs} == {"guide.md"}
