"""Tests for the chunking service."""

import string
import uuid

import pytest

from knowledge_base.models.document import Document
from knowledge_base.services.chunking_service import (
    ChunkingService,
    chunk_text,
    make_chunk_id,
)
from knowledge_base.utils.errors import ChunkingError


def _sentences(count: int) -> str:
    """`count` sentences of exactly 100 characters each."""
    return ("A" * 98 + ". ") * count


def _non_whitespace(text: str) -> str:
    return "".join(text.split())


class TestChunkText:
    """Tests for the pure chunk_text function."""

    def test_short_text_is_single_chunk(self):
        """Text shorter than the window comes back as one trimmed chunk."""
        chunks = chunk_text("  Greet the caller by name.  ", chunk_size=1000, chunk_overlap=200)
        assert chunks == ["Greet the caller by name."]

    def test_sentence_text_cuts_on_boundaries(self):
        """2500 characters of 100-char sentences split into three chunks at periods."""
        text = _sentences(25)
        chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)

        assert len(chunks) == 3
        assert all(chunk.endswith(".") for chunk in chunks)
        assert all(len(chunk) <= 1000 for chunk in chunks)

    def test_boundary_cuts_cover_all_text(self):
        """Boundary cuts neither lose nor repeat any non-whitespace character."""
        text = _sentences(25)
        chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)
        assert _non_whitespace("".join(chunks)) == _non_whitespace(text)

    def test_hard_cut_overlaps_next_chunk(self):
        """Without boundaries the next window starts `overlap` characters back."""
        text = "".join(string.ascii_letters[i % 52] for i in range(2500))
        chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)

        assert chunks == [text[0:1000], text[800:1800], text[1600:2500]]
        assert chunks[0][-200:] == chunks[1][:200]

    def test_newline_counts_as_boundary(self):
        text = "a" * 700 + "\n" + "b" * 700
        chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)
        assert chunks == ["a" * 700, "b" * 700]

    def test_boundary_in_first_half_is_ignored(self):
        """A period before the halfway mark does not shorten the chunk."""
        text = "x" * 100 + "." + "y" * 2000
        chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)

        assert len(chunks[0]) == 1000
        assert chunks[1] == text[800:1800]

    def test_zero_overlap(self):
        text = "z" * 2500
        chunks = chunk_text(text, chunk_size=1000, chunk_overlap=0)
        assert [len(c) for c in chunks] == [1000, 1000, 500]

    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t  \n"])
    def test_blank_text_yields_no_chunks(self, text):
        assert chunk_text(text) == []

    def test_chunks_are_trimmed_and_non_empty(self):
        text = ("Line one.\n   \n" * 200) + "   "
        chunks = chunk_text(text, chunk_size=300, chunk_overlap=50)

        assert chunks
        for chunk in chunks:
            assert chunk
            assert chunk == chunk.strip()

    @pytest.mark.parametrize(
        "size,overlap",
        [(100, 100), (100, 150), (0, 0), (100, -1)],
    )
    def test_invalid_size_or_overlap_raises(self, size, overlap):
        with pytest.raises(ChunkingError):
            chunk_text("some text", chunk_size=size, chunk_overlap=overlap)


class TestChunkIds:
    """Tests for point id generation."""

    def test_deterministic_ids_are_stable(self):
        assert make_chunk_id("doc-1", 0) == make_chunk_id("doc-1", 0)

    def test_deterministic_ids_differ_per_position(self):
        ids = {make_chunk_id("doc-1", 0), make_chunk_id("doc-1", 1), make_chunk_id("doc-2", 0)}
        assert len(ids) == 3

    def test_ids_are_uuid_strings(self):
        uuid.UUID(make_chunk_id("doc-1", 3))
        uuid.UUID(make_chunk_id("doc-1", 3, deterministic=False))

    def test_random_ids_are_not_repeated(self):
        assert make_chunk_id("doc-1", 0, deterministic=False) != make_chunk_id(
            "doc-1", 0, deterministic=False
        )


class TestChunkingService:
    """Tests for ChunkingService document processing."""

    def test_defaults_come_from_settings(self):
        service = ChunkingService()
        assert service.chunk_size == 1000
        assert service.chunk_overlap == 200
        assert service.deterministic_ids is True

    def test_process_document_numbers_chunks(self):
        service = ChunkingService(chunk_size=1000, chunk_overlap=200)
        chunks = service.process_document(
            content=_sentences(25),
            document_id="guide-1",
            source="guidelines.pdf",
            title="Call Guidelines",
            page_number=4,
        )

        assert [c.metadata.chunk_index for c in chunks] == [0, 1, 2]
        for chunk in chunks:
            assert chunk.metadata.total_chunks == 3
            assert chunk.metadata.document_id == "guide-1"
            assert chunk.metadata.source == "guidelines.pdf"
            assert chunk.metadata.title == "Call Guidelines"
            assert chunk.metadata.page_number == 4

    def test_process_document_ids_follow_position(self):
        service = ChunkingService(chunk_size=1000, chunk_overlap=200, deterministic_ids=True)
        first = service.process_document(_sentences(25), "guide-1", "guidelines.pdf")
        second = service.process_document(_sentences(25), "guide-1", "guidelines.pdf")

        assert [c.id for c in first] == [c.id for c in second]
        assert first[1].id == make_chunk_id("guide-1", 1)

    def test_random_ids_when_disabled(self):
        service = ChunkingService(chunk_size=1000, chunk_overlap=200, deterministic_ids=False)
        first = service.process_document(_sentences(25), "guide-1", "guidelines.pdf")
        second = service.process_document(_sentences(25), "guide-1", "guidelines.pdf")

        assert {c.id for c in first}.isdisjoint({c.id for c in second})

    def test_blank_document_has_no_chunks(self):
        service = ChunkingService()
        assert service.process_document("   ", "empty", "empty.txt") == []

    def test_process_documents_keeps_order_and_numbering(self):
        service = ChunkingService(chunk_size=1000, chunk_overlap=200)
        documents = [
            Document(content=_sentences(25), documentId="a", source="a.txt"),
            Document(content="Short note.", documentId="b", source="b.txt", title="Note"),
        ]
        chunks = service.process_documents(documents)

        assert [(c.metadata.document_id, c.metadata.chunk_index) for c in chunks] == [
            ("a", 0),
            ("a", 1),
            ("a", 2),
            ("b", 0),
        ]
        assert chunks[-1].metadata.total_chunks == 1
        assert chunks[-1].metadata.title == "Note"

    def test_payload_uses_wire_names(self):
        service = ChunkingService()
        [chunk] = service.process_document("Short note.", "b", "b.txt")
        payload = chunk.to_payload()

        assert payload == {
            "content": "Short note.",
            "source": "b.txt",
            "documentId": "b",
            "chunkIndex": 0,
            "totalChunks": 1,
        }
