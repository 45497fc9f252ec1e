"""
Unit tests for the in-memory document provider.
"""

from __future__ import annotations

import pytest

from statement_extractor.document import InMemoryDocument, Word, page_lines


@pytest.fixture
def doc() -> InMemoryDocument:
    words = {2: [Word("Income", 50.0, 90.0, 40.0, 52.0, size=14.0)]}
    return InMemoryDocument(["Cover", "Income Statement\n\n  Bank   Group ", None], words)


class TestInMemoryDocument:
    def test_pages_are_one_based(self, doc: InMemoryDocument) -> None:
        assert doc.page_count == 3
        assert doc.page_text(1) == "Cover"
        assert doc.page_text(3) == ""

    @pytest.mark.parametrize("page", [0, 4, -1])
    def test_out_of_range(self, doc: InMemoryDocument, page: int) -> None:
        with pytest.raises(IndexError):
            doc.page_text(page)

    def test_words(self, doc: InMemoryDocument) -> None:
        assert doc.page_words(2)[0].size == 14.0
        assert doc.page_words(1) == []

    def test_words_are_copied(self, doc: InMemoryDocument) -> None:
        doc.page_words(2).clear()
        assert len(doc.page_words(2)) == 1


def test_page_lines() -> None:
    assert page_lines("Income Statement\n\n  Bank   Group ") == ["Income Statement", "Bank Group"]
