"""
Document provider interface.

The locator never opens files itself.  It reads pages through a provider
exposing ``page_count``, ``page_text(n)`` and ``page_words(n)``, with 1-based
page numbers.  ``page_words`` may return an empty list when the backend has
no layout information; detectors then fall back to plain text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence


@dataclass(frozen=True)
class Word:
    """A word box on a page (PDF points, origin top-left)."""

    text: str
    x0: float
    x1: float
    top: float
    bottom: float
    size: Optional[float] = None  # font size, when known


class DocumentProvider(Protocol):
    """What detectors need from a document."""

    @property
    def page_count(self) -> int: ...

    def page_text(self, page_number: int) -> str: ...

    def page_words(self, page_number: int) -> List[Word]: ...


def check_page_number(page_number: int, page_count: int) -> None:
    if not 1 <= page_number <= page_count:
        raise IndexError(f"Page {page_number} outside 1..{page_count}")


class InMemoryDocument:
    """A document built from page strings (and optional word boxes).

    Used for tests and for callers that already hold extracted text.
    """

    def __init__(
        self,
        pages: Sequence[str],
        words: Optional[Dict[int, List[Word]]] = None,
    ) -> None:
        self._pages = [p or "" for p in pages]
        self._words = dict(words or {})

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def page_text(self, page_number: int) -> str:
        check_page_number(page_number, self.page_count)
        return self._pages[page_number - 1]

    def page_words(self, page_number: int) -> List[Word]:
        check_page_number(page_number, self.page_count)
        return list(self._words.get(page_number, ()))


def page_lines(text: str) -> List[str]:
    """Non-blank, whitespace-collapsed lines of a page."""
    return [" ".join(line.split()) for line in text.splitlines() if line.strip()]
