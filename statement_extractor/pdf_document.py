"""
pdfplumber-backed document provider.

Page text is extracted lazily and cached; access to the underlying file is
serialised with a lock because detectors read pages from worker threads.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, List, Union

import pdfplumber

from statement_extractor.document import Word, check_page_number
from statement_extractor.logging_setup import get_logger

logger = get_logger("pdf_document")


class PdfPlumberDocument:
    """Read-only view over a PDF file.

    Use as a context manager, or call ``close()`` when done::

        with PdfPlumberDocument("annual_report.pdf") as doc:
            results = pipeline.locate(doc)
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._pdf = pdfplumber.open(self._path)
        self._lock = threading.Lock()
        self._text_cache: Dict[int, str] = {}
        self._words_cache: Dict[int, List[Word]] = {}
        logger.info("Opened %s (%d pages)", self._path.name, len(self._pdf.pages))

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    def page_text(self, page_number: int) -> str:
        check_page_number(page_number, self.page_count)
        with self._lock:
            cached = self._text_cache.get(page_number)
            if cached is None:
                page = self._pdf.pages[page_number - 1]
                cached = page.extract_text() or ""
                self._text_cache[page_number] = cached
        return cached

    def page_words(self, page_number: int) -> List[Word]:
        check_page_number(page_number, self.page_count)
        with self._lock:
            cached = self._words_cache.get(page_number)
            if cached is None:
                page = self._pdf.pages[page_number - 1]
                raw = page.extract_words(keep_blank_chars=False, extra_attrs=["size"])
                cached = [
                    Word(
                        text=w["text"],
                        x0=float(w["x0"]),
                        x1=float(w["x1"]),
                        top=float(w["top"]),
                        bottom=float(w["bottom"]),
                        size=float(w["size"]) if w.get("size") is not None else None,
                    )
                    for w in raw
                ]
                self._words_cache[page_number] = cached
        return list(cached)

    def close(self) -> None:
        with self._lock:
            self._pdf.close()

    def __enter__(self) -> "PdfPlumberDocument":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
