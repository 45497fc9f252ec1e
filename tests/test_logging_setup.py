"""
Unit tests for the logging bootstrap.
"""

from __future__ import annotations

import logging
from pathlib import Path

from statement_extractor.logging_setup import configure_logging, get_logger


def test_child_loggers_share_namespace() -> None:
    assert get_logger("toc_detector").name == "statement_extractor.toc_detector"


def test_reconfigure_changes_level_without_new_handlers() -> None:
    root = configure_logging(logging.INFO)
    handlers = list(root.handlers)

    configure_logging(logging.WARNING)
    assert root.handlers == handlers
    assert root.level == logging.WARNING
    assert all(h.level == logging.WARNING for h in root.handlers)
    assert root.propagate is False


def test_pdf_backend_loggers_held_back() -> None:
    configure_logging(logging.DEBUG)
    assert logging.getLogger("pdfminer").level == logging.WARNING
    configure_logging(logging.WARNING)


def test_file_handler_added_once(tmp_path: Path) -> None:
    log_file = str(tmp_path / "audit.log")
    root = configure_logging(logging.INFO, log_file=log_file)
    configure_logging(logging.INFO, log_file=log_file)
    file_handlers = [
        h for h in root.handlers
        if isinstance(h, logging.FileHandler) and h.baseFilename.endswith("audit.log")
    ]
    assert len(file_handlers) == 1

    get_logger("pipeline").info("hello audit")
    for h in file_handlers:
        h.flush()
    assert "hello audit" in Path(log_file).read_text(encoding="utf-8")
    configure_logging(logging.WARNING)
