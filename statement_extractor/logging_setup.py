"""
Centralised logging configuration for Statement Extractor.

Every module obtains its logger via ``get_logger("<module>")``.  The
pipeline calls ``configure_logging`` at construction so that detectors,
the locator and the mapper write through one handler and one format.

The first call installs the handlers; later calls only adjust the level,
so building a second pipeline with a different ``log_level`` never
duplicates output.  pdfminer (used by pdfplumber) logs every parsed object
at DEBUG and is held at WARNING unless asked otherwise.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional


_NAMESPACE = "statement_extractor"

# Third-party loggers that flood the audit trail when left at our level.
_NOISY_LOGGERS = ("pdfminer", "pdfplumber")

LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)-40s | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_console: Optional[logging.Handler] = None
_file_handlers: dict[str, logging.FileHandler] = {}


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    third_party_level: int = logging.WARNING,
) -> logging.Logger:
    """Set up the ``statement_extractor`` logger tree.

    Parameters
    ----------
    level:
        Minimum severity to emit.  Applied to the namespace logger and all
        of its handlers on every call.
    log_file:
        If provided, a ``FileHandler`` for this path is added alongside the
        console handler (once per path).
    third_party_level:
        Level for the PDF backend's loggers.

    Returns
    -------
    logging.Logger
        The namespace logger.
    """
    root = logging.getLogger(_NAMESPACE)
    root.setLevel(level)
    root.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    global _console  # noqa: PLW0603
    if _console is None:
        _console = logging.StreamHandler(sys.stdout)
        _console.setFormatter(formatter)
        root.addHandler(_console)

    if log_file and log_file not in _file_handlers:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)
        _file_handlers[log_file] = fh

    for handler in root.handlers:
        handler.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return root


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``statement_extractor`` namespace."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")
