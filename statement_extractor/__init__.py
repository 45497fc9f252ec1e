"""
Statement Extractor — annual-report statement location and mapping engine.

Locates the income statement, statement of financial position and statement
of cash flows inside large annual-report PDFs by fusing table-of-contents,
heading and layout evidence, then maps the rows and columns of an extracted
statement table onto a canonical Entity × Year × Field schema.

Every page candidate and every label mapping carries a confidence score and
its evidence; nothing is guessed silently.
"""

__version__ = "1.0.0"
__author__ = "Statement Extractor Team"

from statement_extractor.pipeline import StatementExtractionPipeline  # noqa: F401
