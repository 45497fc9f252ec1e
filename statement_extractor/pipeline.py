"""
Pipeline Orchestrator.

The central entry point that wires together every layer:

    Document  →  PageLocator (ToC / Heading / Layout → fusion)  →  pages
    Table     →  ColumnInterpreter  →  NumericNormalizer  →  MappingEngine
              →  Validator  →  canonical records

Usage
-----
>>> from statement_extractor.pipeline import StatementExtractionPipeline
>>> from statement_extractor.schema import StatementType
>>>
>>> pipe = StatementExtractionPipeline()
>>> pipe.map_label("interest revenue", StatementType.INCOME_STATEMENT).canonical_key
'Interest income'
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from statement_extractor.column_interpreter import ColumnInterpreter
from statement_extractor.config import PipelineConfig
from statement_extractor.document import DocumentProvider
from statement_extractor.logging_setup import configure_logging, get_logger
from statement_extractor.mapping_engine import MappingEngine
from statement_extractor.normalizer import LabelNormalizer, NumericNormalizer
from statement_extractor.page_locator import LocationResults, PageLocator
from statement_extractor.schema import (
    CanonicalRecord,
    ColumnInfo,
    ColumnType,
    MappingResult,
    NormalizedValue,
    StatementType,
    TableExtraction,
)
from statement_extractor.synonym_mapper import SynonymMapper
from statement_extractor.table_reader import TableReader
from statement_extractor.validator import Validator

logger = get_logger("pipeline")

StatementLike = Union[StatementType, str]


def _as_statement_type(value: StatementLike) -> StatementType:
    if isinstance(value, StatementType):
        return value
    return StatementType.parse(value)


def _is_per_share(field_name: str) -> bool:
    # Per-share figures are quoted in currency units, never in thousands.
    return "per share" in field_name.lower() or "per ordinary share" in field_name.lower()


class StatementExtractionPipeline:
    """Facade over the locator and the extraction layers.

    Parameters
    ----------
    config:
        All tuneable knobs.
    extra_synonyms:
        ``{statement_type: {canonical: [variants]}}`` merged into the
        built-in synonym dictionary.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        extra_synonyms: Optional[Dict[StatementType, Dict[str, Iterable[str]]]] = None,
    ) -> None:
        self._config = config or PipelineConfig()

        # Bootstrap logging before anything else
        configure_logging(level=self._config.log_level)

        # Construct layers
        self._label_normalizer = LabelNormalizer()
        self._numeric = NumericNormalizer(self._config.normalizer)
        self._synonyms = SynonymMapper(
            normalizer=self._label_normalizer,
            extra_synonyms=extra_synonyms,
        )
        if self._config.custom_synonym_path:
            self._synonyms.load_custom_synonyms(self._config.custom_synonym_path)

        self._mapper = MappingEngine(
            self._config.matching, self._label_normalizer, self._synonyms
        )
        self._columns = ColumnInterpreter(self._config.columns)
        self._locator = PageLocator(self._config.locator)
        self._validator = Validator(self._config.validation)
        self._reader = TableReader(self._numeric)

        logger.info(
            "Pipeline initialised: synonyms=%d, fuzzy_threshold=%.1f, "
            "min_page_confidence=%.2f, strict=%s",
            self._synonyms.size,
            self._config.matching.fuzzy_threshold,
            self._config.locator.min_page_confidence,
            self._config.strict_mode,
        )

    # ------------------------------------------------------------------ #
    # Core operations
    # ------------------------------------------------------------------ #

    def locate(
        self,
        document: DocumentProvider,
        min_confidence: Optional[float] = None,
    ) -> LocationResults:
        """Ranked page candidates for every statement type."""
        return self._locator.locate(document, min_confidence)

    def get_best_candidates(self, results: LocationResults, n: int = 1) -> LocationResults:
        return self._locator.get_best_candidates(results, n)

    def interpret_columns(self, header_rows: Sequence[Sequence[Any]]) -> Dict[int, ColumnInfo]:
        return self._columns.interpret_columns(header_rows)

    def detect_unit_scale(self, header_rows: Sequence[Sequence[Any]]) -> float:
        return self._columns.detect_unit_scale(header_rows)

    def normalize(self, raw: Any) -> NormalizedValue:
        return self._numeric.normalize(raw)

    def map_label(self, raw_label: str, statement_type: StatementLike) -> MappingResult:
        return self._mapper.map_label(raw_label, _as_statement_type(statement_type))

    # ------------------------------------------------------------------ #
    # Table extraction
    # ------------------------------------------------------------------ #

    def extract_table(
        self,
        header_rows: Sequence[Sequence[Any]],
        data_rows: Sequence[Sequence[Any]],
        statement_type: StatementLike,
        unit_scale: Optional[float] = None,
    ) -> TableExtraction:
        """Run column interpretation, normalisation and mapping over a table.

        Parameters
        ----------
        header_rows, data_rows:
            The table, already split (see ``TableReader``).
        statement_type:
            Which statement the table holds.
        unit_scale:
            Multiplier for every value; detected from the header when omitted.

        Raises
        ------
        RuntimeError
            In ``strict_mode`` when validation reports errors.
        """
        st = _as_statement_type(statement_type)
        columns = self._columns.interpret_columns(header_rows)
        scale = (
            unit_scale if unit_scale is not None
            else self._columns.detect_unit_scale(header_rows)
        )
        extraction = TableExtraction(statement_type=st, columns=columns, unit_scale=scale)

        value_columns = [c for c in columns.values() if c.column_type.is_value_column]
        if not value_columns:
            extraction.validation_warnings.append(
                "No Bank/Group value columns identified in the header"
            )
            logger.warning("No value columns in header %r", list(header_rows))
        label_idx = next(
            (i for i, c in columns.items() if c.column_type is ColumnType.DESCRIPTION), None
        )
        if label_idx is None:
            extraction.validation_warnings.append(
                "No label column identified in the header; rows not extracted"
            )
            logger.warning("No label column in header %r", list(header_rows))
        else:
            for row_number, row in enumerate(data_rows, start=1):
                self._extract_row(extraction, row_number, list(row), label_idx, value_columns)

        report = self._validator.validate(extraction.records)
        extraction.validation_errors.extend(report.errors)
        extraction.validation_warnings.extend(report.warnings)

        logger.info(
            "Extraction complete (%s): records=%d, unmapped=%d, errors=%d, warnings=%d",
            st.value,
            len(extraction.records),
            len(extraction.unmapped),
            len(extraction.validation_errors),
            len(extraction.validation_warnings),
        )

        if self._config.strict_mode and not extraction.success:
            raise RuntimeError(
                f"Strict mode: extraction produced {len(extraction.validation_errors)} "
                f"validation error(s):\n" + "\n".join(extraction.validation_errors)
            )
        return extraction

    def extract_rows(
        self, rows: Sequence[Sequence[Any]], statement_type: StatementLike
    ) -> TableExtraction:
        """Split raw rows into header / data and extract."""
        table = self._reader.read_rows(rows)
        return self.extract_table(table.header_rows, table.data_rows, statement_type)

    def extract_csv(
        self, source: Union[str, Path], statement_type: StatementLike
    ) -> TableExtraction:
        table = self._reader.read_csv(source)
        return self.extract_table(table.header_rows, table.data_rows, statement_type)

    def extract_excel(
        self,
        source: Union[str, Path],
        statement_type: StatementLike,
        sheet: Optional[str] = None,
    ) -> TableExtraction:
        table = self._reader.read_excel(source, sheet)
        return self.extract_table(table.header_rows, table.data_rows, statement_type)

    def _extract_row(
        self,
        extraction: TableExtraction,
        row_number: int,
        row: List[Any],
        label_idx: int,
        value_columns: List[ColumnInfo],
    ) -> None:
        raw_label = row[label_idx] if label_idx < len(row) else None
        label = " ".join(str(raw_label).split()) if raw_label is not None else ""
        if not label:
            logger.debug("Row %d has no label; skipped", row_number)
            return

        cells = {
            c.column_index: row[c.column_index] if c.column_index < len(row) else None
            for c in value_columns
        }
        if value_columns and all(
            v is None or (isinstance(v, str) and not v.strip()) for v in cells.values()
        ):
            logger.debug("Row %d (%r) has no values; treated as a section header", row_number, label)
            return

        mapping = self._mapper.map_label(label, extraction.statement_type)
        extraction.validation_warnings.extend(mapping.warnings)
        if not mapping.is_mapped:
            extraction.unmapped.append({
                "row": row_number,
                "raw_label": label,
                "raw_values": {str(i): v for i, v in cells.items()},
            })
            return

        for info in value_columns:
            parsed = self._numeric.normalize(cells[info.column_index])
            if parsed.parse_failed:
                extraction.validation_warnings.append(
                    f"Unparseable value {parsed.raw!r} for '{mapping.canonical_key}' "
                    f"(row {row_number}, column {info.column_index})"
                )
                continue
            if not _is_per_share(mapping.canonical_key):
                parsed = NumericNormalizer.scale(parsed, extraction.unit_scale)
            extraction.records.append(
                CanonicalRecord(
                    entity=info.entity,
                    year_slot=info.column_type.year_slot,
                    statement_type=extraction.statement_type,
                    canonical_field=mapping.canonical_key,
                    value=parsed.value,
                    year=info.year,
                    raw_label=label,
                    match_method=mapping.match_method,
                    confidence=mapping.confidence,
                )
            )

    # ------------------------------------------------------------------ #
    # Utility
    # ------------------------------------------------------------------ #

    def add_synonyms(
        self, statement_type: StatementLike, mapping: Dict[str, Iterable[str]]
    ) -> None:
        """Hot-add synonyms after pipeline construction."""
        self._mapper.add_synonyms(_as_statement_type(statement_type), mapping)

    @property
    def synonym_count(self) -> int:
        return self._synonyms.size

    @property
    def config(self) -> PipelineConfig:
        return self._config
