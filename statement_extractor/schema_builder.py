"""
Schema Builder.

Assembles ``CanonicalRecord`` objects into the canonical nested dictionary
consumed downstream::

    {Entity: {Year slot: {StatementType: {Field: Value}}}}

and serialises extraction results to JSON or CSV.
"""

from __future__ import annotations

import csv
import json
from io import StringIO
from typing import Any, Dict, Iterable, Optional

from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import CanonicalRecord, TableExtraction

logger = get_logger("schema_builder")

NestedSchema = Dict[str, Dict[str, Dict[str, Dict[str, Optional[float]]]]]


class SchemaBuilder:
    """Builds and serialises the canonical financial schema."""

    @staticmethod
    def build_nested(records: Iterable[CanonicalRecord]) -> NestedSchema:
        """Nest records as Entity → Year slot → StatementType → Field → Value.

        A later record for the same key overwrites an earlier one; the
        validator reports such duplicates.
        """
        nested: NestedSchema = {}
        for r in records:
            fields = (
                nested.setdefault(r.entity.value, {})
                .setdefault(r.year_slot, {})
                .setdefault(r.statement_type.value, {})
            )
            if r.canonical_field in fields:
                logger.debug("Overwriting %s with later value", r.key)
            fields[r.canonical_field] = r.value
        return nested

    @staticmethod
    def merge(*schemas: NestedSchema) -> NestedSchema:
        """Merge several nested schemas (e.g. one per statement table)."""
        merged: NestedSchema = {}
        for schema in schemas:
            for entity, years in schema.items():
                for slot, statements in years.items():
                    for statement, fields in statements.items():
                        merged.setdefault(entity, {}).setdefault(slot, {}).setdefault(
                            statement, {}
                        ).update(fields)
        return merged

    @staticmethod
    def periods(extraction: TableExtraction) -> Dict[str, Dict[str, Optional[int]]]:
        """Explicit year per entity and slot, as read from the header."""
        out: Dict[str, Dict[str, Optional[int]]] = {}
        for info in extraction.columns.values():
            slot = info.column_type.year_slot
            if slot is None or info.entity is None:
                continue
            out.setdefault(info.entity.value, {})[slot] = info.year
        return out

    @classmethod
    def build_output(cls, extraction: TableExtraction) -> Dict[str, Any]:
        """Extraction summary plus the canonical nested schema."""
        output = extraction.to_dict()
        output["periods"] = cls.periods(extraction)
        output["canonical"] = cls.build_nested(extraction.records)
        return output

    @classmethod
    def to_json(cls, extraction: TableExtraction, indent: int = 2) -> str:
        """Serialise an extraction (with its canonical schema) to JSON."""
        return json.dumps(cls.build_output(extraction), indent=indent, ensure_ascii=False)

    @staticmethod
    def to_csv_string(extraction: TableExtraction) -> str:
        """Serialise records to CSV text (excludes unmapped / validation)."""
        buf = StringIO()
        writer = csv.writer(buf)
        writer.writerow([
            "entity", "year_slot", "year", "statement_type", "canonical_field",
            "value", "raw_label", "match_method", "confidence",
        ])
        for r in extraction.records:
            writer.writerow([
                r.entity.value,
                r.year_slot,
                r.year if r.year is not None else "",
                r.statement_type.value,
                r.canonical_field,
                r.value if r.value is not None else "",
                r.raw_label,
                r.match_method.value,
                round(r.confidence, 2),
            ])
        return buf.getvalue()
