"""
Statement Extractor — JSON API.

Thin Flask surface over ``StatementExtractionPipeline``: page location for
uploaded annual-report PDFs, plus the table-level operations (normalise,
map label, interpret columns, extract table).
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, Tuple

from flask import Flask, request
from werkzeug.utils import secure_filename

from statement_extractor.config import PipelineConfig, ValidationConfig
from statement_extractor.pdf_document import PdfPlumberDocument
from statement_extractor.pipeline import StatementExtractionPipeline
from statement_extractor.schema import StatementType, TableExtraction
from statement_extractor.schema_builder import SchemaBuilder

# -------------------------------------------------------
# App Setup
# -------------------------------------------------------

app = Flask(__name__)

app.config["MAX_CONTENT_LENGTH"] = 64 * 1024 * 1024
app.config["UPLOAD_FOLDER"] = Path(tempfile.gettempdir())

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TABLE_EXTENSIONS = {"csv", "xlsx"}

# -------------------------------------------------------
# Pipeline Setup
# -------------------------------------------------------

pipeline = StatementExtractionPipeline(
    config=PipelineConfig(
        validation=ValidationConfig(error_on_duplicate=False),
        log_level=logging.WARNING,
    )
)

# -------------------------------------------------------
# Helpers
# -------------------------------------------------------

Response = Tuple[Dict[str, Any], int]


class BadRequest(ValueError):
    """Client input that cannot be processed (→ HTTP 400)."""


def error(message: str, status: int = 400) -> Response:
    return {"success": False, "error": message}, status


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


def statement_type_from(value: Any) -> StatementType:
    if not isinstance(value, str) or not value.strip():
        raise BadRequest("'statement_type' is required")
    try:
        return StatementType.parse(value)
    except ValueError as exc:
        raise BadRequest(str(exc)) from exc


def rows_from(data: Dict[str, Any], key: str) -> list:
    rows = data.get(key)
    if not isinstance(rows, list) or not all(isinstance(r, list) for r in rows):
        raise BadRequest(f"'{key}' must be a list of rows (lists of cells)")
    return rows


def extension(filename: str) -> str:
    return filename.rsplit(".", 1)[1].lower() if "." in filename else ""


def save_upload(allowed: set) -> Path:
    if "file" not in request.files:
        raise BadRequest("No file uploaded")
    file = request.files["file"]
    if not file.filename:
        raise BadRequest("No file selected")
    if extension(file.filename) not in allowed:
        raise BadRequest(f"Invalid file type. Allowed: {', '.join(sorted(allowed))}")
    filepath = app.config["UPLOAD_FOLDER"] / secure_filename(file.filename)
    file.save(filepath)
    return filepath


@app.errorhandler(BadRequest)
def handle_bad_request(exc: BadRequest):
    return error(str(exc), 400)


# -------------------------------------------------------
# API
# -------------------------------------------------------

@app.route("/api/normalize", methods=["POST"])
def api_normalize():
    data = json_body()
    if "values" in data:
        if not isinstance(data["values"], list):
            raise BadRequest("'values' must be a list")
        return {
            "success": True,
            "results": [pipeline.normalize(v).to_dict() for v in data["values"]],
        }, 200
    if "value" not in data:
        raise BadRequest("'value' or 'values' is required")
    return {"success": True, "result": pipeline.normalize(data["value"]).to_dict()}, 200


@app.route("/api/map-label", methods=["POST"])
def api_map_label():
    data = json_body()
    statement_type = statement_type_from(data.get("statement_type"))
    labels = data.get("labels", [data.get("label")] if "label" in data else None)
    if not isinstance(labels, list) or not all(isinstance(x, str) for x in labels):
        raise BadRequest("'label' (string) or 'labels' (list of strings) is required")
    results = [pipeline.map_label(label, statement_type).to_dict() for label in labels]
    if "labels" in data:
        return {"success": True, "results": results}, 200
    return {"success": True, "result": results[0]}, 200


@app.route("/api/interpret-columns", methods=["POST"])
def api_interpret_columns():
    header_rows = rows_from(json_body(), "header_rows")
    columns = pipeline.interpret_columns(header_rows)
    return {
        "success": True,
        "columns": [info.to_dict() for _, info in sorted(columns.items())],
        "unit_scale": pipeline.detect_unit_scale(header_rows),
    }, 200


@app.route("/api/extract-table", methods=["POST"])
def api_extract_table():
    if "file" in request.files:
        statement_type = statement_type_from(request.form.get("statement_type"))
        filepath = save_upload(TABLE_EXTENSIONS)
        try:
            if filepath.suffix.lower() == ".csv":
                extraction = pipeline.extract_csv(filepath, statement_type)
            else:
                extraction = pipeline.extract_excel(filepath, statement_type)
        except RuntimeError as exc:
            return error(str(exc), 422)
        except Exception:
            logger.exception("Table extraction failed")
            return error("Could not read the uploaded table", 400)
        finally:
            filepath.unlink(missing_ok=True)
    else:
        data = json_body()
        statement_type = statement_type_from(data.get("statement_type"))
        try:
            if "rows" in data:
                extraction = pipeline.extract_rows(rows_from(data, "rows"), statement_type)
            else:
                extraction = pipeline.extract_table(
                    rows_from(data, "header_rows"),
                    rows_from(data, "data_rows"),
                    statement_type,
                )
        except RuntimeError as exc:
            return error(str(exc), 422)

    output = pipeline_output(extraction)
    return {"success": True, **output}, 200


def pipeline_output(extraction: TableExtraction) -> Dict[str, Any]:
    output = SchemaBuilder.build_output(extraction)
    output["extraction_success"] = output.pop("success")
    return output


@app.route("/api/locate", methods=["POST"])
def api_locate():
    min_confidence = request.form.get("min_confidence")
    top_n = request.form.get("top_n")
    try:
        threshold = float(min_confidence) if min_confidence not in (None, "") else None
        n = int(top_n) if top_n not in (None, "") else None
    except ValueError as exc:
        raise BadRequest("'min_confidence' must be a number and 'top_n' an integer") from exc
    if threshold is not None and not 0.0 <= threshold <= 1.0:
        raise BadRequest("'min_confidence' must be within [0, 1]")

    filepath = save_upload({"pdf"})
    try:
        with PdfPlumberDocument(filepath) as document:
            results = pipeline.locate(document, threshold)
            page_count = document.page_count
    except Exception:
        logger.exception("Locate failed for %s", filepath.name)
        return error("Could not read the uploaded PDF", 400)
    finally:
        filepath.unlink(missing_ok=True)

    if n is not None:
        results = pipeline.get_best_candidates(results, n)
    return {
        "success": True,
        "page_count": page_count,
        "candidates": {
            st.value: [c.to_dict() for c in candidates]
            for st, candidates in results.items()
        },
    }, 200


@app.route("/health", methods=["GET"])
@app.route("/api/health", methods=["GET"])
def api_health():
    return {
        "status": "online",
        "version": "1.0.0",
        "endpoints": [
            "/api/normalize",
            "/api/map-label",
            "/api/interpret-columns",
            "/api/extract-table",
            "/api/locate",
        ],
    }, 200


# -------------------------------------------------------
# Main
# -------------------------------------------------------

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=False)
