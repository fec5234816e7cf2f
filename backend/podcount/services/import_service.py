# Overview: Service-layer operations for imports; encapsulates business logic and database work.

"""
Import Pipeline

Turns an uploaded CSV or Excel sheet into one IMPORTED form plus one
response per data row.

STEPS:
1. read_tabular(): decode the file into headers + row mappings, dropping
   rows where every cell is empty
2. infer_schema(): one required field per header, typed from the first
   data row (date, then number, else text)
3. import_tabular(): create the form and bulk-insert the rows in one
   transaction; on a name collision retry once with a timestamped name
"""

from __future__ import annotations

import csv
import io
import os
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from flask import current_app
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import ConflictError, EmptyFileError, ValidationError
from ..models import Form
from ..permissions import FORM_TYPE_IMPORTED
from ..schema import FieldSpec, FormSchema, default_label
from ..validation import normalize_response_value
from podcount.time_utils import looks_numeric, parse_date_value, utcnow
from . import form_service, response_service
from .session_service import Principal
from .transactions import atomic


CSV_EXTENSIONS = {"csv"}
EXCEL_EXTENSIONS = {"xlsx", "xlsm"}


@dataclass
class TabularData:
    headers: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ImportResult:
    form: Form
    responses_created: int


def file_extension(filename: str | None) -> str:
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def _cell_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return normalize_response_value(value)


def _unique_headers(raw_headers: list[Any]) -> list[tuple[int, str]]:
    """(column index, header) pairs; blank and repeated headers are skipped."""
    seen: set[str] = set()
    out: list[tuple[int, str]] = []
    for index, raw in enumerate(raw_headers):
        header = str(raw).strip() if raw is not None else ""
        if not header or header in seen:
            continue
        seen.add(header)
        out.append((index, header))
    return out


def _is_empty_row(row: dict[str, Any]) -> bool:
    return all(value is None for value in row.values())


def _rows_from_matrix(matrix: list[list[Any]]) -> TabularData:
    if not matrix:
        return TabularData(headers=[])

    columns = _unique_headers(list(matrix[0]))
    rows = []
    for raw_row in matrix[1:]:
        cells = list(raw_row or [])
        row = {
            header: _cell_value(cells[index] if index < len(cells) else None)
            for index, header in columns
        }
        if not _is_empty_row(row):
            rows.append(row)
    return TabularData(headers=[header for _, header in columns], rows=rows)


def _read_csv(content: bytes) -> TabularData:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    reader = csv.reader(io.StringIO(text))
    return _rows_from_matrix([row for row in reader])


def _read_excel(content: bytes) -> TabularData:
    try:
        wb = load_workbook(io.BytesIO(content), data_only=True, read_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError, ValueError, SyntaxError) as exc:
        # SyntaxError covers the XML parse errors of both ElementTree and lxml.
        raise ValidationError("Could not read Excel file") from exc
    try:
        sheet = wb.active
        matrix = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        wb.close()
    return _rows_from_matrix(matrix)


def read_tabular(content: bytes, filename: str) -> TabularData:
    """
    Decode an uploaded file by extension.

    Raises:
        ValidationError: unsupported extension (legacy .xls included) or unreadable workbook
        EmptyFileError: no headers or no non-empty data rows
    """
    ext = file_extension(filename)
    if ext in CSV_EXTENSIONS:
        data = _read_csv(content)
    elif ext in EXCEL_EXTENSIONS:
        data = _read_excel(content)
    elif ext == "xls":
        raise ValidationError("Legacy .xls workbooks are not supported; save the file as .xlsx or .csv")
    else:
        raise ValidationError("Unsupported file format; upload a CSV or Excel (.xlsx) file")

    if not data.headers:
        raise EmptyFileError("No headers found in file")
    if not data.rows:
        raise EmptyFileError("No data rows found in file")
    return data


def infer_field_type(value: Any) -> str:
    if value is None or value == "":
        return "text"
    if parse_date_value(value) is not None:
        return "date"
    if looks_numeric(value):
        return "number"
    return "text"


def infer_schema(headers: list[str], sample_row: dict[str, Any]) -> list[FieldSpec]:
    """Every inferred field is required; the header is the response key."""
    sample_row = sample_row or {}
    return [
        FieldSpec(
            name=header,
            label=default_label(header),
            type=infer_field_type(sample_row.get(header)),
            required=True,
        )
        for header in headers
    ]


def default_form_name(filename: str) -> str:
    stem = os.path.basename(filename or "").split(".")[0]
    return stem.replace("-", " ").replace("_", " ").strip() or "Imported Form"


def default_description(filename: str, row_count: int) -> str:
    return f"Form imported from {os.path.basename(filename or '')} with {row_count} entries"


def _timestamped(name: str) -> str:
    stamp = utcnow().isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    return f"{name} ({stamp})"


def _create_with_rows(principal: Principal, name: str, description: str, schema: FormSchema,
                      factory_id: Any, rows: list[dict]) -> ImportResult:
    with atomic(form_service.DUPLICATE_NAME_MESSAGE, ["name", "factory_id"]):
        form = form_service.insert_form(
            principal,
            name=name,
            fields=schema,
            form_type=FORM_TYPE_IMPORTED,
            description=description,
            factory_id=factory_id,
        )
        count = response_service.add_bulk_rows(principal, form, rows)
    return ImportResult(form=form, responses_created=count)


def import_tabular(
    principal: Principal,
    content: bytes,
    filename: str,
    name: str | None = None,
    description: str | None = None,
    factory_id: Any = None,
) -> ImportResult:
    """
    Create one IMPORTED form and a response per data row.

    The form and its responses commit together. A duplicate form name is
    retried once with a timestamp suffix before ConflictError propagates.
    """
    data = read_tabular(content, filename)
    schema = FormSchema.single_section(infer_schema(data.headers, data.rows[0]))

    form_name = (name or "").strip() or default_form_name(filename)
    form_description = (description or "").strip() or default_description(filename, len(data.rows))

    try:
        result = _create_with_rows(principal, form_name, form_description, schema, factory_id, data.rows)
    except ConflictError:
        retry_name = _timestamped(form_name)
        current_app.logger.info("Form name %r taken; retrying import as %r", form_name, retry_name)
        result = _create_with_rows(principal, retry_name, form_description, schema, factory_id, data.rows)

    current_app.logger.info(
        "Imported %s rows from %s into form %s by user %s",
        result.responses_created, filename, result.form.id, principal.user_id,
    )
    return result
