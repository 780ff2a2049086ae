"""
File adapters around the pipeline.

Responsibilities:
- encoding detection + decoding of uploaded CSV bytes
- delimiter detection
- reading CSV/XLSX uploads into loosely typed row dicts
- loading the four reference CSV files into a ReferenceRegistry
- exporting records and issues as UTF-8 with BOM (utf-8-sig) CSV
"""

from __future__ import annotations

import csv
import hashlib
import io
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from charset_normalizer import from_bytes
from openpyxl import load_workbook

from .models import ProcessedRecord, ValidationIssue
from .registry import ReferenceRegistry

logger = logging.getLogger(__name__)

EXPORT_ENCODING = "utf-8-sig"
CANDIDATE_DELIMITERS = [",", ";", "\t", "|"]

REFERENCE_FILES = {
    "materials": "materials.csv",
    "fees": "fees.csv",
    "vendors": "vendors.csv",
    "products": "products.csv",
}

RECORD_COLUMNS = [
    "vendor_id",
    "sku_id",
    "component",
    "material_name",
    "material_category",
    "weight_value",
    "weight_unit",
    "quantity_basis",
    "case_size",
    "notes",
    "normalized_weight_grams",
    "fee_rate_cents_per_gram",
    "eco_modulation_discount",
    "fee_cents",
    "is_exempt",
]
ISSUE_COLUMNS = ["row", "field", "message", "severity", "suggested_fix"]


class ReferenceDataError(ValueError):
    """A reference table is missing or unreadable."""


class UnsupportedFileType(ValueError):
    """An upload is neither CSV nor Excel."""


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def decode_bytes(raw: bytes) -> tuple[str, Dict[str, Any]]:
    """
    Decode uploaded bytes to text.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is consumed, not kept as part of the first header.
    - If decode fails, fall back to UTF-8, then to UTF-8 with replacement characters.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False
    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        decode_fallback = True
        try:
            text = raw.decode("utf-8-sig")
            decode_used = "utf-8-sig"
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="replace")
            decode_used = "utf-8"

    if text.startswith("\ufeff"):
        text = text[1:]

    # CRLF/CR -> LF
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    report = {"detected": detected, "decode_used": decode_used, "decode_fallback": decode_fallback}
    logger.debug("decoded upload: %s", report)
    return text, report


def sniff_delimiter(text: str) -> str:
    try:
        return csv.Sniffer().sniff(text[:4096], delimiters=CANDIDATE_DELIMITERS).delimiter
    except csv.Error:
        return ","


def read_csv_rows(raw: bytes) -> List[Dict[str, Any]]:
    """Header row + data rows as dicts; short rows are padded with ""."""
    text, _ = decode_bytes(raw)
    if not text.strip():
        return []
    delimiter = sniff_delimiter(text)
    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter, restval="")
    rows = [dict(r) for r in reader]
    logger.info("read %d CSV rows (delimiter %r)", len(rows), delimiter)
    return rows


def read_xlsx_rows(raw: bytes) -> List[Dict[str, Any]]:
    """First worksheet; row 1 = headers, rows 2+ = data."""
    try:
        wb = load_workbook(io.BytesIO(raw), data_only=True, read_only=True)
    except Exception as e:
        raise UnsupportedFileType(f"Cannot read Excel file (is it corrupted or wrong format?): {e}") from e

    try:
        ws = wb.worksheets[0]
        values = ws.iter_rows(values_only=True)
        header = next(values, None)
        if header is None:
            return []
        columns = [str(h).strip() if h is not None else None for h in header]

        rows = []
        for cells in values:
            row = {col: cell for col, cell in zip(columns, cells) if col}
            rows.append(row)
    finally:
        wb.close()

    logger.info("read %d Excel rows", len(rows))
    return rows


def read_table(filename: str, raw: bytes) -> List[Dict[str, Any]]:
    name = (filename or "").lower()
    if name.endswith(".csv"):
        return read_csv_rows(raw)
    if name.endswith(".xlsx"):
        return read_xlsx_rows(raw)
    raise UnsupportedFileType("Only CSV and Excel (.xlsx) files are supported")


def load_registry(directory: Path) -> ReferenceRegistry:
    """Build the registry from materials.csv, fees.csv, vendors.csv and products.csv in `directory`."""
    tables = {}
    for key, filename in REFERENCE_FILES.items():
        path = Path(directory) / filename
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ReferenceDataError(f"Failed to load {filename}: {e}") from e
        tables[key] = read_csv_rows(raw)
    return ReferenceRegistry.from_rows(**tables)


def _to_csv(columns: Sequence[str], rows: Iterable[Dict[str, Any]]) -> bytes:
    outp = io.StringIO(newline="")
    writer = csv.DictWriter(outp, fieldnames=columns, lineterminator="\n", extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return outp.getvalue().encode(EXPORT_ENCODING)


def records_to_csv(records: Iterable[ProcessedRecord]) -> bytes:
    return _to_csv(RECORD_COLUMNS, (r.model_dump() for r in records))


def issues_to_csv(issues: Iterable[ValidationIssue]) -> bytes:
    return _to_csv(ISSUE_COLUMNS, (i.model_dump() for i in issues))
