"""
Submission processing.

Every function works on a SubmissionState owned by the caller. The issue list
is append-only and never deduplicated: reprocessing the same rows without
clear_all() repeats their diagnostics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from .fees import compute_fee
from .models import ProcessedRecord, RowReview, SubmissionRow, ValidationIssue
from .parsing import parse_row
from .registry import ReferenceRegistry
from .rules import SEVERITY_ERROR, MaterialResolution
from .validation import error_issue, validate_row

logger = logging.getLogger(__name__)

# fields an admin edit may change; the priced fields are always recomputed
SUBMISSION_FIELDS = (
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
)


@dataclass
class SubmissionState:
    records: List[ProcessedRecord] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)


def process_row(
    raw: Any,
    row_number: int,
    registry: ReferenceRegistry,
    state: SubmissionState,
    mode: MaterialResolution = MaterialResolution.LENIENT,
) -> Optional[ProcessedRecord]:
    """
    Validate, normalize and price one row.

    Issues go to state.issues whatever the outcome. Returns None for a
    rejected row; does not append the record (callers decide where it goes).
    """
    parsed = parse_row(raw, row_number)
    if not isinstance(parsed, SubmissionRow):
        state.issues.append(error_issue(row_number, "row", parsed.reason))
        return None

    checked = validate_row(parsed, row_number, registry, mode)
    state.issues.extend(checked.issues)
    if checked.rejected:
        logger.debug("row %d rejected: %s", row_number, "; ".join(i.message for i in checked.issues))
        return None

    fee_entry = None
    if checked.material is not None:
        fee_entry = registry.find_fee(checked.material.material_name)
    priced = compute_fee(checked.grams, fee_entry)

    vendor = registry.find_vendor(parsed.vendor_id)

    return ProcessedRecord(
        **parsed.model_dump(),
        case_size_invalid=parsed.case_size_invalid,
        normalized_weight_grams=checked.grams,
        fee_cents=priced.fee_cents,
        fee_rate_cents_per_gram=priced.fee_rate_cents_per_gram,
        eco_modulation_discount=priced.eco_discount,
        is_exempt=vendor.exempt if vendor is not None else False,
        source_row=row_number,
        has_errors=any(i.severity == SEVERITY_ERROR for i in checked.issues),
    )


def process_batch(
    rows: Iterable[Any],
    registry: ReferenceRegistry,
    state: SubmissionState,
    mode: MaterialResolution = MaterialResolution.LENIENT,
) -> None:
    """Replace the state with the results of processing `rows`, numbered from 1."""
    clear_all(state)
    count = 0
    for i, raw in enumerate(rows):
        count += 1
        record = process_row(raw, i + 1, registry, state, mode)
        if record is not None:
            state.records.append(record)
    logger.info("processed %d rows: %d records, %d issues", count, len(state.records), len(state.issues))


def add_record(raw: Any, registry: ReferenceRegistry, state: SubmissionState) -> Optional[ProcessedRecord]:
    record = process_row(raw, len(state.records) + 1, registry, state)
    if record is not None:
        state.records.append(record)
    return record


def update_record(state: SubmissionState, index: int, patch: Mapping[str, Any]) -> Optional[ProcessedRecord]:
    """
    Merge `patch` into the record at `index`.

    Out-of-range indexes and patches that do not fit the record are ignored.
    """
    if index < 0 or index >= len(state.records):
        return None
    current = state.records[index]
    merged = {**current.model_dump(), "case_size_invalid": current.case_size_invalid, **dict(patch)}
    try:
        record = ProcessedRecord.model_validate(merged)
    except ValidationError as e:
        logger.debug("update of record %d ignored: %s", index, e)
        return None
    state.records[index] = record
    return record


def find_record(state: SubmissionState, sku_id: str, material_name: str) -> Optional[int]:
    for i, record in enumerate(state.records):
        if record.sku_id == sku_id and record.material_name == material_name:
            return i
    return None


def update_record_by_identity(
    state: SubmissionState, sku_id: str, material_name: str, patch: Mapping[str, Any]
) -> Optional[ProcessedRecord]:
    index = find_record(state, sku_id, material_name)
    if index is None:
        return None
    return update_record(state, index, patch)


def reprocess_record(
    state: SubmissionState,
    index: int,
    changes: Mapping[str, Any],
    registry: ReferenceRegistry,
) -> Optional[ProcessedRecord]:
    """
    Apply an admin edit and run the row through the pipeline again.

    The record keeps its position and source row. If the edited row is now
    rejected the old record stays in place and None is returned.
    """
    if index < 0 or index >= len(state.records):
        return None
    current = state.records[index]
    raw: Dict[str, Any] = {name: getattr(current, name) for name in SUBMISSION_FIELDS}
    raw.update({k: v for k, v in changes.items() if k in SUBMISSION_FIELDS})

    record = process_row(raw, current.source_row, registry, state)
    if record is None:
        return None
    if "case_size" not in changes:
        record = record.model_copy(update={"case_size_invalid": current.case_size_invalid})
    state.records[index] = record
    return record


def remove_record(state: SubmissionState, sku_id: str, material_name: str) -> bool:
    index = find_record(state, sku_id, material_name)
    if index is None:
        return False
    del state.records[index]
    return True


def submit_reviewed(reviews: Iterable[RowReview], registry: ReferenceRegistry, state: SubmissionState) -> int:
    """Replace the state with every reviewed row that has no errors. Returns the number submitted."""
    clear_all(state)
    submitted = 0
    for review in reviews:
        if review.status == "error" or review.submission is None:
            continue
        if add_record(review.submission.model_dump(), registry, state) is not None:
            submitted += 1
    logger.info("submitted %d reviewed rows", submitted)
    return submitted


def clear_all(state: SubmissionState) -> None:
    state.records.clear()
    state.issues.clear()
