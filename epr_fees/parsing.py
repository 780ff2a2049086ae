"""
Type coercion for loosely typed input rows.

Submission rows and reference rows arrive from CSV/XLSX readers or JSON with
strings, numbers, blanks and junk mixed together. Everything is coerced here,
once, so the validator only ever sees a SubmissionRow.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Union

from .models import ParseFailure, SubmissionRow
from .rules import QUANTITY_UNIT

logger = logging.getLogger(__name__)


def to_text(value: Any) -> str:
    """Stringify and strip a cell; None and NaN become ""."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        # spreadsheet readers hand back 101.0 for an id typed as 101
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def to_number(value: Any) -> Optional[float]:
    """Convert int/float (or numeric-like strings) to float. Return None if not possible."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        v = float(value)
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            v = float(s)
        except ValueError:
            return None
    if not math.isfinite(v):
        return None
    return v


def to_int(value: Any) -> Optional[int]:
    """Integer part of a numeric-like value (12.7 -> 12), or None."""
    v = to_number(value)
    if v is None:
        return None
    return int(v)


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return to_text(value).lower() == "true"


def clean_keys(raw: Mapping[Any, Any]) -> dict:
    # csv.DictReader files overflow cells under a None key
    return {str(k).strip(): v for k, v in raw.items() if k is not None}


def is_blank_row(raw: Any) -> bool:
    if not isinstance(raw, Mapping):
        return False
    return all(to_text(v) == "" for v in raw.values())


def parse_row(raw: Any, row_number: int) -> Union[SubmissionRow, ParseFailure]:
    """
    Coerce one raw submission row.

    Returns a ParseFailure only when the input is not a mapping at all; bad
    individual values become None/"" and are left for the validator to judge.
    """
    if not isinstance(raw, Mapping):
        logger.debug("row %d: cannot parse %s", row_number, type(raw).__name__)
        return ParseFailure(row=row_number, reason=f"Expected a row mapping, got {type(raw).__name__}")

    data = clean_keys(raw)

    case_text = to_text(data.get("case_size"))
    case_size = to_int(case_text) if case_text else None
    notes = to_text(data.get("notes"))

    return SubmissionRow(
        vendor_id=to_text(data.get("vendor_id")),
        sku_id=to_text(data.get("sku_id")),
        component=to_text(data.get("component")),
        material_name=to_text(data.get("material_name")),
        material_category=to_text(data.get("material_category")),
        weight_value=to_number(data.get("weight_value")),
        weight_unit=to_text(data.get("weight_unit")),
        quantity_basis=to_text(data.get("quantity_basis")).lower() or QUANTITY_UNIT,
        case_size=case_size,
        notes=notes or None,
        case_size_invalid=bool(case_text) and case_size is None,
    )
