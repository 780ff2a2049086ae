"""Weight normalization to grams per unit."""

from __future__ import annotations

import math
from typing import Any, Optional

from .models import NormalizedWeight
from .parsing import to_int
from .rules import QUANTITY_CASE, SUPPORTED_UNITS_HINT, UNIT_FACTORS


def unit_factor(weight_unit: str) -> Optional[float]:
    """Grams per one `weight_unit`, or None for an unsupported unit."""
    return UNIT_FACTORS.get((weight_unit or "").strip().lower())


def case_divisor(quantity_basis: str, case_size: Any) -> Optional[int]:
    """
    The case size to divide by, or None when no division applies.

    Division applies only to case-based rows with a positive integer case size.
    """
    if (quantity_basis or "").strip().lower() != QUANTITY_CASE:
        return None
    size = to_int(case_size)
    if size is None or size <= 0:
        return None
    return size


def normalize(
    weight_value: float,
    weight_unit: str,
    quantity_basis: str,
    case_size: Any = None,
) -> NormalizedWeight:
    """
    Convert a submitted weight to grams per single unit.

    An unsupported unit is read as grams and reported through `unit_warning`
    rather than rejected. Zero or negative weights pass through unchanged.
    """
    factor = unit_factor(weight_unit)
    warning = None
    if factor is None:
        factor = 1.0
        warning = f"Invalid weight unit: {weight_unit}. Use {SUPPORTED_UNITS_HINT}"

    grams = weight_value * factor

    divisor = case_divisor(quantity_basis, case_size)
    if divisor is not None:
        grams = grams / divisor

    if not math.isfinite(grams):
        grams = 0.0

    return NormalizedWeight(grams=grams, unit_warning=warning)
