"""
Deterministic EPR validation and fee rules.

Unit factors, thresholds and sentinels live here so the normalizer,
validator and aggregator agree on them.
"""

from enum import Enum

UNIT_FACTORS = {
    "grams": 1.0,
    "g": 1.0,
    "ounces": 28.35,
    "oz": 28.35,
    "pounds": 453.59,
    "lbs": 453.59,
}
SUPPORTED_UNITS_HINT = "grams (g), ounces (oz), pounds (lbs)"

QUANTITY_UNIT = "unit"
QUANTITY_CASE = "case"

OUTLIER_GRAMS = 300.0
LOW_WEIGHT_GRAMS = 0.1
NOTES_MAX_CHARS = 500
MATERIAL_SUGGESTIONS = 3

UNKNOWN = "Unknown"
DEFAULT_TOP_SKUS = 10

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"


class MaterialResolution(str, Enum):
    """How an unresolvable material_name affects the row."""

    # retained with zero fee so admins can correct it
    LENIENT = "lenient"
    # rejected outright, as in pre-submission review
    STRICT = "strict"
