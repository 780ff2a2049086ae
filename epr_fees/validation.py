"""
Row validation.

validate_row runs the ordered per-row checks used by live processing:

1. weight_value present and > 0            (error, row rejected, stop)
2. material_name and weight_unit present   (error, row rejected, stop)
3. weight_unit supported                   (warning, read as grams)
4. case size division                      (via units.normalize)
   normalized weight > 0 g                 (error, row rejected, stop)
5. material_name resolves                  (error; rejects only in STRICT mode)
6. normalized weight <= 300 g              (warning)
7. material_category matches the material  (warning)

review_rows is the pre-submission review of an uploaded file. It runs the
same checks in STRICT mode and adds vendor, SKU, case size and data-quality
checks plus a fee preview for each row.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from .fees import compute_fee
from .models import ReviewDetails, RowReview, RowValidation, SubmissionRow, ValidationIssue
from .parsing import is_blank_row, parse_row
from .registry import ReferenceRegistry
from .rules import (
    LOW_WEIGHT_GRAMS,
    MATERIAL_SUGGESTIONS,
    NOTES_MAX_CHARS,
    OUTLIER_GRAMS,
    QUANTITY_CASE,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    MaterialResolution,
)
from .units import normalize

logger = logging.getLogger(__name__)


def error_issue(row: int, field: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(row=row, field=field, message=message, severity=SEVERITY_ERROR, suggested_fix=fix)


def warning_issue(row: int, field: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(row=row, field=field, message=message, severity=SEVERITY_WARNING, suggested_fix=fix)


def validate_row(
    row: SubmissionRow,
    row_number: int,
    registry: ReferenceRegistry,
    mode: MaterialResolution = MaterialResolution.LENIENT,
) -> RowValidation:
    issues: List[ValidationIssue] = []

    weight = row.weight_value
    if weight is None or weight <= 0:
        issues.append(error_issue(row_number, "weight_value", "Invalid weight value",
                                  "Weight must be a positive number"))
        return RowValidation(issues=issues, rejected=True)

    if not row.material_name or not row.weight_unit:
        issues.append(error_issue(row_number, "material_name,weight_unit", "Missing required fields",
                                  "Fill in material_name and weight_unit"))
        return RowValidation(issues=issues, rejected=True)

    normalized = normalize(weight, row.weight_unit, row.quantity_basis, row.case_size)
    if normalized.unit_warning:
        issues.append(warning_issue(row_number, "weight_unit", normalized.unit_warning,
                                    "Use grams, ounces, or pounds"))
    grams = normalized.grams
    # overflow collapses to 0, and a tiny weight can underflow after the case division
    if not grams > 0:
        issues.append(error_issue(row_number, "weight_value", "Weight cannot be converted to a positive gram value",
                                  "Check the weight value, unit and case size"))
        return RowValidation(issues=issues, rejected=True)

    rejected = False
    material = registry.find_material(row.material_name)
    if material is None:
        suggestions = ", ".join(registry.material_suggestions(MATERIAL_SUGGESTIONS))
        fix = "Use a valid material from the materials list"
        if suggestions:
            fix = f"{fix}: {suggestions}"
        issues.append(error_issue(row_number, "material_name", f"Invalid material: {row.material_name}", fix))
        rejected = mode == MaterialResolution.STRICT

    if grams > OUTLIER_GRAMS:
        issues.append(warning_issue(row_number, "weight_value", f"Weight seems unusually high: {grams:.2f}g",
                                    "Verify this is packaging weight, not product weight"))

    if material is not None and material.category_group != row.material_category:
        issues.append(warning_issue(
            row_number,
            "material_category",
            f"Category mismatch: {row.material_category} should be {material.category_group}",
            f"Change category to {material.category_group}",
        ))

    return RowValidation(issues=issues, material=material, grams=grams, rejected=rejected)


def _check_references(row: SubmissionRow, row_number: int, registry: ReferenceRegistry,
                      details: ReviewDetails) -> List[ValidationIssue]:
    issues = []

    if not row.vendor_id:
        issues.append(error_issue(row_number, "vendor_id", "Missing vendor_id - Required for EPR reporting",
                                  "Add a valid vendor_id from the vendor database"))
    else:
        vendor = registry.find_vendor(row.vendor_id)
        if vendor is None:
            issues.append(error_issue(row_number, "vendor_id", f"Invalid vendor_id: {row.vendor_id}",
                                      "Use a vendor_id that exists in the vendor database"))
        else:
            details.vendor_name = vendor.vendor_name
            details.is_exempt = vendor.exempt

    if not row.sku_id:
        issues.append(error_issue(row_number, "sku_id", "Missing sku_id - Required for EPR reporting",
                                  "Add a valid sku_id from the product database"))
    else:
        product = registry.find_product(row.sku_id)
        if product is None:
            issues.append(error_issue(row_number, "sku_id", f"Invalid sku_id: {row.sku_id}",
                                      "Use a sku_id that exists in the product database"))
        else:
            details.sku_name = product.sku_name

    return issues


def review_row(raw: Any, row_number: int, registry: ReferenceRegistry) -> RowReview:
    parsed = parse_row(raw, row_number)
    if not isinstance(parsed, SubmissionRow):
        issue = error_issue(row_number, "row", parsed.reason, "Check the file layout: one header row, one record per line")
        return RowReview(row=row_number, issues=[issue], status="error", is_valid=False, is_compliant=False)

    row = parsed
    details = ReviewDetails()
    issues = _check_references(row, row_number, registry, details)

    checked = validate_row(row, row_number, registry, MaterialResolution.STRICT)
    issues.extend(checked.issues)

    if checked.grams > 0:
        bad_case = row.case_size_invalid or (row.case_size is not None and row.case_size <= 0)
        if row.quantity_basis == QUANTITY_CASE and bad_case:
            issues.append(error_issue(row_number, "case_size", "Case size must be greater than 0 for case-based weights",
                                      "Ensure case_size is a positive number for case-based weights"))

        if checked.grams < LOW_WEIGHT_GRAMS:
            issues.append(warning_issue(row_number, "weight_value", f"Very low weight: {checked.grams:.2f}g",
                                        "Verify weight accuracy. Consider using more precise measurement units"))

        details.normalized_weight_grams = checked.grams
        if checked.material is not None:
            priced = compute_fee(checked.grams, registry.find_fee(checked.material.material_name))
            details.fee_cents_per_gram = priced.fee_rate_cents_per_gram
            details.eco_modulation_discount = priced.eco_discount
            details.calculated_fee_cents = priced.fee_cents

    if row.notes and len(row.notes) > NOTES_MAX_CHARS:
        issues.append(warning_issue(row_number, "notes", f"Notes exceed {NOTES_MAX_CHARS} characters",
                                    f"Keep notes under {NOTES_MAX_CHARS} characters for EPR reporting"))

    if "product" in row.material_name.lower():
        issues.append(warning_issue(row_number, "material_name",
                                    'Material name contains "product" - Verify this is packaging material',
                                    "Ensure material name refers to packaging, not the product itself"))

    has_error = any(i.severity == SEVERITY_ERROR for i in issues)
    if has_error:
        status = "error"
    elif issues:
        status = "warning"
    else:
        status = "success"

    return RowReview(
        row=row_number,
        submission=row,
        details=details,
        issues=issues,
        status=status,
        is_valid=not has_error,
        is_compliant=not issues,
    )


def review_rows(rows: Iterable[Any], registry: ReferenceRegistry) -> List[RowReview]:
    """Review every non-blank row of an upload; rows are numbered after blanks are dropped."""
    kept = [r for r in rows if r is not None and not is_blank_row(r)]
    reviews = [review_row(raw, i + 1, registry) for i, raw in enumerate(kept)]
    errors = sum(1 for r in reviews if r.status == "error")
    logger.info("reviewed %d rows: %d with errors", len(reviews), errors)
    return reviews
