from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from .rules import UNKNOWN

Severity = Literal["error", "warning"]


class Material(BaseModel):
    model_config = ConfigDict(frozen=True)

    material_name: str
    category_group: str = ""


class FeeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    material_name: str
    fee_cents_per_gram: float = 0.0
    # None is "not provided", which prices like 0 but is kept distinct
    eco_modulation_discount: Optional[float] = None


class Vendor(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor_id: str
    vendor_name: str = ""
    exempt: bool = False


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    sku_id: str
    sku_name: str = ""
    vendor_id: str = ""
    category: str = ""


class SubmissionRow(BaseModel):
    """A vendor submission row after type coercion, before business validation."""

    model_config = ConfigDict(frozen=True)

    vendor_id: str = ""
    sku_id: str = ""
    component: str = ""
    material_name: str = ""
    material_category: str = ""
    weight_value: Optional[float] = None
    weight_unit: str = ""
    quantity_basis: str = "unit"
    case_size: Optional[int] = None
    notes: Optional[str] = None
    # a case_size was supplied but could not be read as an integer
    case_size_invalid: bool = Field(default=False, exclude=True)


class ParseFailure(BaseModel):
    row: int
    reason: str


class ProcessedRecord(SubmissionRow):
    normalized_weight_grams: float = 0.0
    fee_cents: float = 0.0
    fee_rate_cents_per_gram: float = 0.0
    eco_modulation_discount: float = 0.0
    is_exempt: bool = False
    source_row: int = 0
    # validation of the row that produced this record raised an error
    has_errors: bool = False


class ValidationIssue(BaseModel):
    row: int
    field: str
    message: str
    severity: Severity
    suggested_fix: Optional[str] = None


class NormalizedWeight(BaseModel):
    grams: float
    unit_warning: Optional[str] = None


class FeeResult(BaseModel):
    fee_cents: float = 0.0
    fee_rate_cents_per_gram: float = 0.0
    eco_discount: float = 0.0


class RowValidation(BaseModel):
    issues: List[ValidationIssue] = Field(default_factory=list)
    material: Optional[Material] = None
    grams: float = 0.0
    rejected: bool = False


class ReviewDetails(BaseModel):
    vendor_name: str = UNKNOWN
    sku_name: str = UNKNOWN
    is_exempt: bool = False
    normalized_weight_grams: float = 0.0
    fee_cents_per_gram: float = 0.0
    eco_modulation_discount: float = 0.0
    calculated_fee_cents: float = 0.0


class RowReview(BaseModel):
    row: int
    submission: Optional[SubmissionRow] = None
    details: ReviewDetails = Field(default_factory=ReviewDetails)
    issues: List[ValidationIssue] = Field(default_factory=list)
    status: Literal["error", "warning", "success"] = "success"
    is_valid: bool = True
    is_compliant: bool = True


class OverviewStats(BaseModel):
    total_vendors: int = 0
    total_skus: int = 0
    total_fee_cents: float = 0.0
    rows_with_errors: int = 0
    total_submissions: int = 0


class FeeSummary(BaseModel):
    sku_id: str
    sku_name: str
    vendor_id: str
    vendor_name: str
    total_grams: float
    fee_per_gram_cents: float
    sku_total_cents: float
    is_exempt: bool = False


class VendorTotal(BaseModel):
    vendor_id: str
    vendor_name: str
    total_fee_cents: float
    total_grams: float
    sku_count: int
    is_exempt: bool = False


class FeeScenario(BaseModel):
    material: str
    weight_grams: float
    fee_cents: float
    fee_rate_cents_per_gram: float
    eco_discount: float


class FeeSimulation(BaseModel):
    current: FeeScenario
    simulated: FeeScenario
    fee_difference: float
    percentage_change: float
    weight_difference: float


# --- HTTP envelopes ---


class ReviewSummary(BaseModel):
    rows: int = 0
    valid: int = 0
    warnings: int = 0
    errors: int = 0


class ReviewResponse(BaseModel):
    summary: ReviewSummary
    rows: List[RowReview] = Field(default_factory=list)


class SubmitResponse(BaseModel):
    review: ReviewResponse
    submitted: int = 0
    records: List[ProcessedRecord] = Field(default_factory=list)


class ReferenceCounts(BaseModel):
    materials: int = 0
    fees: int = 0
    vendors: int = 0
    products: int = 0


class SimulationRequest(BaseModel):
    sku_id: str
    material_name: str
    new_material: str
    new_weight: float
    new_weight_unit: str = "grams"
    new_case_size: Optional[int] = None


class BatchRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    ok: bool = True
