"""
Fee calculation.

    fee_cents = grams * fee_cents_per_gram * (1 - eco_modulation_discount)

eco_modulation_discount is a decimal fraction (0.15 means 15%) and is never
rescaled. This module is the only place the formula lives.
"""

from __future__ import annotations

import math
from typing import Optional

from .models import FeeEntry, FeeResult, FeeScenario, FeeSimulation, ProcessedRecord
from .registry import ReferenceRegistry
from .units import normalize


def _finite_or_zero(value: float) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return value


def compute_fee(normalized_grams: float, fee_entry: Optional[FeeEntry]) -> FeeResult:
    if fee_entry is None:
        return FeeResult()

    rate = _finite_or_zero(fee_entry.fee_cents_per_gram)
    discount = _finite_or_zero(fee_entry.eco_modulation_discount or 0.0)
    fee = _finite_or_zero(normalized_grams * rate * (1 - discount))

    return FeeResult(
        fee_cents=max(fee, 0.0),
        fee_rate_cents_per_gram=rate,
        eco_discount=discount,
    )


def simulate_fee(
    record: ProcessedRecord,
    registry: ReferenceRegistry,
    new_material: str,
    new_weight: float,
    new_weight_unit: str = "grams",
    new_case_size: Optional[int] = None,
) -> Optional[FeeSimulation]:
    """
    What-if pricing for an existing record with a different material or weight.

    The record keeps its quantity basis; returns None when the proposed
    material is not in the materials or fee tables.
    """
    material = registry.find_material(new_material)
    if material is None:
        return None
    fee_entry = registry.find_fee(material.material_name)
    if fee_entry is None:
        return None

    case_size = new_case_size if new_case_size is not None else record.case_size
    grams = normalize(new_weight, new_weight_unit, record.quantity_basis, case_size).grams
    priced = compute_fee(grams, fee_entry)

    current_fee = record.fee_cents
    difference = priced.fee_cents - current_fee
    pct = (difference / current_fee) * 100 if current_fee > 0 else 0.0

    return FeeSimulation(
        current=FeeScenario(
            material=record.material_name,
            weight_grams=record.normalized_weight_grams,
            fee_cents=current_fee,
            fee_rate_cents_per_gram=record.fee_rate_cents_per_gram,
            eco_discount=record.eco_modulation_discount,
        ),
        simulated=FeeScenario(
            material=material.material_name,
            weight_grams=grams,
            fee_cents=priced.fee_cents,
            fee_rate_cents_per_gram=priced.fee_rate_cents_per_gram,
            eco_discount=priced.eco_discount,
        ),
        fee_difference=difference,
        percentage_change=pct,
        weight_difference=grams - record.normalized_weight_grams,
    )
