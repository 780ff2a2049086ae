"""Summary views over processed records. Nothing here mutates its inputs."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from .models import FeeSummary, OverviewStats, ProcessedRecord, VendorTotal
from .registry import ReferenceRegistry
from .rules import DEFAULT_TOP_SKUS, UNKNOWN


def overview_stats(records: Sequence[ProcessedRecord]) -> OverviewStats:
    return OverviewStats(
        total_vendors=len({r.vendor_id for r in records}),
        total_skus=len({r.sku_id for r in records}),
        total_fee_cents=sum(r.fee_cents for r in records),
        rows_with_errors=sum(1 for r in records if r.has_errors),
        total_submissions=len(records),
    )


def top_skus_by_fee(
    records: Iterable[ProcessedRecord],
    registry: ReferenceRegistry,
    limit: int = DEFAULT_TOP_SKUS,
) -> List[FeeSummary]:
    """
    Fee totals per SKU, largest first.

    Vendor and exemption come from the first record seen for the SKU.
    Ties keep first-appearance order.
    """
    groups: Dict[str, dict] = {}
    for r in records:
        g = groups.get(r.sku_id)
        if g is None:
            groups[r.sku_id] = {
                "sku_id": r.sku_id,
                "vendor_id": r.vendor_id,
                "is_exempt": r.is_exempt,
                "total_grams": r.normalized_weight_grams,
                "sku_total_cents": r.fee_cents,
            }
        else:
            g["total_grams"] += r.normalized_weight_grams
            g["sku_total_cents"] += r.fee_cents

    summaries = []
    for g in groups.values():
        product = registry.find_product(g["sku_id"])
        vendor = registry.find_vendor(g["vendor_id"])
        grams = g["total_grams"]
        summaries.append(FeeSummary(
            sku_name=product.sku_name if product is not None and product.sku_name else UNKNOWN,
            vendor_name=vendor.vendor_name if vendor is not None and vendor.vendor_name else UNKNOWN,
            fee_per_gram_cents=g["sku_total_cents"] / grams if grams > 0 else 0.0,
            **g,
        ))

    summaries.sort(key=lambda s: s.sku_total_cents, reverse=True)
    return summaries[:max(limit, 0)]


def vendor_totals(records: Iterable[ProcessedRecord], registry: ReferenceRegistry) -> List[VendorTotal]:
    groups: Dict[str, dict] = {}
    skus: Dict[str, set] = {}
    for r in records:
        g = groups.get(r.vendor_id)
        if g is None:
            groups[r.vendor_id] = {
                "vendor_id": r.vendor_id,
                "is_exempt": r.is_exempt,
                "total_fee_cents": r.fee_cents,
                "total_grams": r.normalized_weight_grams,
            }
            skus[r.vendor_id] = {r.sku_id}
        else:
            g["total_fee_cents"] += r.fee_cents
            g["total_grams"] += r.normalized_weight_grams
            skus[r.vendor_id].add(r.sku_id)

    totals = []
    for vendor_id, g in groups.items():
        vendor = registry.find_vendor(vendor_id)
        totals.append(VendorTotal(
            vendor_name=vendor.vendor_name if vendor is not None and vendor.vendor_name else UNKNOWN,
            sku_count=len(skus[vendor_id]),
            **g,
        ))

    totals.sort(key=lambda t: t.total_fee_cents, reverse=True)
    return totals
