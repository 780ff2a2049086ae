"""
Reference Registry: materials, fees, vendors and products, indexed once.

Reference rows come from the CSV reference files (or any list of dicts) and
are coerced the same way every time:
- materials: blank fields become ""
- fees: fee_cents_per_gram falls back to 0; a blank eco_modulation_discount
  stays None (unset), which is not the same thing as 0
- vendors: exempt is "true"/"false", case-insensitive, default False
- products: plain strings

Materials are matched case-insensitively; fees by the exact canonical
material name.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import FeeEntry, Material, Product, Vendor
from .parsing import clean_keys, to_bool, to_number, to_text

logger = logging.getLogger(__name__)


def coerce_material(row: Mapping[str, Any]) -> Material:
    row = clean_keys(row)
    return Material(
        material_name=to_text(row.get("material_name")),
        category_group=to_text(row.get("category_group")),
    )


def coerce_fee(row: Mapping[str, Any]) -> FeeEntry:
    row = clean_keys(row)
    discount_text = to_text(row.get("eco_modulation_discount"))
    discount = None
    if discount_text:
        discount = to_number(discount_text) or 0.0
    return FeeEntry(
        material_name=to_text(row.get("material_name")),
        fee_cents_per_gram=to_number(row.get("fee_cents_per_gram")) or 0.0,
        eco_modulation_discount=discount,
    )


def coerce_vendor(row: Mapping[str, Any]) -> Vendor:
    row = clean_keys(row)
    return Vendor(
        vendor_id=to_text(row.get("vendor_id")),
        vendor_name=to_text(row.get("vendor_name")),
        exempt=to_bool(row.get("exempt")),
    )


def coerce_product(row: Mapping[str, Any]) -> Product:
    row = clean_keys(row)
    return Product(
        sku_id=to_text(row.get("sku_id")),
        sku_name=to_text(row.get("sku_name")),
        vendor_id=to_text(row.get("vendor_id")),
        category=to_text(row.get("category")),
    )


class ReferenceRegistry:
    """Read-only lookup tables for one session."""

    def __init__(
        self,
        materials: Iterable[Material] = (),
        fees: Iterable[FeeEntry] = (),
        vendors: Iterable[Vendor] = (),
        products: Iterable[Product] = (),
    ):
        self._materials = tuple(materials)
        self._fees = tuple(fees)
        self._vendors = tuple(vendors)
        self._products = tuple(products)

        # first entry wins, matching a front-to-back scan of the table
        self._materials_by_name: Dict[str, Material] = {}
        for m in self._materials:
            self._materials_by_name.setdefault(m.material_name.lower(), m)

        self._fees_by_name: Dict[str, FeeEntry] = {}
        for f in self._fees:
            self._fees_by_name.setdefault(f.material_name, f)

        self._vendors_by_id: Dict[str, Vendor] = {}
        for v in self._vendors:
            self._vendors_by_id.setdefault(v.vendor_id, v)

        self._products_by_sku: Dict[str, Product] = {}
        for p in self._products:
            self._products_by_sku.setdefault(p.sku_id, p)

    @classmethod
    def from_rows(
        cls,
        materials: Iterable[Mapping[str, Any]] = (),
        fees: Iterable[Mapping[str, Any]] = (),
        vendors: Iterable[Mapping[str, Any]] = (),
        products: Iterable[Mapping[str, Any]] = (),
    ) -> "ReferenceRegistry":
        registry = cls(
            materials=[coerce_material(r) for r in materials],
            fees=[coerce_fee(r) for r in fees],
            vendors=[coerce_vendor(r) for r in vendors],
            products=[coerce_product(r) for r in products],
        )
        logger.info(
            "reference data loaded: %d materials, %d fees, %d vendors, %d products",
            len(registry.materials), len(registry.fees), len(registry.vendors), len(registry.products),
        )
        return registry

    @property
    def materials(self) -> List[Material]:
        return list(self._materials)

    @property
    def fees(self) -> List[FeeEntry]:
        return list(self._fees)

    @property
    def vendors(self) -> List[Vendor]:
        return list(self._vendors)

    @property
    def products(self) -> List[Product]:
        return list(self._products)

    def find_material(self, material_name: str) -> Optional[Material]:
        if not material_name:
            return None
        return self._materials_by_name.get(material_name.lower())

    def find_fee(self, material_name: str) -> Optional[FeeEntry]:
        return self._fees_by_name.get(material_name)

    def find_vendor(self, vendor_id: str) -> Optional[Vendor]:
        return self._vendors_by_id.get(vendor_id)

    def find_product(self, sku_id: str) -> Optional[Product]:
        return self._products_by_sku.get(sku_id)

    def material_suggestions(self, limit: int) -> List[str]:
        return [m.material_name for m in self._materials[:limit]]
