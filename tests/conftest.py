import pytest

from epr_fees.processor import SubmissionState
from epr_fees.registry import ReferenceRegistry


@pytest.fixture
def registry():
    return ReferenceRegistry.from_rows(
        materials=[
            {"material_name": "PET", "category_group": "Plastic"},
            {"material_name": "Corrugated Cardboard", "category_group": "Paper"},
            {"material_name": "Glass", "category_group": "Glass"},
            {"material_name": "Aluminum", "category_group": "Metal"},
        ],
        fees=[
            {"material_name": "PET", "fee_cents_per_gram": "2.5", "eco_modulation_discount": "0.2"},
            {"material_name": "Corrugated Cardboard", "fee_cents_per_gram": "0.12", "eco_modulation_discount": ""},
            {"material_name": "Glass", "fee_cents_per_gram": "0.05", "eco_modulation_discount": "0"},
            {"material_name": "Aluminum", "fee_cents_per_gram": "abc"},
        ],
        vendors=[
            {"vendor_id": "VEN-1", "vendor_name": "Acme Foods", "exempt": "false"},
            {"vendor_id": "VEN-2", "vendor_name": "Beta Home", "exempt": "TRUE"},
        ],
        products=[
            {"sku_id": "SKU-1", "sku_name": "Water Bottle", "vendor_id": "VEN-1", "category": "Beverage"},
            {"sku_id": "SKU-2", "sku_name": "Cereal Box", "vendor_id": "VEN-1", "category": "Food"},
            {"sku_id": "SKU-3", "sku_name": "Storage Jar", "vendor_id": "VEN-2", "category": "Home"},
        ],
    )


@pytest.fixture
def state():
    return SubmissionState()


def make_row(**overrides):
    row = {
        "vendor_id": "VEN-1",
        "sku_id": "SKU-1",
        "component": "bottle",
        "material_name": "PET",
        "material_category": "Plastic",
        "weight_value": "10",
        "weight_unit": "grams",
        "quantity_basis": "unit",
        "case_size": "",
        "notes": "",
    }
    row.update(overrides)
    return row
