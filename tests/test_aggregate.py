import pytest

from conftest import make_row
from epr_fees import processor
from epr_fees.aggregate import overview_stats, top_skus_by_fee, vendor_totals
from epr_fees.models import ProcessedRecord


def record(sku_id, vendor_id="VEN-1", grams=10.0, fee=1.0, row=1):
    return ProcessedRecord(
        vendor_id=vendor_id,
        sku_id=sku_id,
        material_name="PET",
        weight_value=grams,
        weight_unit="grams",
        normalized_weight_grams=grams,
        fee_cents=fee,
        source_row=row,
    )


def test_top_skus_groups_and_sorts(registry):
    records = [
        record("SKU-1", grams=10, fee=5),
        record("SKU-2", grams=20, fee=30),
        record("SKU-1", grams=30, fee=15),
        record("SKU-3", vendor_id="VEN-2", grams=5, fee=1),
    ]
    summaries = top_skus_by_fee(records, registry)

    assert [s.sku_id for s in summaries] == ["SKU-2", "SKU-1", "SKU-3"]
    sku1 = summaries[1]
    assert sku1.total_grams == 40
    assert sku1.sku_total_cents == 20
    assert sku1.fee_per_gram_cents == pytest.approx(0.5)
    assert sku1.sku_name == "Water Bottle"
    assert sku1.vendor_name == "Acme Foods"


def test_top_skus_limit(registry):
    records = [record(f"SKU-{i}", fee=i) for i in range(15)]
    assert len(top_skus_by_fee(records, registry)) == 10
    assert [s.sku_id for s in top_skus_by_fee(records, registry, limit=2)] == ["SKU-14", "SKU-13"]


def test_top_skus_unknown_names(registry):
    [summary] = top_skus_by_fee([record("SKU-X", vendor_id="VEN-X")], registry)
    assert summary.sku_name == "Unknown"
    assert summary.vendor_name == "Unknown"


def test_top_skus_zero_grams_guard(registry):
    [summary] = top_skus_by_fee([record("SKU-1", grams=0, fee=0)], registry)
    assert summary.fee_per_gram_cents == 0


def test_top_skus_is_idempotent(registry):
    records = [record("SKU-1", fee=3), record("SKU-2", fee=3), record("SKU-3", fee=7)]
    first = top_skus_by_fee(records, registry)
    second = top_skus_by_fee(records, registry)
    assert first == second
    # ties keep first-appearance order
    assert [s.sku_id for s in first] == ["SKU-3", "SKU-1", "SKU-2"]


def test_vendor_totals_counts_distinct_skus(registry):
    shared = vendor_totals([record("SKU-1"), record("SKU-1")], registry)
    assert shared[0].sku_count == 1

    distinct = vendor_totals([record("SKU-1"), record("SKU-2")], registry)
    assert distinct[0].sku_count == 2


def test_vendor_totals_sums_and_sorts(registry):
    records = [
        record("SKU-1", grams=10, fee=2),
        record("SKU-3", vendor_id="VEN-2", grams=5, fee=10),
        record("SKU-2", grams=10, fee=3),
        record("SKU-9", vendor_id="VEN-9", grams=1, fee=0),
    ]
    totals = vendor_totals(records, registry)
    assert [t.vendor_id for t in totals] == ["VEN-2", "VEN-1", "VEN-9"]
    assert totals[1].total_fee_cents == 5
    assert totals[1].total_grams == 20
    assert totals[1].vendor_name == "Acme Foods"
    assert totals[2].vendor_name == "Unknown"


def test_overview_stats(registry, state):
    processor.process_batch([
        make_row(),
        make_row(sku_id="SKU-2", material_name="Unobtainium"),
        make_row(vendor_id="VEN-2", sku_id="SKU-3", material_category="Paper"),
        make_row(weight_value="-1"),
    ], registry, state)

    stats = overview_stats(state.records)

    assert stats.total_vendors == 2
    assert stats.total_skus == 3
    assert stats.total_fee_cents == pytest.approx(40.0)
    # only the unknown-material record carries an error; the rejected row has no record
    assert stats.rows_with_errors == 1
    assert stats.total_submissions == 3


def test_error_count_follows_each_record(registry, state):
    processor.process_batch([
        make_row(),
        make_row(weight_value="-5"),
        make_row(material_name="Unobtainium"),
    ], registry, state)
    processor.add_record(make_row(), registry, state)

    # the added record reuses row number 3 but has no errors of its own
    assert [r.source_row for r in state.records] == [1, 3, 3]
    assert overview_stats(state.records).rows_with_errors == 1


def test_error_count_drops_after_fixing_edit(registry, state):
    processor.add_record(make_row(material_name="Unobtainium"), registry, state)
    assert overview_stats(state.records).rows_with_errors == 1

    processor.reprocess_record(state, 0, {"material_name": "PET"}, registry)
    assert overview_stats(state.records).rows_with_errors == 0


def test_overview_stats_empty():
    stats = overview_stats([])
    assert stats.total_fee_cents == 0
    assert stats.total_submissions == 0
