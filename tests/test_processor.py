import pytest

from conftest import make_row
from epr_fees import processor
from epr_fees.rules import MaterialResolution
from epr_fees.validation import review_rows


def test_process_row_prices_record(registry, state):
    record = processor.process_row(make_row(), 1, registry, state)
    assert record.normalized_weight_grams == 10
    assert record.fee_cents == pytest.approx(20.0)
    assert record.fee_rate_cents_per_gram == 2.5
    assert record.eco_modulation_discount == 0.2
    assert record.is_exempt is False
    assert record.source_row == 1
    assert record.has_errors is False
    assert state.issues == []
    # process_row leaves placement to the caller
    assert state.records == []


def test_rejected_row_still_records_its_issue(registry, state):
    assert processor.process_row(make_row(weight_value=-5), 3, registry, state) is None
    assert len(state.issues) == 1
    assert state.issues[0].row == 3
    assert state.issues[0].field == "weight_value"
    assert state.issues[0].severity == "error"


def test_overflowing_weight_is_rejected(registry, state):
    assert processor.process_row(make_row(weight_value="1e308", weight_unit="lbs"), 1, registry, state) is None
    assert [(i.field, i.severity) for i in state.issues] == [("weight_value", "error")]


def test_unknown_material_yields_zero_fee_record(registry, state):
    record = processor.process_row(make_row(material_name="Unobtainium"), 1, registry, state)
    assert record is not None
    assert record.fee_cents == 0
    assert record.fee_rate_cents_per_gram == 0
    assert record.normalized_weight_grams == 10
    assert record.has_errors is True
    assert [i.severity for i in state.issues] == ["error"]


def test_invalid_unit_record_uses_raw_value(registry, state):
    record = processor.process_row(make_row(weight_value=1, weight_unit="parsecs"), 1, registry, state)
    assert record.normalized_weight_grams == 1
    assert [i.severity for i in state.issues] == ["warning"]


def test_material_without_fee_entry_or_bad_rate(registry, state):
    record = processor.process_row(make_row(material_name="Aluminum", material_category="Metal"), 1, registry, state)
    assert record.fee_cents == 0


def test_exemption_does_not_change_fee(registry, state):
    liable = processor.process_row(make_row(), 1, registry, state)
    exempt = processor.process_row(make_row(vendor_id="VEN-2", sku_id="SKU-3"), 2, registry, state)
    assert exempt.is_exempt is True
    assert exempt.fee_cents == liable.fee_cents


def test_process_batch_replaces_state(registry, state):
    rows = [
        make_row(),
        make_row(weight_value="-5"),
        make_row(material_name="Unobtainium"),
        make_row(weight_value=1, weight_unit="parsecs"),
    ]
    processor.process_batch(rows, registry, state)
    assert len(state.records) == 3
    assert [r.source_row for r in state.records] == [1, 3, 4]
    assert [(i.row, i.severity) for i in state.issues] == [(2, "error"), (3, "error"), (4, "warning")]

    processor.process_batch(rows, registry, state)
    assert len(state.records) == 3
    assert len(state.issues) == 3


def test_process_batch_strict_mode(registry, state):
    rows = [make_row(), make_row(material_name="Unobtainium")]
    processor.process_batch(rows, registry, state, MaterialResolution.STRICT)
    assert len(state.records) == 1


def test_process_batch_non_mapping_row(registry, state):
    processor.process_batch([["VEN-1", "SKU-1"]], registry, state)
    assert state.records == []
    assert state.issues[0].field == "row"


def test_add_record_numbers_rows_and_appends_issues(registry, state):
    processor.add_record(make_row(material_category="Paper"), registry, state)
    processor.add_record(make_row(material_category="Paper"), registry, state)
    assert [r.source_row for r in state.records] == [1, 2]
    # issues are never deduplicated
    assert len(state.issues) == 2


def test_add_record_rejected(registry, state):
    assert processor.add_record(make_row(weight_value="abc"), registry, state) is None
    assert state.records == []
    assert len(state.issues) == 1


def test_update_record_merges_patch(registry, state):
    processor.add_record(make_row(), registry, state)
    updated = processor.update_record(state, 0, {"notes": "checked", "fee_cents": 1.5})
    assert updated.notes == "checked"
    assert updated.fee_cents == 1.5
    assert updated.material_name == "PET"
    assert state.records[0] is updated


def test_update_record_ignores_malformed_patch(registry, state):
    original = processor.add_record(make_row(), registry, state)
    assert processor.update_record(state, 0, {"weight_value": "abc"}) is None
    assert state.records == [original]


def test_edits_keep_unreadable_case_size_flag(registry, state):
    record = processor.add_record(make_row(case_size="dozen"), registry, state)
    assert record.case_size is None
    assert record.case_size_invalid

    assert processor.update_record(state, 0, {"notes": "checked"}).case_size_invalid
    assert processor.reprocess_record(state, 0, {"weight_value": "20"}, registry).case_size_invalid


@pytest.mark.parametrize("index", [-1, 1, 99])
def test_update_record_out_of_range_is_noop(registry, state, index):
    processor.add_record(make_row(), registry, state)
    before = list(state.records)
    assert processor.update_record(state, index, {"notes": "x"}) is None
    assert state.records == before


def test_update_record_by_identity(registry, state):
    processor.add_record(make_row(), registry, state)
    processor.add_record(make_row(sku_id="SKU-2", material_name="Corrugated Cardboard", material_category="Paper"),
                         registry, state)
    updated = processor.update_record_by_identity(state, "SKU-2", "Corrugated Cardboard", {"component": "lid"})
    assert updated.component == "lid"
    assert state.records[1].component == "lid"
    assert processor.update_record_by_identity(state, "SKU-9", "PET", {"component": "lid"}) is None


def test_reprocess_record_recomputes_fee(registry, state):
    processor.add_record(make_row(), registry, state)
    record = processor.reprocess_record(state, 0, {"weight_value": "20", "fee_cents": 999}, registry)
    assert record.fee_cents == pytest.approx(40.0)
    assert record.source_row == 1
    assert state.records[0] is record


def test_reprocess_record_rejected_edit_keeps_old_record(registry, state):
    original = processor.add_record(make_row(), registry, state)
    assert processor.reprocess_record(state, 0, {"weight_value": "-1"}, registry) is None
    assert state.records == [original]
    assert state.issues[-1].field == "weight_value"


def test_remove_record(registry, state):
    processor.add_record(make_row(), registry, state)
    assert processor.remove_record(state, "SKU-1", "PET")
    assert state.records == []
    assert not processor.remove_record(state, "SKU-1", "PET")


def test_submit_reviewed_skips_error_rows(registry, state):
    processor.add_record(make_row(sku_id="SKU-OLD"), registry, state)
    reviews = review_rows([
        make_row(),
        make_row(vendor_id="VEN-404"),
        make_row(sku_id="SKU-2", weight_value="0.05"),
    ], registry)

    submitted = processor.submit_reviewed(reviews, registry, state)

    assert submitted == 2
    assert [r.sku_id for r in state.records] == ["SKU-1", "SKU-2"]


def test_clear_all(registry, state):
    processor.process_batch([make_row(), make_row(weight_value=0)], registry, state)
    processor.clear_all(state)
    assert state.records == []
    assert state.issues == []
