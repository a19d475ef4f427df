import pytest

from core.database import StoreResponse
from services.inventory_upload.batch_upserter import (
    BatchUpserter,
    build_missing_batch_payload,
    is_unique_violation,
)
from services.inventory_upload.errors import PhaseError
from services.inventory_upload.key_deduplicator import BatchKeys


def _batch_keys() -> BatchKeys:
    return BatchKeys(
        keys={"B1": (None, "B1"), "B2": (None, "B2"), "B3": (None, "B3")},
        earliest_date={"B1": "2025-01-05", "B2": "2025-02-01"},
        representative_sku={"B1": 10, "B2": 20, "B3": 30},
    )


def test_payload_contains_only_unresolved_keys() -> None:
    payload = build_missing_batch_payload(_batch_keys(), {"B2": {"id": 7}})

    assert payload == [
        {"sku_id": 10, "batch_no": "B1", "date_in": "2025-01-05"},
        {"sku_id": 30, "batch_no": "B3"},
    ]


@pytest.mark.parametrize(
    "response, expected",
    [
        (StoreResponse(409, "Conflict"), True),
        (StoreResponse(400, '{"code":"23505"}'), True),
        (StoreResponse(400, "duplicate key value violates unique constraint"), True),
        (StoreResponse(400, "violates Unique Constraint batches_batch_no_norm_uq"), True),
        (StoreResponse(400, '{"code":"22007","message":"invalid input syntax for type date"}'), False),
        (StoreResponse(500, ""), False),
    ],
)
def test_is_unique_violation(response, expected) -> None:
    assert is_unique_violation(response) is expected


def test_upsert_sends_one_merge_write(fake_store, settings) -> None:
    upserter = BatchUpserter(fake_store, settings)
    payload = [{"sku_id": 10, "batch_no": "B1"}, {"sku_id": 20, "batch_no": "B2"}]

    assert upserter.upsert_missing(payload) is True

    writes = fake_store.writes_on("batches")
    assert len(writes) == 1
    assert writes[0]["on_conflict"] == "batch_no_norm"
    assert writes[0]["resolution"] == "merge-duplicates"
    assert writes[0]["returning"] == "minimal"
    assert len(fake_store.tables["batches"]) == 2


def test_upsert_with_nothing_missing_skips_the_write(fake_store, settings) -> None:
    assert BatchUpserter(fake_store, settings).upsert_missing([]) is False
    assert fake_store.writes == []


def test_conflict_response_is_benign(fake_store, settings) -> None:
    fake_store.queued_responses["batches"] = [StoreResponse(409, "duplicate key value")]

    assert BatchUpserter(fake_store, settings).upsert_missing([{"sku_id": 1, "batch_no": "B1"}]) is True


def test_other_failures_raise_phase_error(fake_store, make_settings) -> None:
    settings = make_settings(ERROR_TEXT_LIMIT=10)
    fake_store.queued_responses["batches"] = [StoreResponse(400, "invalid input syntax for type date")]

    with pytest.raises(PhaseError) as excinfo:
        BatchUpserter(fake_store, settings).upsert_missing([{"sku_id": 1, "batch_no": "B1"}])

    assert excinfo.value.phase == "upsert_batches"
    assert excinfo.value.message == "Failed to upsert batches: invalid in…"
