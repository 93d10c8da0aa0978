import pytest

from agroguard.database import safe_json_loads
from agroguard.schemas.analysis import CropStatus, UserSettings
from agroguard.services.record_store import RecordExistsError
from conftest import make_analysis, make_record


def test_records_listed_most_recent_first(store):
    for i, ts in enumerate([300, 100, 200]):
        store.insert_record(make_record(f"r{i}", timestamp=ts))

    assert [r.timestamp for r in store.get_records()] == [300, 200, 100]
    assert [r.timestamp for r in store.get_records(limit=1, offset=1)] == [200]


def test_pending_records_oldest_first(store):
    store.insert_record(make_record("done", timestamp=50, is_pending_sync=False))
    store.insert_record(make_record("b", timestamp=200))
    store.insert_record(make_record("a", timestamp=100))

    assert [r.id for r in store.get_pending_records()] == ["a", "b"]


def test_records_filtered_by_sync_flag(store):
    store.insert_record(make_record("synced", timestamp=300, is_pending_sync=False))
    store.insert_record(make_record("queued", timestamp=200))

    assert [r.id for r in store.get_records(pending=True)] == ["queued"]
    assert [r.id for r in store.get_records(pending=False)] == ["synced"]
    assert len(store.get_records()) == 2


def test_round_trip_keeps_analysis(store):
    analysis = make_analysis(disease_detected="Leaf Rust", expected_loss=30)
    store.insert_record(make_record("r1", analysis=analysis, image_url="data:image/jpeg;base64,QUJD"))

    record = store.get_record("r1")
    assert record.analysis == analysis
    assert record.image_url == "data:image/jpeg;base64,QUJD"
    assert record.status == CropStatus.HEALTHY


def test_duplicate_id_rejected(store):
    store.insert_record(make_record("r1"))
    with pytest.raises(RecordExistsError):
        store.insert_record(make_record("r1"))


def test_partial_update(store):
    store.insert_record(make_record("r1"))

    updated = store.update_record("r1", sync_attempts=2, last_sync_error="timeout")

    assert updated.sync_attempts == 2
    assert updated.last_sync_error == "timeout"
    assert updated.is_pending_sync
    assert store.get_record("r1").sync_attempts == 2


def test_update_unknown_record_or_field(store):
    assert store.update_record("missing", feedback="x") is None

    store.insert_record(make_record("r1"))
    with pytest.raises(ValueError):
        store.update_record("r1", colour="green")


def test_feedback_and_delete(store):
    store.insert_record(make_record("r1"))

    assert store.update_feedback("r1", "Confirmed in field").feedback == "Confirmed in field"
    assert store.delete_record("r1")
    assert store.get_record("r1") is None
    assert not store.delete_record("r1")


def test_settings_default_then_saved(store):
    assert store.get_settings() == UserSettings()

    store.save_settings(UserSettings(stress_sensitivity="High", stress_threshold=40,
                                     insurance_threshold=30, auto_sync=False))
    saved = store.get_settings()

    assert saved.stress_sensitivity == "High"
    assert saved.stress_threshold == 40
    assert saved.insurance_threshold == 30
    assert saved.auto_sync is False


@pytest.mark.parametrize(
    "value, expected",
    [(None, {}), ("", {}), ('{"a": 1}', {"a": 1}), ("{broken", {}), ({"b": 2}, {"b": 2})],
)
def test_safe_json_loads(value, expected):
    assert safe_json_loads(value) == expected
