import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError

from scrapyard.db import SessionLocal
from scrapyard.models.inventory import InventoryLot
from scrapyard.models.lifecycle_update import LifecycleUpdate
from scrapyard.services.audit_log import LifecycleAuditLog
from scrapyard.services.errors import InvalidArgument, NotFound, StorageError
from scrapyard.services.inventory_store import InventoryStore
from scrapyard.services.lifecycle import LifecycleEngine
from scrapyard.services.lifecycle_stats import stage_progress


def _audit_count(db):
    return db.scalar(select(func.count(LifecycleUpdate.id)))


def test_transition_updates_lot_and_records_audit(db, user, make_lot):
    lot = make_lot()
    engine = LifecycleEngine(db)

    out = engine.apply_transition(
        lot.id,
        {"lifecycle_stage": "melting", "status": "processing", "batch_number": "B100"},
        updated_by=user.id,
    )

    assert out.lifecycle_stage == "melting"
    assert out.status == "processing"
    assert out.batch_number == "B100"

    entries = LifecycleAuditLog(db).list_by_inventory(lot.id)
    assert len(entries) == 1
    e = entries[0]
    assert e.previous_stage == "collection"
    assert e.new_stage == "melting"
    assert e.status == "processing"
    assert e.batch_number == "B100"
    assert e.updated_by == user.id
    assert stage_progress("melting") == 80


def test_unspecified_fields_are_kept(db, user, make_lot):
    lot = make_lot(barcode="BC1", inspection_notes="clean", location="Yard A")
    LifecycleEngine(db).apply_transition(lot.id, {"status": "reserved"}, updated_by=user.id)

    fresh = InventoryStore(db).get(lot.id)
    assert fresh.status == "reserved"
    assert fresh.lifecycle_stage == "collection"
    assert fresh.barcode == "BC1"
    assert fresh.inspection_notes == "clean"
    assert fresh.location == "Yard A"
    assert fresh.metal_type == "Copper"


def test_transition_without_stage_records_current_stage(db, user, make_lot):
    lot = make_lot(stage="sorting")
    LifecycleEngine(db).apply_transition(lot.id, {"qr_code": "QR1"}, updated_by=user.id)

    (entry,) = LifecycleAuditLog(db).list_by_inventory(lot.id)
    assert entry.previous_stage == "sorting"
    assert entry.new_stage == "sorting"
    assert entry.qr_code == "QR1"
    assert entry.status is None


def test_inspection_notes_are_overwritten(db, user, make_lot):
    lot = make_lot(inspection_notes="first look")
    LifecycleEngine(db).apply_transition(lot.id, {"inspection_notes": "radiation ok"}, updated_by=user.id)
    assert InventoryStore(db).get(lot.id).inspection_notes == "radiation ok"


def test_null_stage_or_status_in_payload_is_ignored(db, user, make_lot):
    lot = make_lot(stage="cleaning", status="reserved")
    LifecycleEngine(db).apply_transition(
        lot.id, {"lifecycle_stage": None, "status": None, "barcode": None}, updated_by=user.id
    )
    fresh = InventoryStore(db).get(lot.id)
    assert fresh.lifecycle_stage == "cleaning"
    assert fresh.status == "reserved"


def test_missing_lot_has_no_effect(db, user, make_lot):
    lot = make_lot()
    with pytest.raises(NotFound):
        LifecycleEngine(db).apply_transition(lot.id + 100, {"lifecycle_stage": "sorting"}, updated_by=user.id)

    assert _audit_count(db) == 0
    assert InventoryStore(db).get(lot.id).lifecycle_stage == "collection"


def test_out_of_order_transitions_are_allowed(db, user, make_lot):
    lot = make_lot(stage="melting")
    engine = LifecycleEngine(db)
    engine.apply_transition(lot.id, {"lifecycle_stage": "collection"}, updated_by=user.id)
    engine.apply_transition(lot.id, {"lifecycle_stage": "distribution"}, updated_by=user.id)
    assert InventoryStore(db).get(lot.id).lifecycle_stage == "distribution"


def test_terminal_statuses_do_not_block_transitions(db, user, make_lot):
    lot = make_lot(status="disposed")
    LifecycleEngine(db).apply_transition(lot.id, {"status": "available"}, updated_by=user.id)
    assert InventoryStore(db).get(lot.id).status == "available"


def test_same_payload_twice(db, user, make_lot):
    lot = make_lot()
    engine = LifecycleEngine(db)
    payload = {"lifecycle_stage": "sorting", "status": "reserved"}

    engine.apply_transition(lot.id, dict(payload), updated_by=user.id)
    first = InventoryStore(db).get(lot.id)
    state_after_first = (first.lifecycle_stage, first.status)
    engine.apply_transition(lot.id, dict(payload), updated_by=user.id)
    second = InventoryStore(db).get(lot.id)

    assert (second.lifecycle_stage, second.status) == state_after_first
    latest, earlier = LifecycleAuditLog(db).list_by_inventory(lot.id)
    assert (latest.new_stage, latest.status) == (earlier.new_stage, earlier.status)
    assert earlier.previous_stage == "collection"
    assert latest.previous_stage == "sorting"


def test_unknown_values_are_stored_as_given(db, user, make_lot):
    lot = make_lot()
    LifecycleEngine(db, strict=False).apply_transition(
        lot.id, {"lifecycle_stage": "shredding", "status": "processing"}, updated_by=user.id
    )
    assert InventoryStore(db).get(lot.id).lifecycle_stage == "shredding"


@pytest.mark.parametrize("payload", [
    {"lifecycle_stage": "shredding"},
    {"status": "processing"},
])
def test_strict_mode_rejects_unknown_values(db, user, make_lot, payload):
    lot = make_lot()
    with pytest.raises(InvalidArgument):
        LifecycleEngine(db, strict=True).apply_transition(lot.id, payload, updated_by=user.id)
    assert _audit_count(db) == 0


def test_unknown_field_rejected(db, user, make_lot):
    lot = make_lot()
    with pytest.raises(InvalidArgument):
        LifecycleEngine(db).apply_transition(lot.id, {"metal_type": "Gold"}, updated_by=user.id)


def test_actor_is_required(db, make_lot):
    lot = make_lot()
    with pytest.raises(InvalidArgument):
        LifecycleEngine(db).apply_transition(lot.id, {"lifecycle_stage": "sorting"}, updated_by=None)
    assert _audit_count(db) == 0


def test_failed_audit_write_rolls_back_lot(db, user, make_lot, monkeypatch):
    lot = make_lot()
    engine = LifecycleEngine(db)

    def boom(**kw):
        raise StorageError("audit table unavailable")

    monkeypatch.setattr(engine.audit_log, "append", boom)
    with pytest.raises(StorageError):
        engine.apply_transition(lot.id, {"lifecycle_stage": "melting"}, updated_by=user.id)

    assert InventoryStore(db).get(lot.id).lifecycle_stage == "collection"
    assert _audit_count(db) == 0


def test_commit_failure_becomes_storage_error(db, user, make_lot, monkeypatch):
    lot = make_lot()
    engine = LifecycleEngine(db)

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(StorageError):
        engine.apply_transition(lot.id, {"lifecycle_stage": "sorting"}, updated_by=user.id)
    monkeypatch.undo()

    assert InventoryStore(db).get(lot.id).lifecycle_stage == "collection"
    assert _audit_count(db) == 0


def test_null_stage_row_heals_to_collection(db, user, make_lot):
    lot = make_lot()
    db.execute(update(InventoryLot).where(InventoryLot.id == lot.id).values(lifecycle_stage=None))
    db.commit()

    LifecycleEngine(db).apply_transition(lot.id, {"status": "reserved"}, updated_by=user.id)

    (entry,) = LifecycleAuditLog(db).list_by_inventory(lot.id)
    assert entry.previous_stage is None
    assert entry.new_stage == "collection"
    assert InventoryStore(db).get(lot.id).lifecycle_stage == "collection"


def test_interleaved_transitions_last_writer_wins(db, user, make_lot):
    lot = make_lot()
    session_a, session_b = SessionLocal(), SessionLocal()
    try:
        # both requests read the lot before either writes; keep the objects alive
        lot_a = InventoryStore(session_a).get(lot.id)
        lot_b = InventoryStore(session_b).get(lot.id)
        assert lot_a.lifecycle_stage == lot_b.lifecycle_stage == "collection"

        LifecycleEngine(session_a).apply_transition(lot.id, {"lifecycle_stage": "sorting"}, updated_by=user.id)
        LifecycleEngine(session_b).apply_transition(lot.id, {"lifecycle_stage": "melting"}, updated_by=user.id)
    finally:
        session_a.close()
        session_b.close()

    db.expire_all()
    assert InventoryStore(db).get(lot.id).lifecycle_stage == "melting"
    entries = LifecycleAuditLog(db).list_by_inventory(lot.id)
    assert len(entries) == 2
    assert [e.previous_stage for e in entries] == ["collection", "collection"]
    assert sorted(e.new_stage for e in entries) == ["melting", "sorting"]


def test_store_update_merges_without_validation(db, make_lot):
    lot = make_lot()
    store = InventoryStore(db)
    store.update(lot.id, {"lifecycle_stage": "anything", "location": "Quay 4"})
    db.commit()

    fresh = store.get(lot.id)
    assert fresh.lifecycle_stage == "anything"
    assert fresh.location == "Quay 4"
