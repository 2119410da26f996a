import asyncio

from conftest import FakeStore

from app.engine.commands import (
    AddColumn,
    ChangeRowField,
    Confirm,
    RenameHeader,
    RequestDeleteAppointment,
    StageDelete,
    StartRowEdit,
    ToggleDeleteColumnMode,
    ToggleEditMode,
)
from app.engine.engine import TableConfigEngine
from app.engine.headers import default_headers, dump_headers

LEGACY = [
    {"id": "name", "label": "Full Name", "field": "name", "editable": True},
    {"id": "contact", "label": "Contact Number", "field": "contactNumber", "editable": True},
    {"id": "date", "label": "Date", "field": "date", "editable": True},
    {"id": "time", "label": "Time", "field": "time", "editable": True},
    {"id": "status", "label": "Status", "field": "status", "editable": False},
    {"id": "actions", "label": "Actions", "field": "actions", "editable": False},
]


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def loaded(store, **kwargs):
    engine = TableConfigEngine(store, **kwargs)
    asyncio.run(engine.load())
    return engine


def send(engine, *commands):
    for command in commands:
        asyncio.run(engine.dispatch(command))
    return engine.state


def with_saved_custom_column(store):
    engine = loaded(store)
    send(engine, ToggleEditMode(), AddColumn(timestamp=1000), RenameHeader(index=3, label="Tag"))
    assert asyncio.run(engine.save())
    return engine


def test_load_migrates_and_persists_legacy_shape(appointments):
    store = FakeStore(headers=LEGACY, appointments=appointments)

    engine = loaded(store)

    expected = ["name", "contactNumber", "bookingDate", "status", "actions"]
    assert [h.field for h in engine.state.headers] == expected
    assert len(store.saved) == 1
    assert [h["field"] for h in store.saved[0]] == expected
    assert len(engine.state.appointments) == 5


def test_load_keeps_defaults_when_config_missing(appointments):
    store = FakeStore(appointments=appointments)

    engine = loaded(store)

    assert engine.state.headers == default_headers()
    assert store.saved == []
    assert engine.state.error is None


def test_load_failure_keeps_defaults():
    store = FakeStore(headers=LEGACY)
    store.failing.add("get_table_config")

    engine = loaded(store)

    assert engine.state.headers == default_headers()


def test_failed_fetch_sets_banner():
    store = FakeStore(headers=dump_headers(default_headers()))
    store.failing.add("get_all_appointments")

    engine = loaded(store)

    assert engine.state.error == "Failed to fetch appointments"


def test_save_then_load_round_trips(store):
    engine = with_saved_custom_column(store)

    reloaded = loaded(store)

    assert reloaded.state.headers == engine.state.headers
    assert [h.field for h in reloaded.state.headers][3] == "custom_1"
    assert not engine.state.edit_mode
    assert not engine.state.has_unsaved_changes
    assert engine.state.success == "Table configuration saved successfully!"


def test_save_cleans_up_columns_flagged_deleted(appointments):
    headers = dump_headers(default_headers())
    headers.insert(3, {"id": "custom_1000", "label": "Tag", "field": "custom_1", "editable": True, "deleted": True})
    store = FakeStore(headers=headers, appointments=appointments)
    engine = loaded(store)

    send(engine, ToggleEditMode())
    assert asyncio.run(engine.save())

    assert "custom_1" not in [h["field"] for h in store.saved[-1]]
    assert store.cleanups == [["custom_1"]]


def test_stage_delete_then_cancel_makes_no_cleanup_call(store):
    engine = with_saved_custom_column(store)
    saved_before = len(store.saved)

    send(engine, ToggleEditMode(), ToggleDeleteColumnMode(), StageDelete(index=3))
    assert engine.state.has_unsaved_changes
    asyncio.run(engine.cancel())

    assert [h.field for h in engine.state.headers][3] == "custom_1"
    assert engine.state.columns_to_delete == []
    assert store.cleanups == []
    assert len(store.saved) == saved_before


def test_stage_delete_then_save_cleans_up_once(store):
    engine = with_saved_custom_column(store)
    fetches_before = store.fetches

    send(engine, ToggleEditMode(), ToggleDeleteColumnMode(), StageDelete(index=3))
    assert asyncio.run(engine.save())

    assert "custom_1" not in [h.field for h in engine.state.headers]
    assert "custom_1" not in [h["field"] for h in store.saved[-1]]
    assert store.cleanups == [["custom_1"]]
    assert store.fetches == fetches_before + 1
    assert "custom_1" not in engine.state.appointments[0]


def test_cleanup_failure_does_not_undo_save(store):
    engine = with_saved_custom_column(store)
    store.failing.add("cleanup_columns")
    fetches_before = store.fetches

    send(engine, ToggleEditMode(), ToggleDeleteColumnMode(), StageDelete(index=3))
    assert asyncio.run(engine.save())

    assert "custom_1" not in [h["field"] for h in store.saved[-1]]
    assert store.fetches == fetches_before + 1
    assert engine.state.success == "Table configuration saved successfully!"
    assert not engine.state.edit_mode


def test_save_failure_keeps_draft(store):
    engine = loaded(store)
    store.failing.add("save_table_config")

    send(engine, ToggleEditMode(), AddColumn(timestamp=1))
    assert not asyncio.run(engine.save())

    assert engine.state.error == "Failed to save table configuration"
    assert engine.state.edit_mode
    assert engine.state.has_unsaved_changes
    assert len(engine.state.headers) == 6


def test_inline_row_edit_saves_header_fields(store):
    engine = with_saved_custom_column(store)

    send(
        engine,
        StartRowEdit(appointment_id=2),
        ChangeRowField(field="custom_1", value="Walk-in"),
        ChangeRowField(field="bookingDate", value="2026-11-02T15:30"),
    )
    asyncio.run(engine.dispatch({"type": "save_row_edit"}))

    appointment_id, payload = store.updates[-1]
    assert appointment_id == 2
    assert payload["bookingDate"] == "2026-11-02"
    assert payload["bookingTime"] == "15:30"
    assert payload["custom_1"] == "Walk-in"
    assert "id" not in payload and "actions" not in payload
    assert engine.state.editing_row_id is None
    assert engine.state.success == "Appointment updated successfully!"
    row = next(r for r in engine.state.appointments if r["id"] == 2)
    assert row["custom_1"] == "Walk-in"


def test_failed_row_save_stays_open_for_retry(store):
    engine = loaded(store)
    store.failing.add("update_appointment")

    send(engine, StartRowEdit(appointment_id=1), ChangeRowField(field="name", value="Ann"))
    asyncio.run(engine.save_row_edit())

    assert engine.state.error == "Failed to update appointment"
    assert engine.state.editing_row_id == 1
    assert engine.state.editing_data["name"] == "Ann"


def test_confirmed_delete_removes_appointment(store):
    engine = loaded(store)

    send(engine, RequestDeleteAppointment(appointment_id=3), Confirm())

    assert store.deleted == [3]
    assert 3 not in [row["id"] for row in engine.state.appointments]
    assert engine.state.success == "Appointment deleted successfully"


def test_failed_delete_sets_banner(store):
    engine = loaded(store)
    store.failing.add("delete_appointment")

    asyncio.run(engine.delete_appointment(3))

    assert engine.state.error == "Failed to delete appointment"
    assert len(engine.state.appointments) == 5


def test_success_message_expires(store):
    clock = FakeClock()
    engine = loaded(store, message_ttl=3.0, clock=clock)

    send(engine, ToggleEditMode(), AddColumn(timestamp=1))
    asyncio.run(engine.cancel())
    assert engine.snapshot()["success"] == "Changes cancelled successfully!"

    clock.now += 3.5
    assert engine.snapshot()["success"] is None


def test_snapshot_is_camel_case_with_visible_rows(store):
    engine = loaded(store)
    send(engine, ToggleEditMode())
    asyncio.run(engine.dispatch({"type": "toggle_edit_mode"}))
    asyncio.run(engine.dispatch({"type": "set_search", "term": "0917"}))

    snapshot = engine.snapshot()

    assert snapshot["mode"] == "viewing"
    assert snapshot["searchTerm"] == "0917"
    assert [row["id"] for row in snapshot["rows"]] == [1]
    assert "hasUnsavedChanges" in snapshot


def test_displayed_booking_date_is_searchable(store):
    engine = loaded(store)
    ana = next(row for row in engine.snapshot()["rows"] if row["id"] == 1)
    assert ana["bookingDateLabel"] == "Oct 20, 2026 9:30am"

    asyncio.run(engine.dispatch({"type": "set_search", "term": ana["bookingDateLabel"]}))

    assert [row["id"] for row in engine.snapshot()["rows"]] == [1]
