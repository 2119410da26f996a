from app.engine.fields import flatten_custom_fields
from app.engine.headers import ColumnDescriptor, default_headers
from app.engine.rows import (
    compute_visible_rows,
    format_booking_datetime,
    format_time_label,
    intersect_selection,
)


def test_format_booking_datetime():
    assert format_booking_datetime("2026-10-20", "09:30") == "Oct 20, 2026 9:30am"
    assert format_booking_datetime("2026-10-20", "13:00") == "Oct 20, 2026 1:00pm"
    assert format_booking_datetime("2026-10-20", "00:15") == "Oct 20, 2026 12:15am"
    assert format_booking_datetime("2026-10-20", None) == "Oct 20, 2026"
    assert format_booking_datetime(None, "09:30") == "-"


def test_time_label():
    assert format_time_label("12:00") == "12:00pm"
    assert format_time_label("23:30") == "11:30pm"


def test_search_matches_one_contact(appointments):
    rows = compute_visible_rows(appointments, default_headers(), "0917")

    assert [row["id"] for row in rows] == [1]


def test_search_is_case_insensitive_and_uses_formatted_date(appointments):
    assert [r["id"] for r in compute_visible_rows(appointments, default_headers(), "carla")] == [3]
    assert [r["id"] for r in compute_visible_rows(appointments, default_headers(), "oct 20, 2026 9:30AM")] == [1]


def test_search_ignores_actions_column():
    rows = [{"id": 1, "name": "Ana", "actions": "edit"}]

    assert compute_visible_rows(rows, default_headers(), "edit") == []


def test_search_covers_custom_columns(appointments):
    headers = default_headers()
    headers.insert(3, ColumnDescriptor(id="custom_1700", label="Tag", field="custom_1"))
    rows = [flatten_custom_fields(a) for a in appointments]

    assert [r["id"] for r in compute_visible_rows(rows, headers, "vip")] == [1]


def test_search_is_idempotent(appointments):
    headers = default_headers()
    once = compute_visible_rows(appointments, headers, "09")
    twice = compute_visible_rows(once, headers, "09")

    assert once == twice


def test_sort_by_booking_date_uses_date_and_time(appointments):
    rows = compute_visible_rows(appointments, default_headers(), "", "bookingDate", "asc")

    assert [r["id"] for r in rows] == [3, 5, 1, 2, 4]


def test_sort_by_text_is_case_insensitive():
    rows = [{"id": 1, "name": "bob"}, {"id": 2, "name": "Alice"}, {"id": 3, "name": "carl"}]

    assert [r["id"] for r in compute_visible_rows(rows, default_headers(), "", "name", "asc")] == [2, 1, 3]
    assert [r["id"] for r in compute_visible_rows(rows, default_headers(), "", "name", "desc")] == [3, 1, 2]


def test_sort_is_stable_in_both_directions():
    rows = [
        {"id": 1, "status": "Pending"},
        {"id": 2, "status": "Completed"},
        {"id": 3, "status": "Pending"},
        {"id": 4, "status": "Completed"},
    ]
    headers = default_headers()

    ascending = compute_visible_rows(rows, headers, "", "status", "asc")
    descending = compute_visible_rows(rows, headers, "", "status", "desc")
    ascending_again = compute_visible_rows(descending, headers, "", "status", "asc")

    assert [r["id"] for r in ascending] == [2, 4, 1, 3]
    assert [r["id"] for r in descending] == [1, 3, 2, 4]
    assert [r["id"] for r in ascending_again] == [2, 4, 1, 3]


def test_intersect_selection_keeps_visible_ids():
    rows = [{"id": 1}, {"id": 3}]

    assert intersect_selection([1, 2, 3], rows) == [1, 3]
