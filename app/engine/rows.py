# app/engine/rows.py
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.engine.headers import ACTIONS_FIELD, BOOKING_DATE_FIELD, ColumnDescriptor

# Fixed English abbreviations; strftime("%b") follows the process locale
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

SORT_ASC = "asc"
SORT_DESC = "desc"


def parse_booking_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def format_time_label(booking_time: str) -> str:
    """'09:30' -> '9:30am', '13:00' -> '1:00pm'"""
    try:
        hours, minutes = booking_time.split(":")[:2]
        hour = int(hours)
    except ValueError:
        return booking_time
    hour12 = hour % 12 or 12
    ampm = "pm" if hour >= 12 else "am"
    return f"{hour12}:{minutes}{ampm}"


def format_booking_datetime(booking_date: Any, booking_time: Optional[str]) -> str:
    """Render date and time the way the admin table shows them, e.g. 'Oct 20, 2026 9:30am'"""
    if not booking_date:
        return "-"

    parsed = parse_booking_date(booking_date)
    if parsed is None:
        return str(booking_date)

    time_str = f" {format_time_label(booking_time)}" if booking_time else ""
    return f"{MONTH_NAMES[parsed.month - 1]} {parsed.day}, {parsed.year}{time_str}"


def cell_text(row: Dict[str, Any], field: str) -> str:
    """String form of a row value for searching"""
    if field == BOOKING_DATE_FIELD:
        return format_booking_datetime(row.get("bookingDate"), row.get("bookingTime"))
    value = row.get(field)
    return "" if value is None else str(value)


def matches_search(row: Dict[str, Any], headers: Sequence[ColumnDescriptor], search_term: str) -> bool:
    needle = (search_term or "").lower()
    return any(
        needle in cell_text(row, header.field).lower()
        for header in headers
        if header.field != ACTIONS_FIELD
    )


def _booking_moment(row: Dict[str, Any]) -> datetime:
    booking_date = parse_booking_date(row.get("bookingDate"))
    if booking_date is None:
        return datetime.min
    try:
        hours, minutes = (row.get("bookingTime") or "00:00").split(":")[:2]
        return datetime(booking_date.year, booking_date.month, booking_date.day, int(hours) % 24, int(minutes))
    except ValueError:
        return datetime(booking_date.year, booking_date.month, booking_date.day)


def sort_key(field: str):
    if field == BOOKING_DATE_FIELD:
        return _booking_moment

    def _text_key(row: Dict[str, Any]) -> str:
        value = row.get(field)
        return "" if value is None else str(value).lower()

    return _text_key


def compute_visible_rows(
        appointments: Sequence[Dict[str, Any]],
        headers: Sequence[ColumnDescriptor],
        search_term: str = "",
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Filter rows whose text in any non-action column contains the search term
    (case-insensitive), then sort by the requested field.

    The sort is stable in both directions: rows with equal keys keep their
    incoming order whether ascending or descending.
    """
    if search_term:
        rows = [row for row in appointments if matches_search(row, headers, search_term)]
    else:
        rows = list(appointments)

    if sort_field:
        rows = sorted(rows, key=sort_key(sort_field), reverse=(sort_direction == SORT_DESC))

    return rows


def intersect_selection(selected: Iterable[Any], rows: Sequence[Dict[str, Any]]) -> List[Any]:
    """Drop selected ids that are no longer visible"""
    visible = {row.get("id") for row in rows}
    return [row_id for row_id in selected if row_id in visible]
