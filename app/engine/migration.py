# app/engine/migration.py
"""
Reconciliation of older persisted table configurations.

Early configurations stored separate ``date`` and ``time`` columns. The table
now shows one ``bookingDate`` column rendering date and time together. The
transform is pure; writing the corrected shape back is the caller's job.
"""
from typing import Any, List, Sequence, Tuple

from app.engine.headers import BOOKING_DATE_FIELD, ColumnDescriptor, parse_headers

LEGACY_FIELDS = frozenset({"date", "time", "bookingTime"})
LEGACY_IDS = frozenset({"date", "time"})

# Position of the merged column: after name and contact number
BOOKING_DATE_POSITION = 2


def is_legacy_column(header: ColumnDescriptor) -> bool:
    return header.field in LEGACY_FIELDS or header.id in LEGACY_IDS


def booking_date_column() -> ColumnDescriptor:
    return ColumnDescriptor(id="bookingDate", label="Booking Date", field=BOOKING_DATE_FIELD, editable=True)


def migrate(raw_headers: Sequence[Any]) -> Tuple[List[ColumnDescriptor], bool]:
    """Return (headers, migrated); migrated is True when the stored shape needs rewriting"""
    headers = parse_headers(raw_headers)

    if not any(is_legacy_column(header) for header in headers):
        return headers, False

    updated = [header for header in headers if not is_legacy_column(header)]

    if not any(header.field == BOOKING_DATE_FIELD for header in updated):
        updated.insert(min(BOOKING_DATE_POSITION, len(updated)), booking_date_column())

    return updated, True
