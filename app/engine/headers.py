# app/engine/headers.py
from typing import Any, Dict, List, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError

STATUS_FIELD = "status"
ACTIONS_FIELD = "actions"
BOOKING_DATE_FIELD = "bookingDate"

# Pinned columns: never renamed, reordered or deleted
PINNED_FIELDS = frozenset({STATUS_FIELD, ACTIONS_FIELD})

# Columns that can never be staged for deletion
PROTECTED_FIELDS = frozenset({STATUS_FIELD, ACTIONS_FIELD, "name", "contactNumber", BOOKING_DATE_FIELD})


class ColumnDescriptor(BaseModel):
    """One column of the admin table"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    label: str
    field: str = Field(..., min_length=1)
    editable: bool = True
    deleted: bool = False

    @property
    def is_pinned(self) -> bool:
        return self.field in PINNED_FIELDS

    @property
    def is_protected(self) -> bool:
        return self.field in PROTECTED_FIELDS


DEFAULT_HEADERS: List[ColumnDescriptor] = [
    ColumnDescriptor(id="name", label="Full Name", field="name", editable=True),
    ColumnDescriptor(id="contact", label="Contact Number", field="contactNumber", editable=True),
    ColumnDescriptor(id="bookingDate", label="Booking Date", field=BOOKING_DATE_FIELD, editable=True),
    ColumnDescriptor(id="status", label="Status", field=STATUS_FIELD, editable=False),
    ColumnDescriptor(id="actions", label="Actions", field=ACTIONS_FIELD, editable=False),
]


def default_headers() -> List[ColumnDescriptor]:
    return [header.model_copy() for header in DEFAULT_HEADERS]


def parse_headers(raw: Sequence[Any]) -> List[ColumnDescriptor]:
    """Validate a list of stored or submitted descriptors"""
    headers = []
    for position, item in enumerate(raw):
        if isinstance(item, ColumnDescriptor):
            headers.append(item.model_copy())
            continue
        try:
            headers.append(ColumnDescriptor.model_validate(item))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid column descriptor at position {position}",
                [{"field": f"headers.{position}", "message": err.get("msg", "Invalid value")} for err in e.errors()],
            )
    return headers


def check_invariants(headers: Sequence[ColumnDescriptor]) -> None:
    """Raise ValidationError unless ids are unique and status/actions appear exactly once"""
    errors = []

    seen = set()
    for header in headers:
        if header.id in seen:
            errors.append({"field": "headers", "message": f"Duplicate column id '{header.id}'"})
        seen.add(header.id)

    for pinned in (STATUS_FIELD, ACTIONS_FIELD):
        count = sum(1 for header in headers if header.field == pinned)
        if count != 1:
            errors.append({"field": "headers", "message": f"Exactly one '{pinned}' column is required, found {count}"})

    if errors:
        raise ValidationError("Invalid table configuration", errors)


def dump_headers(headers: Sequence[ColumnDescriptor]) -> List[Dict[str, Any]]:
    """Persisted shape; the deleted marker is only kept when set"""
    documents = []
    for header in headers:
        document = header.model_dump()
        if not header.deleted:
            document.pop("deleted")
        documents.append(document)
    return documents
