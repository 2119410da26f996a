# app/schemas/appointment.py
"""Appointment request/response schemas"""
import re
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.appointment import AppointmentStatus

CONTACT_NUMBER_PATTERN = re.compile(r"^09\d{9}$")
BOOKING_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

CONTACT_NUMBER_MESSAGE = "Contact number must start with 09 and be followed by 9 digits (e.g., 09123456789)"


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


def _check_contact_number(value: Optional[str]) -> Optional[str]:
    if value is not None and not CONTACT_NUMBER_PATTERN.match(value):
        raise ValueError(CONTACT_NUMBER_MESSAGE)
    return value


def _normalize_status(value: Any) -> Any:
    # Status arrives in any case from inline edits
    if isinstance(value, str):
        for status in AppointmentStatus:
            if status.value.lower() == value.strip().lower():
                return status
    return value


class AppointmentCreate(CamelModel):
    """Customer booking"""

    name: str = Field(..., min_length=1, max_length=200)
    contact_number: str
    booking_date: date
    booking_time: str = Field(..., pattern=BOOKING_TIME_PATTERN)
    status: AppointmentStatus = AppointmentStatus.PENDING
    notes: Optional[str] = None
    custom_fields: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v):
        return _check_contact_number(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return _normalize_status(v)


class AppointmentUpdate(CamelModel):
    """
    Partial update. Only fields present in the body are applied; extra
    ``custom_<key>`` entries are merged into customFields.
    """

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    contact_number: Optional[str] = None
    booking_date: Optional[date] = None
    booking_time: Optional[str] = Field(None, pattern=BOOKING_TIME_PATTERN)
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v):
        return _check_contact_number(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return _normalize_status(v)

    def standard_changes(self) -> Dict[str, Any]:
        """Declared fields explicitly sent, keyed by attribute name"""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name in type(self).model_fields
        }

    def custom_changes(self) -> Dict[str, Any]:
        """Extra ``custom_*`` entries, keys still prefixed"""
        return {
            key: value
            for key, value in (self.model_extra or {}).items()
            if key.startswith("custom_")
        }


class CleanupColumnsRequest(CamelModel):
    deleted_fields: List[str]


class Slot(CamelModel):
    time: str
    label: str
    available: bool


class Availability(CamelModel):
    date: date
    slots: List[Slot]
