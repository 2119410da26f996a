# app/engine/booking_form.py
import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.exceptions import AppError, ConflictError, ValidationError
from app.engine.rows import parse_booking_date
from app.engine.store import TableStore
from app.schemas.appointment import CONTACT_NUMBER_MESSAGE, CONTACT_NUMBER_PATTERN

# Set up logging
logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Appointment created successfully!"
FAILURE_MESSAGE = "Failed to create appointment"


class BookingResult(BaseModel):
    success: bool
    message: Optional[str] = None
    errors: Dict[str, str] = Field(default_factory=dict)
    appointment: Optional[Dict[str, Any]] = None


class BookingForm:
    """Customer booking form: checks the input, then creates the appointment"""

    FIELDS = ("name", "contactNumber", "bookingDate", "bookingTime")

    def __init__(self, store: TableStore, today: Callable[[], date] = date.today):
        self.store = store
        self.today = today

    def validate(self, values: Dict[str, Any]) -> Dict[str, str]:
        """Per-field messages; empty when the input can be submitted"""
        errors: Dict[str, str] = {}

        name = (values.get("name") or "").strip()
        if not name:
            errors["name"] = "Name is required"

        contact = (values.get("contactNumber") or "").strip()
        if len(contact) != 11:
            errors["contactNumber"] = "Contact number must be 11 digits (09xxxxxxxxx)"
        elif not CONTACT_NUMBER_PATTERN.match(contact):
            errors["contactNumber"] = CONTACT_NUMBER_MESSAGE

        booking_date = parse_booking_date(values.get("bookingDate"))
        if booking_date is None:
            errors["bookingDate"] = "Date and time are required."
        elif booking_date < self.today() + timedelta(days=settings.BOOKING_MIN_DAYS_AHEAD):
            errors["bookingDate"] = "Cannot book past dates. Only 2+ days onward allowed."

        if not (values.get("bookingTime") or "").strip():
            errors["bookingTime"] = "Please select a time slot."

        return errors

    async def submit(self, values: Dict[str, Any]) -> BookingResult:
        errors = self.validate(values)
        if errors:
            return BookingResult(success=False, errors=errors)

        fields = {key: str(values[key]).strip() for key in self.FIELDS}
        try:
            appointment = await self.store.create_appointment(fields)
        except ConflictError as e:
            return BookingResult(success=False, message=e.message)
        except ValidationError as e:
            field_errors = {error["field"]: error["message"] for error in e.errors}
            return BookingResult(success=False, message=e.message, errors=field_errors)
        except AppError as e:
            logger.error(f"Error creating appointment: {e.message}")
            return BookingResult(success=False, message=FAILURE_MESSAGE)

        logger.info(f"Booked appointment {appointment.get('id')}")
        return BookingResult(success=True, message=SUCCESS_MESSAGE, appointment=appointment)
