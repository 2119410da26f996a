# app/services/appointment_service.py
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from app.engine.fields import to_storage_key
from app.engine.rows import format_time_label
from app.models.appointment import Appointment, AppointmentStatus
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate

# Set up logging
logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This time slot is already booked"
TOO_EARLY_MESSAGE = "Cannot book past dates, only 2 days onward"
PAST_DATE_MESSAGE = "Cannot move a booking to a past date"
NOT_FOUND_MESSAGE = "Appointment not found"


def appointment_to_dict(appointment: Appointment) -> Dict[str, Any]:
    """JSON shape of an appointment record"""
    return {
        "id": appointment.id,
        "name": appointment.name,
        "contactNumber": appointment.contact_number,
        "bookingDate": appointment.booking_date.isoformat() if appointment.booking_date else None,
        "bookingTime": appointment.booking_time,
        "status": appointment.status,
        "notes": appointment.notes,
        "customFields": dict(appointment.custom_fields or {}),
        "createdAt": appointment.created_at.isoformat() if appointment.created_at else None,
        "updatedAt": appointment.updated_at.isoformat() if appointment.updated_at else None,
    }


def earliest_booking_date(today: Optional[date] = None) -> date:
    today = today or date.today()
    return today + timedelta(days=settings.BOOKING_MIN_DAYS_AHEAD)


def slot_times() -> List[str]:
    """Bookable start times from SLOT_FIRST to SLOT_LAST inclusive"""
    current = datetime.strptime(settings.SLOT_FIRST, "%H:%M")
    last = datetime.strptime(settings.SLOT_LAST, "%H:%M")
    step = timedelta(minutes=settings.SLOT_MINUTES)

    times = []
    while current <= last:
        times.append(current.strftime("%H:%M"))
        current += step
    return times


async def _slot_taken(
        db: AsyncSession,
        booking_date: date,
        booking_time: str,
        exclude_id: Optional[int] = None
) -> bool:
    """True when a non-cancelled appointment already holds the slot"""
    query = select(Appointment.id).where(
        Appointment.booking_date == booking_date,
        Appointment.booking_time == booking_time,
        func.lower(Appointment.status) != AppointmentStatus.CANCELLED.value.lower(),
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)

    result = await db.execute(query.limit(1))
    return result.first() is not None


async def list_appointments(db: AsyncSession) -> List[Appointment]:
    """All appointments ordered by booking date and time"""
    try:
        result = await db.execute(
            select(Appointment).order_by(Appointment.booking_date, Appointment.booking_time, Appointment.id)
        )
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Error listing appointments: {str(e)}")
        raise PersistenceError("Failed to fetch appointments")


async def get_appointment(db: AsyncSession, appointment_id: int) -> Appointment:
    try:
        appointment = await db.get(Appointment, appointment_id)
    except SQLAlchemyError as e:
        logger.error(f"Error reading appointment {appointment_id}: {str(e)}")
        raise PersistenceError("Failed to fetch appointment")

    if appointment is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return appointment


async def create_appointment(
        db: AsyncSession,
        data: AppointmentCreate,
        today: Optional[date] = None
) -> Appointment:
    """
    Book a slot.

    Rejects dates earlier than today plus the configured lead time and slots
    already held by another appointment that is not cancelled.
    """
    if data.booking_date < earliest_booking_date(today):
        raise ValidationError.for_field("bookingDate", TOO_EARLY_MESSAGE)

    try:
        if await _slot_taken(db, data.booking_date, data.booking_time):
            logger.info(f"Rejected booking for taken slot {data.booking_date} {data.booking_time}")
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        appointment = Appointment(
            name=data.name,
            contact_number=data.contact_number,
            booking_date=data.booking_date,
            booking_time=data.booking_time,
            status=data.status.value,
            notes=data.notes,
            custom_fields={to_storage_key(key): value for key, value in data.custom_fields.items()},
        )
        db.add(appointment)
        await db.commit()
        await db.refresh(appointment)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating appointment: {str(e)}")
        raise PersistenceError("Failed to create appointment")

    logger.info(f"Created appointment {appointment.id} for {appointment.booking_date} {appointment.booking_time}")
    return appointment


async def update_appointment(
        db: AsyncSession,
        appointment_id: int,
        data: AppointmentUpdate,
        today: Optional[date] = None
) -> Appointment:
    """Apply a partial update; custom_ entries are merged into customFields"""
    appointment = await get_appointment(db, appointment_id)

    changes = data.standard_changes()
    custom = {to_storage_key(key): value for key, value in data.custom_changes().items()}

    # Required columns cannot be cleared through a partial update
    for required in ("name", "contact_number", "booking_date", "booking_time", "status"):
        if required in changes and changes[required] is None:
            changes.pop(required)

    new_date = changes.get("booking_date", appointment.booking_date)
    new_time = changes.get("booking_time", appointment.booking_time)
    date_changed = new_date != appointment.booking_date

    if date_changed and new_date < (today or date.today()):
        raise ValidationError.for_field("bookingDate", PAST_DATE_MESSAGE)

    try:
        if date_changed or new_time != appointment.booking_time:
            if await _slot_taken(db, new_date, new_time, exclude_id=appointment.id):
                raise ConflictError(SLOT_TAKEN_MESSAGE)

        for name, value in changes.items():
            if name == "status":
                value = value.value
            setattr(appointment, name, value)

        if custom:
            merged = dict(appointment.custom_fields or {})
            merged.update(custom)
            appointment.custom_fields = merged
            flag_modified(appointment, "custom_fields")

        await db.commit()
        await db.refresh(appointment)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating appointment {appointment_id}: {str(e)}")
        raise PersistenceError("Failed to update appointment")

    logger.info(f"Updated appointment {appointment_id}")
    return appointment


async def delete_appointment(db: AsyncSession, appointment_id: int) -> None:
    appointment = await get_appointment(db, appointment_id)
    try:
        await db.delete(appointment)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting appointment {appointment_id}: {str(e)}")
        raise PersistenceError("Failed to delete appointment")

    logger.info(f"Deleted appointment {appointment_id}")


async def cleanup_columns(db: AsyncSession, field_names: Sequence[str]) -> int:
    """
    Remove the data of deleted columns from every appointment.

    Field names may carry the custom_ prefix; it is stripped before matching
    customFields keys. Returns the number of appointments touched.
    """
    keys = {to_storage_key(field) for field in field_names if field}
    if not keys:
        return 0

    touched = 0
    try:
        result = await db.execute(select(Appointment))
        for appointment in result.scalars().all():
            current = appointment.custom_fields or {}
            if not keys.intersection(current):
                continue
            appointment.custom_fields = {key: value for key, value in current.items() if key not in keys}
            flag_modified(appointment, "custom_fields")
            touched += 1

        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error cleaning up columns {sorted(keys)}: {str(e)}")
        raise PersistenceError("Failed to cleanup column data")

    logger.info(f"Removed columns {sorted(keys)} from {touched} appointments")
    return touched


async def available_slots(db: AsyncSession, day: date) -> List[Dict[str, Any]]:
    """Every bookable slot of a day with its availability"""
    try:
        result = await db.execute(
            select(Appointment.booking_time).where(
                Appointment.booking_date == day,
                func.lower(Appointment.status) != AppointmentStatus.CANCELLED.value.lower(),
            )
        )
        taken = set(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Error reading availability for {day}: {str(e)}")
        raise PersistenceError("Failed to fetch availability")

    bookable = day >= earliest_booking_date()
    return [
        {
            "time": slot,
            "label": format_time_label(slot),
            "available": bookable and slot not in taken,
        }
        for slot in slot_times()
    ]
