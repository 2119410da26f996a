# app/api/v1/endpoints/appointments.py
import logging
from datetime import date

import orjson
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate, Availability, CleanupColumnsRequest
from app.services import appointment_service

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def json_response(content, status_code: int = 200) -> Response:
    return Response(content=orjson.dumps(content), media_type="application/json", status_code=status_code)


@router.get("")
async def list_appointments(db: AsyncSession = Depends(get_db)):
    """All appointments ordered by booking date and time"""
    appointments = await appointment_service.list_appointments(db)
    return json_response([appointment_service.appointment_to_dict(a) for a in appointments])


@router.get("/availability")
async def get_availability(
        day: date = Query(..., alias="date"),
        db: AsyncSession = Depends(get_db)
):
    """Half-hour slots of a day and whether each can still be booked"""
    slots = await appointment_service.available_slots(db, day)
    availability = Availability(date=day, slots=slots)
    return json_response(availability.model_dump(mode="json", by_alias=True))


@router.post("/cleanup-columns")
async def cleanup_columns(body: CleanupColumnsRequest, db: AsyncSession = Depends(get_db)):
    touched = await appointment_service.cleanup_columns(db, body.deleted_fields)
    return json_response({"message": "Column data cleanup completed successfully", "updated": touched})


@router.get("/{appointment_id}")
async def get_appointment(appointment_id: int, db: AsyncSession = Depends(get_db)):
    appointment = await appointment_service.get_appointment(db, appointment_id)
    return json_response(appointment_service.appointment_to_dict(appointment))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(body: AppointmentCreate, db: AsyncSession = Depends(get_db)):
    appointment = await appointment_service.create_appointment(db, body)
    return json_response(appointment_service.appointment_to_dict(appointment), status.HTTP_201_CREATED)


@router.put("/{appointment_id}")
async def update_appointment(appointment_id: int, body: AppointmentUpdate, db: AsyncSession = Depends(get_db)):
    appointment = await appointment_service.update_appointment(db, appointment_id, body)
    return json_response(appointment_service.appointment_to_dict(appointment))


@router.delete("/{appointment_id}")
async def delete_appointment(appointment_id: int, db: AsyncSession = Depends(get_db)):
    await appointment_service.delete_appointment(db, appointment_id)
    return json_response({"message": "Appointment deleted successfully"})
