# app/models/appointment.py
import enum

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, JSON, Index, func
from app.core.db_base import Base


class AppointmentStatus(str, enum.Enum):
    PENDING = "Pending"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    contact_number = Column(String(32), nullable=False)
    booking_date = Column(Date, nullable=False)
    booking_time = Column(String(5), nullable=False)  # "HH:MM"
    status = Column(String(16), nullable=False, default=AppointmentStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    custom_fields = Column(JSON, nullable=False, default=dict)  # Keys stored without the custom_ prefix
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_appointments_slot", "booking_date", "booking_time"),
    )
