# app/engine/store.py
from typing import Any, Dict, List, Protocol, Sequence

from pydantic import ValidationError as PydanticValidationError

from app.core.db import get_db_context
from app.core.exceptions import ValidationError
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.services import appointment_service, table_config_service


class TableStore(Protocol):
    """Persistence collaborator of the admin table engine"""

    async def get_table_config(self) -> Dict[str, Any]:
        ...

    async def save_table_config(self, headers: List[Dict[str, Any]]) -> Dict[str, Any]:
        ...

    async def get_all_appointments(self) -> List[Dict[str, Any]]:
        ...

    async def update_appointment(self, appointment_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def delete_appointment(self, appointment_id: Any) -> None:
        ...

    async def cleanup_columns(self, field_names: Sequence[str]) -> int:
        ...

    async def create_appointment(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...


def _validate(schema, fields: Dict[str, Any], message: str):
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, message)


class DatabaseStore:
    """TableStore backed by the SQLAlchemy services; one session per call"""

    async def get_table_config(self) -> Dict[str, Any]:
        async with get_db_context() as db:
            return await table_config_service.get_table_config(db)

    async def save_table_config(self, headers: List[Dict[str, Any]]) -> Dict[str, Any]:
        async with get_db_context() as db:
            return await table_config_service.save_table_config(db, headers)

    async def get_all_appointments(self) -> List[Dict[str, Any]]:
        async with get_db_context() as db:
            appointments = await appointment_service.list_appointments(db)
            return [appointment_service.appointment_to_dict(appointment) for appointment in appointments]

    async def update_appointment(self, appointment_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = _validate(AppointmentUpdate, fields, "Invalid appointment update")
        async with get_db_context() as db:
            appointment = await appointment_service.update_appointment(db, int(appointment_id), data)
            return appointment_service.appointment_to_dict(appointment)

    async def delete_appointment(self, appointment_id: Any) -> None:
        async with get_db_context() as db:
            await appointment_service.delete_appointment(db, int(appointment_id))

    async def cleanup_columns(self, field_names: Sequence[str]) -> int:
        async with get_db_context() as db:
            return await appointment_service.cleanup_columns(db, field_names)

    async def create_appointment(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = _validate(AppointmentCreate, fields, "Invalid booking")
        async with get_db_context() as db:
            appointment = await appointment_service.create_appointment(db, data)
            return appointment_service.appointment_to_dict(appointment)
