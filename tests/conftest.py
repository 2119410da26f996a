import copy
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from app.core import cache, db
from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, PersistenceError
from app.engine.fields import is_custom_field, to_storage_key
from app.services import admin_session_service


@pytest.fixture(autouse=True)
def isolated_app(monkeypatch, tmp_path):
    """Temporary SQLite file, no Redis, no leftover admin sessions"""
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setattr(settings, "ENABLE_REDIS_CACHE", False)
    monkeypatch.setattr(db, "engine", None)
    monkeypatch.setattr(db, "async_session_factory", None)
    monkeypatch.setattr(cache, "redis_client", None)
    admin_session_service.clear_sessions()
    yield
    admin_session_service.clear_sessions()


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


def days_ahead(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def make_appointment(appointment_id, name, contact, booking_date, booking_time, status="Pending", custom=None):
    return {
        "id": appointment_id,
        "name": name,
        "contactNumber": contact,
        "bookingDate": booking_date,
        "bookingTime": booking_time,
        "status": status,
        "notes": None,
        "customFields": dict(custom or {}),
    }


class FakeStore:
    """In-memory TableStore recording every call"""

    def __init__(self, headers=None, appointments=None):
        self.config = None if headers is None else {"configType": "admin-table", "headers": copy.deepcopy(headers)}
        self.appointments = [copy.deepcopy(a) for a in appointments or []]
        self.failing = set()
        self.saved = []
        self.cleanups = []
        self.updates = []
        self.deleted = []
        self.fetches = 0
        self.next_id = max([a["id"] for a in self.appointments] or [0]) + 1

    def _check(self, operation):
        if operation in self.failing:
            raise PersistenceError(f"{operation} failed")

    async def get_table_config(self):
        self._check("get_table_config")
        if self.config is None:
            raise NotFoundError("Table configuration not found")
        return copy.deepcopy(self.config)

    async def save_table_config(self, headers):
        self._check("save_table_config")
        self.saved.append(copy.deepcopy(headers))
        self.config = {"configType": "admin-table", "headers": copy.deepcopy(headers)}
        return copy.deepcopy(self.config)

    async def get_all_appointments(self):
        self._check("get_all_appointments")
        self.fetches += 1
        return copy.deepcopy(self.appointments)

    async def update_appointment(self, appointment_id, fields):
        self._check("update_appointment")
        self.updates.append((appointment_id, copy.deepcopy(fields)))
        record = next(a for a in self.appointments if a["id"] == appointment_id)
        for key, value in fields.items():
            if is_custom_field(key):
                record["customFields"][to_storage_key(key)] = value
            else:
                record[key] = value
        return copy.deepcopy(record)

    async def delete_appointment(self, appointment_id):
        self._check("delete_appointment")
        self.deleted.append(appointment_id)
        self.appointments = [a for a in self.appointments if a["id"] != appointment_id]

    async def cleanup_columns(self, field_names):
        self._check("cleanup_columns")
        self.cleanups.append(list(field_names))
        keys = {to_storage_key(field) for field in field_names}
        touched = 0
        for record in self.appointments:
            if keys.intersection(record["customFields"]):
                record["customFields"] = {k: v for k, v in record["customFields"].items() if k not in keys}
                touched += 1
        return touched

    async def create_appointment(self, fields):
        self._check("create_appointment")
        for record in self.appointments:
            if (record["bookingDate"] == fields["bookingDate"]
                    and record["bookingTime"] == fields["bookingTime"]
                    and record["status"].lower() != "cancelled"):
                raise ConflictError("This time slot is already booked")
        record = make_appointment(self.next_id, fields["name"], fields["contactNumber"],
                                  fields["bookingDate"], fields["bookingTime"])
        self.next_id += 1
        self.appointments.append(record)
        return copy.deepcopy(record)


@pytest.fixture
def appointments():
    return [
        make_appointment(1, "Ana Cruz", "09171234567", "2026-10-20", "09:30", custom={"1": "VIP"}),
        make_appointment(2, "Ben Reyes", "09281234567", "2026-10-21", "10:00"),
        make_appointment(3, "Carla Diaz", "09391234567", "2026-10-19", "14:00", status="Completed"),
        make_appointment(4, "Dan Santos", "09451234567", "2026-10-22", "11:00", status="Cancelled"),
        make_appointment(5, "Eva Lim", "09561234567", "2026-10-20", "08:00"),
    ]


@pytest.fixture
def store(appointments):
    return FakeStore(appointments=appointments)
