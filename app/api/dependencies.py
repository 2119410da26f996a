# app/api/dependencies.py
from fastapi import Path

from app.engine.engine import TableConfigEngine
from app.services.admin_session_service import get_session


async def get_admin_engine(session_id: str = Path(...)) -> TableConfigEngine:
    """Resolve the admin session addressed by the path; 404 when unknown or evicted"""
    return get_session(session_id)
