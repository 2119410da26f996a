# app/api/v1/endpoints/admin.py
import logging
from typing import Any, Dict

import orjson
from fastapi import APIRouter, Body, Depends, Path, Response, status

from app.api.dependencies import get_admin_engine
from app.engine.commands import parse_command
from app.engine.engine import TableConfigEngine
from app.services import admin_session_service

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/sessions", tags=["admin"])


def snapshot_response(session_id: str, engine: TableConfigEngine, status_code: int = 200) -> Response:
    body = {"sessionId": session_id, **engine.snapshot()}
    return Response(content=orjson.dumps(body), media_type="application/json", status_code=status_code)


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_session():
    """Open an admin table session with the configuration and rows loaded"""
    session_id = await admin_session_service.open_session()
    engine = admin_session_service.get_session(session_id)
    return snapshot_response(session_id, engine, status.HTTP_201_CREATED)


@router.get("/{session_id}")
async def get_snapshot(
        session_id: str = Path(...),
        engine: TableConfigEngine = Depends(get_admin_engine)
):
    return snapshot_response(session_id, engine)


@router.post("/{session_id}/commands")
async def dispatch_command(
        session_id: str = Path(...),
        command: Dict[str, Any] = Body(...),
        engine: TableConfigEngine = Depends(get_admin_engine)
):
    """Apply one command; commands of a session run one at a time"""
    parsed = parse_command(command)
    async with admin_session_service.get_lock(session_id):
        await engine.dispatch(parsed)
    logger.debug(f"Session {session_id} applied {parsed.type}")
    return snapshot_response(session_id, engine)


@router.post("/{session_id}/refresh")
async def refresh_rows(
        session_id: str = Path(...),
        engine: TableConfigEngine = Depends(get_admin_engine)
):
    async with admin_session_service.get_lock(session_id):
        await engine.refresh()
    return snapshot_response(session_id, engine)


@router.delete("/{session_id}")
async def close_session(session_id: str = Path(...)):
    admin_session_service.close_session(session_id)
    return Response(content=orjson.dumps({"message": "Admin session closed"}), media_type="application/json")
