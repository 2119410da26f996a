# app/services/admin_session_service.py
import asyncio
import logging
import uuid
from collections import OrderedDict
from typing import Callable, Dict, Optional

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.engine.engine import TableConfigEngine
from app.engine.store import DatabaseStore, TableStore

logger = logging.getLogger(__name__)

# Open admin table sessions by session ID, oldest first
admin_sessions: "OrderedDict[str, TableConfigEngine]" = OrderedDict()
session_locks: Dict[str, asyncio.Lock] = {}

store_factory: Callable[[], TableStore] = DatabaseStore


async def open_session(store: Optional[TableStore] = None) -> str:
    """Create an engine, load it and register it under a new session ID"""
    engine = TableConfigEngine(store or store_factory())
    await engine.load()

    session_id = str(uuid.uuid4())
    admin_sessions[session_id] = engine
    session_locks[session_id] = asyncio.Lock()

    while len(admin_sessions) > settings.ADMIN_SESSION_LIMIT:
        evicted, _ = admin_sessions.popitem(last=False)
        session_locks.pop(evicted, None)
        logger.info(f"Evicted admin session {evicted}")

    logger.info(f"Opened admin session {session_id}. Open sessions: {len(admin_sessions)}")
    return session_id


def get_session(session_id: str) -> TableConfigEngine:
    engine = admin_sessions.get(session_id)
    if engine is None:
        raise NotFoundError("Admin session not found")
    return engine


def get_lock(session_id: str) -> asyncio.Lock:
    get_session(session_id)
    return session_locks.setdefault(session_id, asyncio.Lock())


def close_session(session_id: str) -> None:
    get_session(session_id)
    del admin_sessions[session_id]
    session_locks.pop(session_id, None)
    logger.info(f"Closed admin session {session_id}. Open sessions: {len(admin_sessions)}")


def clear_sessions() -> None:
    admin_sessions.clear()
    session_locks.clear()
