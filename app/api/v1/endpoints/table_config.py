# app/api/v1/endpoints/table_config.py
import orjson
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.table_config import TableConfigSave
from app.services import table_config_service

router = APIRouter(prefix="/table-config", tags=["table-config"])


@router.get("")
async def get_table_config(db: AsyncSession = Depends(get_db)):
    """Admin table configuration; the default one is created on first access"""
    document = await table_config_service.get_table_config(db)
    return Response(content=orjson.dumps(document), media_type="application/json")


@router.post("")
async def save_table_config(body: TableConfigSave, db: AsyncSession = Depends(get_db)):
    document = await table_config_service.save_table_config(db, body.headers)
    return Response(
        content=orjson.dumps({"message": "Table configuration saved successfully", "config": document}),
        media_type="application/json"
    )


@router.post("/reset")
async def reset_table_config(db: AsyncSession = Depends(get_db)):
    document = await table_config_service.reset_table_config(db)
    return Response(
        content=orjson.dumps({"message": "Table configuration reset to default successfully", "config": document}),
        media_type="application/json"
    )
