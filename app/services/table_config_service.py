# app/services/table_config_service.py
import logging
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import get_cache, invalidate_cache, set_cache
from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.engine.headers import check_invariants, default_headers, dump_headers, parse_headers
from app.models.table_config import TableConfig

# Set up logging
logger = logging.getLogger(__name__)


def cache_key(config_type: str) -> str:
    return f"table_config:{config_type}"


def table_config_to_dict(config: TableConfig) -> Dict[str, Any]:
    return {
        "configType": config.config_type,
        "headers": list(config.headers or []),
        "updatedAt": config.updated_at.isoformat() if config.updated_at else None,
    }


async def _find(db: AsyncSession, config_type: str) -> Optional[TableConfig]:
    result = await db.execute(select(TableConfig).where(TableConfig.config_type == config_type))
    return result.scalars().first()


async def get_table_config(db: AsyncSession, config_type: Optional[str] = None) -> Dict[str, Any]:
    """Return the stored configuration, creating the default one on first access"""
    config_type = config_type or settings.TABLE_CONFIG_TYPE

    cached = await get_cache(cache_key(config_type))
    if cached:
        logger.debug(f"Cache hit for table config {config_type}")
        return cached

    try:
        config = await _find(db, config_type)
        if config is None:
            config = TableConfig(config_type=config_type, headers=dump_headers(default_headers()))
            db.add(config)
            await db.commit()
            await db.refresh(config)
            logger.info(f"Created default table config {config_type}")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error fetching table config: {str(e)}")
        raise PersistenceError("Failed to fetch table configuration")

    document = table_config_to_dict(config)
    await set_cache(cache_key(config_type), document)
    return document


async def save_table_config(
        db: AsyncSession,
        raw_headers: Sequence[Any],
        config_type: Optional[str] = None
) -> Dict[str, Any]:
    """Validate and upsert the header list; last write wins"""
    config_type = config_type or settings.TABLE_CONFIG_TYPE

    headers = parse_headers(raw_headers)
    check_invariants(headers)

    try:
        config = await _find(db, config_type)
        if config is None:
            config = TableConfig(config_type=config_type)
            db.add(config)
        config.headers = dump_headers(headers)
        await db.commit()
        await db.refresh(config)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error saving table config: {str(e)}")
        raise PersistenceError("Failed to save table configuration")

    await invalidate_cache(cache_key(config_type))
    logger.info(f"Saved table config {config_type} with {len(headers)} columns")
    return table_config_to_dict(config)


async def reset_table_config(db: AsyncSession, config_type: Optional[str] = None) -> Dict[str, Any]:
    """Replace the stored configuration with the default columns"""
    document = await save_table_config(db, dump_headers(default_headers()), config_type)
    logger.info(f"Reset table config {document['configType']} to defaults")
    return document
