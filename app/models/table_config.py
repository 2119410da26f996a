# app/models/table_config.py
from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from app.core.db_base import Base


class TableConfig(Base):
    __tablename__ = "table_configs"

    id = Column(Integer, primary_key=True, index=True)
    config_type = Column(String, nullable=False, unique=True, default="admin-table")
    headers = Column(JSON, nullable=False, default=list)  # Ordered list of column descriptors
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
