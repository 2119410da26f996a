# app/schemas/table_config.py
from typing import Any, List

from pydantic import BaseModel


class TableConfigSave(BaseModel):
    # Descriptors are validated by the service so errors come back per position
    headers: List[Any]
