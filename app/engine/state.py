# app/engine/state.py
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.engine.headers import ColumnDescriptor, default_headers
from app.engine.rows import compute_visible_rows

RowId = Union[int, str]

PromptType = Literal["exit", "save", "cancel", "delete"]


class ConfirmPrompt(BaseModel):
    """Pending confirmation dialog"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: PromptType
    message: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class TableState(BaseModel):
    """
    Everything the admin table needs to render.

    ``headers`` is the working draft and ``original_headers`` the last
    persisted configuration. Instances are treated as immutable: commands
    produce new states through ``model_copy(update=...)``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    headers: List[ColumnDescriptor] = Field(default_factory=default_headers)
    original_headers: List[ColumnDescriptor] = Field(default_factory=default_headers)
    columns_to_delete: List[int] = Field(default_factory=list)
    has_unsaved_changes: bool = False

    edit_mode: bool = False
    drag_mode: bool = False
    delete_column_mode: bool = False
    editing_header_index: Optional[int] = None

    editing_row_id: Optional[RowId] = None
    editing_data: Dict[str, Any] = Field(default_factory=dict)

    confirm: Optional[ConfirmPrompt] = None

    appointments: List[Dict[str, Any]] = Field(default_factory=list)
    search_term: str = ""
    sort_field: Optional[str] = None
    sort_direction: Optional[Literal["asc", "desc"]] = None
    selected: List[RowId] = Field(default_factory=list)

    error: Optional[str] = None
    success: Optional[str] = None
    success_expires_at: Optional[float] = None

    @property
    def mode(self) -> str:
        return "editing_table" if self.edit_mode else "viewing"

    def diverges(self) -> bool:
        """True when the draft differs from the persisted configuration"""
        return bool(self.columns_to_delete) or self.headers != self.original_headers

    def visible_rows(self) -> List[Dict[str, Any]]:
        return compute_visible_rows(
            self.appointments,
            self.headers,
            self.search_term,
            self.sort_field,
            self.sort_direction,
        )

    def staged_fields(self) -> List[str]:
        """Fields dropped by committed_headers(), whose row data needs cleanup"""
        staged = set(self.columns_to_delete)
        return [
            header.field for index, header in enumerate(self.headers)
            if index in staged or header.deleted
        ]

    def committed_headers(self) -> List[ColumnDescriptor]:
        """Draft without the columns staged or flagged for deletion"""
        staged = set(self.columns_to_delete)
        return [
            header for index, header in enumerate(self.headers)
            if index not in staged and not header.deleted
        ]
