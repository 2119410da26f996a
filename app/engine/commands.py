# app/engine/commands.py
"""
Commands accepted by the admin table and the reducer that applies them.

``dispatch(state, command)`` is pure: it returns the next state plus a list
of effects (persisting the table, saving or deleting a row) that the engine
carries out against the store.
"""
import time
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.core.exceptions import ValidationError
from app.engine.fields import is_custom_field, next_custom_field
from app.engine.headers import ACTIONS_FIELD, BOOKING_DATE_FIELD, STATUS_FIELD, ColumnDescriptor
from app.engine.rows import SORT_ASC, SORT_DESC, intersect_selection
from app.engine.state import ConfirmPrompt, RowId, TableState

EXIT_PROMPT = "You have unsaved changes. Do you want to save them before exiting edit mode?"
SAVE_PROMPT = "Are you sure you want to save changes?"
CANCEL_PROMPT = "Are you sure you want to cancel your changes? This will discard unsaved edits."
DELETE_PROMPT = "Are you sure you want to delete this appointment?"

NEW_COLUMN_LABEL = "New Column"


class CommandModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ToggleEditMode(CommandModel):
    type: Literal["toggle_edit_mode"] = "toggle_edit_mode"


class ToggleDragMode(CommandModel):
    type: Literal["toggle_drag_mode"] = "toggle_drag_mode"


class ToggleDeleteColumnMode(CommandModel):
    type: Literal["toggle_delete_column_mode"] = "toggle_delete_column_mode"


class Reorder(CommandModel):
    type: Literal["reorder"] = "reorder"
    active_id: str
    over_id: Optional[str] = None


class StartRename(CommandModel):
    type: Literal["start_rename"] = "start_rename"
    index: int


class RenameHeader(CommandModel):
    type: Literal["rename_header"] = "rename_header"
    index: int
    label: str


class AbortRename(CommandModel):
    type: Literal["abort_rename"] = "abort_rename"


class AddColumn(CommandModel):
    type: Literal["add_column"] = "add_column"
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))


class StageDelete(CommandModel):
    type: Literal["stage_delete"] = "stage_delete"
    index: int


class Save(CommandModel):
    type: Literal["save"] = "save"


class Cancel(CommandModel):
    type: Literal["cancel"] = "cancel"


class RequestSave(CommandModel):
    type: Literal["request_save"] = "request_save"


class RequestCancel(CommandModel):
    type: Literal["request_cancel"] = "request_cancel"


class Confirm(CommandModel):
    type: Literal["confirm"] = "confirm"
    choice: Optional[Literal["save", "discard", "cancel"]] = None


class CloseConfirm(CommandModel):
    type: Literal["close_confirm"] = "close_confirm"


class StartRowEdit(CommandModel):
    type: Literal["start_row_edit"] = "start_row_edit"
    appointment_id: RowId


class ChangeRowField(CommandModel):
    type: Literal["change_row_field"] = "change_row_field"
    field: str
    value: Any = None


class SaveRowEdit(CommandModel):
    type: Literal["save_row_edit"] = "save_row_edit"


class CancelRowEdit(CommandModel):
    type: Literal["cancel_row_edit"] = "cancel_row_edit"


class RequestDeleteAppointment(CommandModel):
    type: Literal["request_delete_appointment"] = "request_delete_appointment"
    appointment_id: RowId


class SetSearch(CommandModel):
    type: Literal["set_search"] = "set_search"
    term: str = ""


class Sort(CommandModel):
    type: Literal["sort"] = "sort"
    field: Optional[str] = None


class Select(CommandModel):
    type: Literal["select"] = "select"
    appointment_id: RowId


class SelectAll(CommandModel):
    type: Literal["select_all"] = "select_all"


class DismissMessage(CommandModel):
    type: Literal["dismiss_message"] = "dismiss_message"


Command = Annotated[
    Union[
        ToggleEditMode, ToggleDragMode, ToggleDeleteColumnMode, Reorder,
        StartRename, RenameHeader, AbortRename, AddColumn, StageDelete,
        Save, Cancel, RequestSave, RequestCancel, Confirm, CloseConfirm,
        StartRowEdit, ChangeRowField, SaveRowEdit, CancelRowEdit,
        RequestDeleteAppointment, SetSearch, Sort, Select, SelectAll, DismissMessage,
    ],
    Field(discriminator="type"),
]

command_adapter = TypeAdapter(Command)


def parse_command(data: Any) -> CommandModel:
    """Validate a JSON command body"""
    try:
        return command_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, "Invalid command")


class Effect(BaseModel):
    """Side effect requested by the reducer"""

    kind: Literal["save_table", "save_row", "delete_appointment"]
    appointment_id: Optional[RowId] = None


Result = Tuple[TableState, List[Effect]]


def array_move(items: Sequence[Any], old_index: int, new_index: int) -> List[Any]:
    """Remove the item at old_index and insert it at new_index"""
    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def _header_at(state: TableState, index: int) -> ColumnDescriptor:
    if index < 0 or index >= len(state.headers):
        raise ValidationError.for_field("index", f"Column index {index} is out of range")
    return state.headers[index]


def _leave_edit_mode(state: TableState) -> TableState:
    return state.model_copy(update={
        "edit_mode": False,
        "drag_mode": False,
        "delete_column_mode": False,
        "editing_header_index": None,
    })


def cancel_changes(state: TableState) -> TableState:
    """Restore the draft from the persisted configuration and leave edit mode"""
    restored = state.model_copy(update={
        "headers": [header.model_copy() for header in state.original_headers],
        "columns_to_delete": [],
        "confirm": None,
        "success": "Changes cancelled successfully!",
        "success_expires_at": None,
    })
    return _leave_edit_mode(restored)


def _toggle_edit_mode(state: TableState, command: ToggleEditMode) -> Result:
    # Table structure is locked while a row is being edited
    if state.editing_row_id is not None:
        return state, []

    if state.edit_mode:
        if state.diverges():
            return state.model_copy(update={"confirm": ConfirmPrompt(type="exit", message=EXIT_PROMPT)}), []
        return _leave_edit_mode(state), []

    return state.model_copy(update={"edit_mode": True, "editing_header_index": None}), []


def _toggle_drag_mode(state: TableState, command: ToggleDragMode) -> Result:
    if not state.edit_mode:
        return state, []
    return state.model_copy(update={"drag_mode": not state.drag_mode}), []


def _toggle_delete_column_mode(state: TableState, command: ToggleDeleteColumnMode) -> Result:
    if not state.edit_mode:
        return state, []
    return state.model_copy(update={"delete_column_mode": not state.delete_column_mode}), []


def _reorder(state: TableState, command: Reorder) -> Result:
    if not (state.edit_mode and state.drag_mode):
        return state, []
    if command.over_id is None or command.active_id == command.over_id:
        return state, []

    ids = [header.id for header in state.headers]
    if command.active_id not in ids or command.over_id not in ids:
        return state, []

    old_index = ids.index(command.active_id)
    new_index = ids.index(command.over_id)

    staged_ids = {state.headers[index].id for index in state.columns_to_delete}
    for header in (state.headers[old_index], state.headers[new_index]):
        if header.is_pinned or header.id in staged_ids:
            return state, []

    headers = array_move(state.headers, old_index, new_index)
    # Staging follows the columns, not the positions
    columns_to_delete = [index for index, header in enumerate(headers) if header.id in staged_ids]

    return state.model_copy(update={
        "headers": headers,
        "columns_to_delete": columns_to_delete,
        "editing_header_index": None,
    }), []


def _start_rename(state: TableState, command: StartRename) -> Result:
    header = _header_at(state, command.index)
    if not state.edit_mode or not header.editable or command.index in state.columns_to_delete:
        return state, []
    return state.model_copy(update={"editing_header_index": command.index}), []


def _rename_header(state: TableState, command: RenameHeader) -> Result:
    header = _header_at(state, command.index)
    # Only the column opened by start_rename (or add_column) takes a label
    if not state.edit_mode or not header.editable or state.editing_header_index != command.index:
        return state, []

    label = command.label.strip()
    if not label:
        return state.model_copy(update={"editing_header_index": None}), []

    headers = list(state.headers)
    headers[command.index] = header.model_copy(update={"label": label})
    return state.model_copy(update={"headers": headers, "editing_header_index": None}), []


def _abort_rename(state: TableState, command: AbortRename) -> Result:
    return state.model_copy(update={"editing_header_index": None}), []


def _add_column(state: TableState, command: AddColumn) -> Result:
    if not state.edit_mode:
        return state, []

    ids = {header.id for header in state.headers}
    stamp = command.timestamp
    new_id = f"custom_{stamp}"
    while new_id in ids:
        stamp += 1
        new_id = f"custom_{stamp}"

    new_header = ColumnDescriptor(
        id=new_id,
        label=NEW_COLUMN_LABEL,
        field=next_custom_field(header.field for header in state.headers),
        editable=True,
    )

    fields = [header.field for header in state.headers]
    if STATUS_FIELD in fields:
        insert_index = fields.index(STATUS_FIELD)
    else:
        insert_index = max(len(fields) - 2, 0)

    headers = list(state.headers)
    headers.insert(insert_index, new_header)
    columns_to_delete = [index + 1 if index >= insert_index else index for index in state.columns_to_delete]

    return state.model_copy(update={
        "headers": headers,
        "columns_to_delete": columns_to_delete,
        "editing_header_index": insert_index,
    }), []


def _stage_delete(state: TableState, command: StageDelete) -> Result:
    if not state.delete_column_mode:
        return state, []

    header = _header_at(state, command.index)
    if header.is_protected or header.deleted:
        return state, []

    if command.index in state.columns_to_delete:
        columns_to_delete = [index for index in state.columns_to_delete if index != command.index]
    else:
        columns_to_delete = state.columns_to_delete + [command.index]

    update: Dict[str, Any] = {"columns_to_delete": columns_to_delete}
    if state.editing_header_index == command.index:
        update["editing_header_index"] = None
    return state.model_copy(update=update), []


def _save(state: TableState, command: Save) -> Result:
    return state, [Effect(kind="save_table")]


def _cancel(state: TableState, command: Cancel) -> Result:
    return cancel_changes(state), []


def _request_save(state: TableState, command: RequestSave) -> Result:
    if not state.diverges():
        return state, []
    return state.model_copy(update={"confirm": ConfirmPrompt(type="save", message=SAVE_PROMPT)}), []


def _request_cancel(state: TableState, command: RequestCancel) -> Result:
    if not state.diverges():
        return state, []
    return state.model_copy(update={"confirm": ConfirmPrompt(type="cancel", message=CANCEL_PROMPT)}), []


def _confirm(state: TableState, command: Confirm) -> Result:
    prompt = state.confirm
    if prompt is None:
        return state, []

    closed = state.model_copy(update={"confirm": None})
    if command.choice == "cancel":
        return closed, []

    if prompt.type == "delete":
        return closed, [Effect(kind="delete_appointment", appointment_id=prompt.payload.get("id"))]
    if prompt.type == "save":
        return closed, [Effect(kind="save_table")]
    if prompt.type == "cancel":
        return cancel_changes(closed), []

    # Exit prompt: save or discard, anything else keeps editing
    if command.choice == "save":
        return closed, [Effect(kind="save_table")]
    if command.choice == "discard":
        return cancel_changes(closed), []
    return closed, []


def _close_confirm(state: TableState, command: CloseConfirm) -> Result:
    return state.model_copy(update={"confirm": None}), []


def _find_row(state: TableState, appointment_id: RowId) -> Optional[Dict[str, Any]]:
    return next((row for row in state.appointments if row.get("id") == appointment_id), None)


def _start_row_edit(state: TableState, command: StartRowEdit) -> Result:
    if state.edit_mode:
        return state, []

    row = _find_row(state, command.appointment_id)
    if row is None:
        return state.model_copy(update={"error": "Appointment not found"}), []

    editing_data = dict(row)
    for header in state.headers:
        if is_custom_field(header.field) and header.field not in editing_data:
            editing_data[header.field] = ""

    return state.model_copy(update={
        "editing_row_id": command.appointment_id,
        "editing_data": editing_data,
    }), []


def _change_row_field(state: TableState, command: ChangeRowField) -> Result:
    if state.editing_row_id is None:
        return state, []
    editing_data = dict(state.editing_data)
    editing_data[command.field] = command.value
    return state.model_copy(update={"editing_data": editing_data}), []


def _save_row_edit(state: TableState, command: SaveRowEdit) -> Result:
    if state.editing_row_id is None:
        return state, []
    return state, [Effect(kind="save_row", appointment_id=state.editing_row_id)]


def _cancel_row_edit(state: TableState, command: CancelRowEdit) -> Result:
    return state.model_copy(update={"editing_row_id": None, "editing_data": {}}), []


def _request_delete_appointment(state: TableState, command: RequestDeleteAppointment) -> Result:
    if state.edit_mode:
        return state, []
    prompt = ConfirmPrompt(type="delete", message=DELETE_PROMPT, payload={"id": command.appointment_id})
    return state.model_copy(update={"confirm": prompt}), []


def _set_search(state: TableState, command: SetSearch) -> Result:
    return state.model_copy(update={"search_term": command.term}), []


def _sort(state: TableState, command: Sort) -> Result:
    if not command.field or command.field == ACTIONS_FIELD:
        return state, []
    if state.sort_field == command.field:
        direction = SORT_DESC if state.sort_direction == SORT_ASC else SORT_ASC
        return state.model_copy(update={"sort_direction": direction}), []
    return state.model_copy(update={"sort_field": command.field, "sort_direction": SORT_ASC}), []


def _select(state: TableState, command: Select) -> Result:
    if command.appointment_id in state.selected:
        selected = [row_id for row_id in state.selected if row_id != command.appointment_id]
    else:
        selected = state.selected + [command.appointment_id]
    return state.model_copy(update={"selected": selected}), []


def _select_all(state: TableState, command: SelectAll) -> Result:
    rows = state.visible_rows()
    if len(state.selected) == len(rows):
        return state.model_copy(update={"selected": []}), []
    return state.model_copy(update={"selected": [row.get("id") for row in rows]}), []


def _dismiss_message(state: TableState, command: DismissMessage) -> Result:
    return state.model_copy(update={"error": None, "success": None, "success_expires_at": None}), []


_HANDLERS: Dict[str, Callable[[TableState, Any], Result]] = {
    "toggle_edit_mode": _toggle_edit_mode,
    "toggle_drag_mode": _toggle_drag_mode,
    "toggle_delete_column_mode": _toggle_delete_column_mode,
    "reorder": _reorder,
    "start_rename": _start_rename,
    "rename_header": _rename_header,
    "abort_rename": _abort_rename,
    "add_column": _add_column,
    "stage_delete": _stage_delete,
    "save": _save,
    "cancel": _cancel,
    "request_save": _request_save,
    "request_cancel": _request_cancel,
    "confirm": _confirm,
    "close_confirm": _close_confirm,
    "start_row_edit": _start_row_edit,
    "change_row_field": _change_row_field,
    "save_row_edit": _save_row_edit,
    "cancel_row_edit": _cancel_row_edit,
    "request_delete_appointment": _request_delete_appointment,
    "set_search": _set_search,
    "sort": _sort,
    "select": _select,
    "select_all": _select_all,
    "dismiss_message": _dismiss_message,
}


def settle(state: TableState) -> TableState:
    """Recompute derived fields after any change"""
    return state.model_copy(update={
        "has_unsaved_changes": state.diverges(),
        "selected": intersect_selection(state.selected, state.visible_rows()),
    })


def dispatch(state: TableState, command: CommandModel) -> Result:
    """Apply one command; returns the next state and the effects to run"""
    handler = _HANDLERS.get(command.type)
    if handler is None:
        raise ValidationError.for_field("type", f"Unknown command '{command.type}'")
    next_state, effects = handler(state, command)
    return settle(next_state), effects


def row_update_payload(editing_data: Dict[str, Any], headers: Sequence[ColumnDescriptor]) -> Dict[str, Any]:
    """
    Fields sent when an inline row edit is saved: only those backed by a
    column, custom fields defaulted to "", and a datetime-local value in the
    booking date column split into date and time.
    """
    fields = [header.field for header in headers if header.field != ACTIONS_FIELD]

    payload: Dict[str, Any] = {}
    for field in fields:
        if field in editing_data:
            payload[field] = editing_data[field]
        elif is_custom_field(field):
            payload[field] = ""

    booking = payload.get(BOOKING_DATE_FIELD)
    if isinstance(booking, str) and "T" in booking:
        day, _, clock = booking.partition("T")
        payload[BOOKING_DATE_FIELD] = day
        if clock:
            payload["bookingTime"] = clock[:5]

    return payload
