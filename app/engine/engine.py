# app/engine/engine.py
import logging
import time
from typing import Any, Callable, Dict, Optional, Union

from app.core.config import settings
from app.core.exceptions import PartialFailure
from app.engine import commands
from app.engine.commands import CommandModel, Effect, parse_command, row_update_payload, settle
from app.engine.fields import flatten_custom_fields
from app.engine.headers import dump_headers
from app.engine.migration import migrate
from app.engine.rows import format_booking_datetime
from app.engine.state import RowId, TableState
from app.engine.store import TableStore

# Set up logging
logger = logging.getLogger(__name__)


class TableConfigEngine:
    """
    One admin table session.

    Holds the view state, applies commands through the pure reducer and
    carries out the resulting effects against a TableStore. Failures are
    caught at each user action, logged and shown as a banner; nothing is
    retried automatically.
    """

    def __init__(
            self,
            store: TableStore,
            message_ttl: Optional[float] = None,
            clock: Callable[[], float] = time.monotonic
    ):
        self.store = store
        self.message_ttl = settings.FLASH_MESSAGE_SECONDS if message_ttl is None else message_ttl
        self.clock = clock
        self.state = TableState()

    def _set(self, **update: Any) -> None:
        self.state = settle(self.state.model_copy(update=update))

    def _flash(self, message: str) -> None:
        self._set(success=message, success_expires_at=self.clock() + self.message_ttl)

    def _fail(self, message: str) -> None:
        self._set(error=message)

    async def load(self) -> TableState:
        """Read the stored configuration, migrate legacy shapes, then fetch rows"""
        try:
            document = await self.store.get_table_config()
            headers, migrated = migrate(document.get("headers") or [])
        except Exception as e:
            logger.error(f"Error loading table configuration, keeping defaults: {str(e)}")
            headers, migrated = [], False

        if headers:
            self._set(headers=headers, original_headers=[header.model_copy() for header in headers])

        if migrated:
            try:
                await self.store.save_table_config(dump_headers(headers))
                logger.info("Migrated legacy date/time columns to a single booking date column")
            except Exception as e:
                logger.error(f"Error persisting migrated table configuration: {str(e)}")

        await self.refresh()
        return self.state

    async def refresh(self) -> bool:
        """Reload appointments from the store"""
        try:
            records = await self.store.get_all_appointments()
        except Exception as e:
            logger.error(f"Error fetching appointments: {str(e)}")
            self._fail("Failed to fetch appointments")
            return False

        self._set(appointments=[flatten_custom_fields(record) for record in records], error=None)
        return True

    async def dispatch(self, command: Union[CommandModel, Dict[str, Any]]) -> TableState:
        """Apply a command and run whatever effects it asks for"""
        if isinstance(command, dict):
            command = parse_command(command)

        self.state, effects = commands.dispatch(self.state, command)

        # Messages set by the reducer get their expiry here
        if self.state.success and self.state.success_expires_at is None:
            self._flash(self.state.success)

        for effect in effects:
            await self._run(effect)
        return self.state

    async def _run(self, effect: Effect) -> None:
        if effect.kind == "save_table":
            await self.save()
        elif effect.kind == "save_row":
            await self.save_row_edit()
        elif effect.kind == "delete_appointment":
            await self.delete_appointment(effect.appointment_id)

    async def save(self) -> bool:
        """
        Persist the draft minus staged columns, then remove the data of the
        deleted columns from every appointment.

        A failed cleanup does not undo the save; the rows are reloaded either
        way so the table reflects what the store holds.
        """
        state = self.state
        removed = state.staged_fields()
        committed = state.committed_headers()

        try:
            await self.store.save_table_config(dump_headers(committed))
        except Exception as e:
            logger.error(f"Error saving table configuration: {str(e)}")
            self._fail("Failed to save table configuration")
            return False

        if removed:
            try:
                await self.store.cleanup_columns(removed)
            except Exception as e:
                failure = PartialFailure(f"Column data cleanup failed for {removed}")
                logger.error(f"{failure.message}: {str(e)}")

        self._set(
            headers=committed,
            original_headers=[header.model_copy() for header in committed],
            columns_to_delete=[],
            edit_mode=False,
            drag_mode=False,
            delete_column_mode=False,
            editing_header_index=None,
            confirm=None,
            error=None,
        )
        self._flash("Table configuration saved successfully!")
        logger.info(f"Saved table configuration with {len(committed)} columns")

        if removed:
            await self.refresh()
        return True

    async def cancel(self) -> TableState:
        return await self.dispatch(commands.Cancel())

    async def save_row_edit(self) -> bool:
        """Send the inline edit draft; on failure the draft stays open for a retry"""
        state = self.state
        if state.editing_row_id is None:
            return False

        payload = row_update_payload(state.editing_data, state.headers)
        try:
            await self.store.update_appointment(state.editing_row_id, payload)
        except Exception as e:
            logger.error(f"Error updating appointment {state.editing_row_id}: {str(e)}")
            self._fail("Failed to update appointment")
            return False

        self._set(editing_row_id=None, editing_data={})
        await self.refresh()
        self._flash("Appointment updated successfully!")
        return True

    async def delete_appointment(self, appointment_id: RowId) -> bool:
        try:
            await self.store.delete_appointment(appointment_id)
        except Exception as e:
            logger.error(f"Error deleting appointment {appointment_id}: {str(e)}")
            self._fail("Failed to delete appointment")
            return False

        self._flash("Appointment deleted successfully")
        await self.refresh()
        return True

    def expire_messages(self) -> None:
        expires_at = self.state.success_expires_at
        if self.state.success and expires_at is not None and self.clock() >= expires_at:
            self._set(success=None, success_expires_at=None)

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready view of the session including the visible rows"""
        self.expire_messages()
        data = self.state.model_dump(mode="json", by_alias=True)
        data["mode"] = self.state.mode
        data["rows"] = [
            dict(row, bookingDateLabel=format_booking_datetime(row.get("bookingDate"), row.get("bookingTime")))
            for row in self.state.visible_rows()
        ]
        return data
