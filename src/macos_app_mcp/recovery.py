"""
Recovery of deleted or modified items from the operation log.

A recovery request must echo the operation id back as confirmation. The
confirmation is checked before the log is read, so a caller who cannot
produce the id learns nothing about the logged snapshot.

Recovery prefers the application's own "Recently Deleted" mechanism and only
falls back to re-creating the item from its logged snapshot. Calendar events
have no trash and are always re-created. Every successful recovery appends a
synthetic ``create`` entry to the log.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from .applescript import AppleScriptRunner, quote
from .calendars import CalendarBackend
from .notes import NotesBackend
from .oplog import (
    Application,
    OperationKind,
    OperationLogEntry,
    OperationLogStore,
    current_user,
)
from .reminders import RemindersBackend, normalize_due

logger = logging.getLogger(__name__)

NATIVE_SUCCESS = "native_success"
RECENTLY_DELETED = "Recently Deleted"
RECOVERY_ACTOR_SUFFIX = " (via recovery)"


@dataclass
class RecoveryOutcome:
    success: bool
    message: str
    new_operation_id: Optional[str] = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.new_operation_id:
            result["newOperationId"] = self.new_operation_id
        return result


@dataclass
class RecoveryDetails:
    entry: OperationLogEntry
    can_recover: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"operation": self.entry.to_dict(), "canRecover": self.can_recover}
        if self.reason:
            result["reason"] = self.reason
        return result


def notes_restore_script(title: str, folder: str) -> str:
    """Move a note out of any account's Recently Deleted folder into ``folder``."""
    return f"""
tell application "Notes"
  try
    set deletedNote to missing value
    set targetAccount to missing value
    repeat with acc in accounts
      try
        set deletedFolder to folder {quote(RECENTLY_DELETED)} of acc
        set deletedNote to (first note of deletedFolder whose name is {quote(title)})
        set targetAccount to acc
        exit repeat
      end try
    end repeat
    if deletedNote is not missing value then
      set targetF to folder {quote(folder)} of targetAccount
      move deletedNote to targetF
      return "{NATIVE_SUCCESS}"
    else
      return "no_note_found"
    end if
  on error err
    return "error: " & err
  end try
end tell
"""


def reminders_restore_script(text: str, list_name: str) -> str:
    """Un-complete a matching reminder, or move it back from Recently Deleted."""
    return f"""
tell application "Reminders"
  try
    set targetList to list {quote(list_name)}
    set matchingReminders to (every reminder of targetList whose name is {quote(text)})
    if (count of matchingReminders) > 0 then
      set theReminder to item 1 of matchingReminders
      set completed of theReminder to false
      return "{NATIVE_SUCCESS}"
    end if
    repeat with l in lists
      if name of l is {quote(RECENTLY_DELETED)} then
        set matching to (every reminder of l whose name is {quote(text)})
        if (count of matching) > 0 then
          set theReminder to item 1 of matching
          move theReminder to targetList
          set completed of theReminder to false
          return "{NATIVE_SUCCESS}"
        end if
      end if
    end repeat
    return "no_match"
  on error err
    return "error: " & err
  end try
end tell
"""


class RecoveryManager:
    """
    Lists recoverable operations and restores them.

    Holds no state of its own; everything is read from the operation log on
    each call.
    """

    DEFAULT_LIST_LIMIT = 50
    STATS_WINDOW = 1000

    def __init__(
        self,
        store: OperationLogStore,
        runner: AppleScriptRunner,
        notes: NotesBackend,
        reminders: RemindersBackend,
        calendar: CalendarBackend,
    ):
        self.store = store
        self.runner = runner
        self.notes = notes
        self.reminders = reminders
        self.calendar = calendar

    async def list_recoverable(
        self,
        app: Union[Application, str, None] = None,
        kind: Union[OperationKind, str, None] = None,
        limit: Optional[int] = None,
    ) -> list[OperationLogEntry]:
        """Newest operations that carry a ``before`` snapshot."""
        entries = await self.store.query(kind=kind, app=app, limit=limit or self.DEFAULT_LIST_LIMIT)
        return [e for e in entries if e.has_before]

    async def describe(self, operation_id: str) -> Optional[RecoveryDetails]:
        """Look up an operation and decide whether it can be recovered."""
        entry = await self.store.get_by_id(operation_id)
        if entry is None:
            return None

        if not entry.before:
            return RecoveryDetails(entry, False, "No backup data available for this operation")

        if entry.operation == OperationKind.CREATE.value:
            return RecoveryDetails(entry, False, "Cannot recover create operations (item still exists)")

        return RecoveryDetails(entry, True)

    async def recover(self, operation_id: str, confirm_id: str) -> RecoveryOutcome:
        """
        Restore the item affected by a logged operation.

        Args:
            operation_id: Id (or unique 8+ character prefix) of the operation
            confirm_id: Must equal ``operation_id`` exactly

        Returns:
            The outcome; failures are reported in it rather than raised
        """
        if operation_id != confirm_id:
            return RecoveryOutcome(
                False,
                f'Recovery cancelled: Confirmation ID "{confirm_id}" does not match "{operation_id}". '
                "To recover, you must provide the exact operation ID as confirmation.",
            )

        details = await self.describe(operation_id)
        if details is None:
            return RecoveryOutcome(False, f"Operation {operation_id} not found")
        if not details.can_recover:
            return RecoveryOutcome(False, f"Cannot recover: {details.reason}")

        entry = details.entry
        handlers = {
            Application.NOTES.value: self._recover_note,
            Application.REMINDERS.value: self._recover_reminder,
            Application.CALENDAR.value: self._recover_calendar_event,
        }
        handler = handlers.get(entry.app)
        if handler is None:
            return RecoveryOutcome(False, f"Recovery not supported for app: {entry.app}")

        try:
            result = await handler(entry)
        except Exception as e:
            logger.error("Recovery of operation %s failed: %s", entry.id, e)
            return RecoveryOutcome(False, f"Recovery failed: {e}")

        new_id = await self._log_restoration(entry)
        return RecoveryOutcome(True, f"Successfully recovered: {result}", new_id or None)

    async def _log_restoration(self, entry: OperationLogEntry) -> str:
        metadata: dict[str, Any] = {
            "confirmed": True,
            "user": (entry.user or current_user() or "unknown") + RECOVERY_ACTOR_SUFFIX,
        }
        if entry.folder:
            metadata["folder"] = entry.folder
        return await self.store.append(
            OperationKind.CREATE,
            entry.app,
            entry.target,
            {"after": entry.before},
            metadata,
        )

    async def _try_native(self, script: str, app_name: str, operation_id: str) -> bool:
        try:
            result = await self.runner.execute(script, app_name)
        except Exception as e:
            logger.warning("Native recovery of %s failed, falling back: %s", operation_id, e)
            return False
        if result != NATIVE_SUCCESS:
            logger.info("Native recovery of %s found nothing (%s), falling back", operation_id, result)
            return False
        return True

    async def _recover_note(self, entry: OperationLogEntry) -> str:
        title = entry.target.get("title")
        content = entry.before
        folder = entry.folder or "Notes"

        if not title:
            raise ValueError("Missing note title for recovery")

        if await self._try_native(notes_restore_script(title, folder), NotesBackend.APP_NAME, entry.id):
            return f'Note "{title}" recovered natively by moving back to "{folder}"'

        if not content or not isinstance(content, str):
            raise ValueError("Missing note content for fallback recovery")
        return await self.notes.create(title, content, folder, skip_log=True)

    async def _recover_reminder(self, entry: OperationLogEntry) -> str:
        text = entry.target.get("text")
        before = entry.before
        list_name = entry.folder or "Reminders"

        if not text:
            raise ValueError("Missing reminder text for recovery")

        if await self._try_native(reminders_restore_script(text, list_name), RemindersBackend.APP_NAME, entry.id):
            return f'Reminder "{text}" recovered natively in list "{list_name}"'

        due = None
        if isinstance(before, dict):
            due = normalize_due(before.get("due") or before.get("dueDate"))
        return await self.reminders.add(text, due, list_name, skip_log=True)

    async def _recover_calendar_event(self, entry: OperationLogEntry) -> str:
        summary = entry.target.get("summary")
        before = entry.before if isinstance(entry.before, dict) else {}

        if not summary or not before.get("startDate") or not before.get("endDate"):
            raise ValueError("Missing calendar event data for recovery")

        return await self.calendar.create_event(
            summary,
            before["startDate"],
            before["endDate"],
            before.get("calendar"),
            before.get("location"),
            skip_log=True,
        )

    async def stats(self) -> dict:
        """Counts over the most recent STATS_WINDOW operations."""
        entries = await self.store.query(limit=self.STATS_WINDOW)
        recoverable = [e for e in entries if e.has_before]

        by_app: dict[str, int] = {}
        by_operation: dict[str, int] = {}
        for entry in recoverable:
            by_app[entry.app] = by_app.get(entry.app, 0) + 1
            by_operation[entry.operation] = by_operation.get(entry.operation, 0) + 1

        return {
            "totalOperations": len(entries),
            "recoverableOperations": len(recoverable),
            "byApp": by_app,
            "byOperation": by_operation,
        }
