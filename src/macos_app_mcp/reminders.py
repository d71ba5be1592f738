"""
Reminders.app integration.

Reminders are addressed by their text within a list. Due dates are passed
as strings and converted with :func:`macos_app_mcp.dates.applescript_date`.
"""

import logging
from typing import Optional

from .applescript import AppleScriptRunner, quote
from .config import Settings
from .dates import applescript_date
from .errors import ConfirmationMismatchError, OperationDisabledError
from .formatters import format_folder_tree
from .oplog import Application, OperationKind, OperationLogStore

logger = logging.getLogger(__name__)

MISSING_VALUE = "missing value"


def normalize_due(value: Optional[str]) -> Optional[str]:
    """Treat AppleScript's "missing value" and blanks as no due date."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == MISSING_VALUE:
        return None
    return text


class RemindersBackend:
    """Query and mutate reminders in Reminders.app."""

    APP_NAME = "Reminders"

    def __init__(self, runner: AppleScriptRunner, store: OperationLogStore, settings: Settings):
        self.runner = runner
        self.store = store
        self.settings = settings

    @staticmethod
    def _list_clause(list_name: Optional[str]) -> str:
        return f" of list {quote(list_name)}" if list_name else ""

    async def list_reminders(self, list_name: Optional[str] = None) -> list[str]:
        """Names of incomplete reminders, optionally limited to one list."""
        result = await self.runner.execute(
            f'tell application "Reminders" to get name of every reminder'
            f"{self._list_clause(list_name)} whose completed is false",
            self.APP_NAME,
        )
        return self.runner.parse_list(result)

    async def ensure_list(self, list_name: str) -> None:
        """Create the list if it doesn't exist yet."""
        result = await self.runner.execute(
            f'tell application "Reminders"\n'
            f"  try\n"
            f"    set targetList to list {quote(list_name)}\n"
            f'    return "exists"\n'
            f"  on error\n"
            f'    return "not found"\n'
            f"  end try\n"
            f"end tell",
            self.APP_NAME,
        )
        if result.strip() == "exists":
            return

        logger.info("Creating reminders list %r", list_name)
        await self.runner.execute(
            f'tell application "Reminders"\n'
            f"  make new list with properties {{name:{quote(list_name)}}}\n"
            f"end tell",
            self.APP_NAME,
        )

    async def add(
        self,
        text: str,
        due: Optional[str] = None,
        list_name: Optional[str] = None,
        *,
        skip_log: bool = False,
    ) -> str:
        """
        Add a reminder.

        Args:
            text: Reminder text
            due: Optional due date ("2024-12-31 10:00", "today", ...)
            list_name: Target list (defaults to the configured list, created if missing)
            skip_log: Don't write an operation log entry
        """
        target_list = list_name or self.settings.default_reminders_list

        if target_list:
            await self.ensure_list(target_list)
        location = f" at end of list {quote(target_list)}" if target_list else ""

        if due:
            script = (
                f'tell application "Reminders"\n'
                f"{applescript_date(due, 'dueDate')}\n"
                f"  make new reminder{location} with properties {{name:{quote(text)}, due date:dueDate}}\n"
                f"end tell"
            )
        else:
            script = (
                f'tell application "Reminders"\n'
                f"  make new reminder{location} with properties {{name:{quote(text)}}}\n"
                f"end tell"
            )
        await self.runner.execute(script, self.APP_NAME)

        if not skip_log:
            await self.store.append(
                OperationKind.CREATE,
                Application.REMINDERS,
                {"text": text},
                {"after": {"text": text, "due": due}},
                {"folder": target_list},
            )

        return f'Reminder "{text}" added successfully to list "{target_list}"'

    async def complete(self, text: str, list_name: Optional[str] = None) -> str:
        """Mark the first incomplete reminder with this text as done."""
        await self.runner.execute(
            f'tell application "Reminders"\n'
            f"  set theReminder to first reminder{self._list_clause(list_name)} "
            f"whose name is {quote(text)} and completed is false\n"
            f"  set completed of theReminder to true\n"
            f"end tell",
            self.APP_NAME,
        )

        await self.store.append(
            OperationKind.UPDATE,
            Application.REMINDERS,
            {"text": text},
            {"before": {"completed": False}, "after": {"completed": True}},
            {"folder": list_name},
        )

        return f'Reminder "{text}" marked as completed'

    async def update(
        self,
        old_text: str,
        new_text: Optional[str] = None,
        new_due: Optional[str] = None,
        list_name: Optional[str] = None,
    ) -> str:
        """Change a reminder's text and/or due date."""
        if not self.settings.allow_update:
            raise OperationDisabledError("Update operations are disabled. Set MCP_ALLOW_UPDATE=true to enable.")

        find = (
            f"  set theReminder to first reminder{self._list_clause(list_name)} "
            f"whose name is {quote(old_text)} and completed is false\n"
        )

        old_due = normalize_due(await self.runner.execute(
            f'tell application "Reminders"\n{find}  return due date of theReminder as string\nend tell',
            self.APP_NAME,
        ))

        changes = []
        if new_text:
            changes.append(f"  set name of theReminder to {quote(new_text)}\n")
        setup = ""
        if new_due:
            setup = applescript_date(new_due, "newDueDate") + "\n"
            changes.append("  set due date of theReminder to newDueDate\n")

        if changes:
            await self.runner.execute(
                f'tell application "Reminders"\n{setup}{find}{"".join(changes)}end tell',
                self.APP_NAME,
            )

        await self.store.append(
            OperationKind.UPDATE,
            Application.REMINDERS,
            {"text": old_text},
            {
                "before": {"text": old_text, "due": old_due},
                "after": {"text": new_text or old_text, "due": new_due or old_due},
            },
            {"folder": list_name},
        )

        return f'Reminder "{old_text}" updated successfully'

    async def delete(self, text: str, confirm_text: str, list_name: Optional[str] = None) -> str:
        """Delete a reminder. ``confirm_text`` must repeat the text exactly."""
        if not self.settings.allow_delete:
            raise OperationDisabledError("Delete operations are disabled. Set MCP_ALLOW_DELETE=true to enable.")

        if text != confirm_text:
            raise ConfirmationMismatchError(
                f'Deletion cancelled: Confirmation text "{confirm_text}" does not match "{text}".'
            )

        list_clause = self._list_clause(list_name)

        actual_list = list_name
        if not actual_list:
            try:
                actual_list = (await self.runner.execute(
                    f'tell application "Reminders"\n'
                    f"  set theReminder to first reminder whose name is {quote(text)}\n"
                    f"  return name of container of theReminder\n"
                    f"end tell",
                    self.APP_NAME,
                )).strip() or None
            except Exception as e:
                logger.debug("Could not resolve list of reminder %r: %s", text, e)

        old_due = None
        try:
            old_due = normalize_due(await self.runner.execute(
                f'tell application "Reminders"\n'
                f"  set theReminder to first reminder{list_clause} whose name is {quote(text)}\n"
                f"  return due date of theReminder as string\n"
                f"end tell",
                self.APP_NAME,
            ))
        except Exception as e:
            logger.debug("Could not read due date of reminder %r: %s", text, e)

        await self.runner.execute(
            f'tell application "Reminders" to delete (first reminder{list_clause} whose name is {quote(text)})',
            self.APP_NAME,
        )

        await self.store.append(
            OperationKind.DELETE,
            Application.REMINDERS,
            {"text": text},
            {"before": {"text": text, "due": old_due}, "after": None},
            {"confirmed": True, "folder": actual_list},
        )

        return f'Reminder "{text}" deleted successfully.'

    async def list_tree(self) -> str:
        """Every list with its incomplete reminders, rendered as a tree."""
        script = """
tell application "Reminders"
  set treeList to {}
  repeat with aList in every list
    set listName to name of aList
    set reminderNames to name of every reminder of aList whose completed is false
    if (count of reminderNames) is 0 then
      copy listName & "/" to end of treeList
    else
      repeat with rName in reminderNames
        copy listName & "/" & rName to end of treeList
      end repeat
    end if
  end repeat
  return treeList
end tell
"""
        result = await self.runner.execute(script, self.APP_NAME)
        return format_folder_tree(self.runner.parse_list(result))

    async def list_lists(self) -> list[str]:
        result = await self.runner.execute('tell application "Reminders" to get name of every list', self.APP_NAME)
        return self.runner.parse_list(result)
