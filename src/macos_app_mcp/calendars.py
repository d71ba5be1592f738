"""
Calendar.app integration.

Deleted events have no recoverable trash, so deletions log a full snapshot
(start, end, calendar, location) that is sufficient to re-create the event.
"""

from typing import Optional

from .applescript import AppleScriptRunner, quote
from .config import Settings
from .dates import applescript_date
from .errors import ConfirmationMismatchError, OperationDisabledError
from .oplog import Application, OperationKind, OperationLogStore


class CalendarBackend:
    """Query and mutate events in Calendar.app."""

    APP_NAME = "Calendar"

    def __init__(self, runner: AppleScriptRunner, store: OperationLogStore, settings: Settings):
        self.runner = runner
        self.store = store
        self.settings = settings

    async def list_events(self, date: str = "today") -> list[str]:
        """
        List events starting on the given day across all calendars.

        Args:
            date: "today" or a date such as "2024-01-31"

        Returns:
            "Summary (start date)" strings
        """
        result = await self.runner.execute(
            f'tell application "Calendar"\n'
            f"{applescript_date(date, 'theDate')}\n"
            f"  set time of theDate to 0\n"
            f"  set startOfDay to theDate\n"
            f"  set endOfDay to theDate + (24 * 60 * 60) - 1\n"
            f"  set eventList to {{}}\n"
            f"  repeat with theCalendar in calendars\n"
            f"    set theEvents to (every event of theCalendar whose start date is greater than or equal to "
            f"startOfDay and start date is less than or equal to endOfDay)\n"
            f"    repeat with theEvent in theEvents\n"
            f'      copy (summary of theEvent & " (" & (start date of theEvent as string) & ")") to end of eventList\n'
            f"    end repeat\n"
            f"  end repeat\n"
            f"  return eventList\n"
            f"end tell",
            self.APP_NAME,
        )
        return self.runner.parse_list(result)

    async def create_event(
        self,
        summary: str,
        start_date: str,
        end_date: str,
        calendar_name: Optional[str] = None,
        location: Optional[str] = None,
        *,
        skip_log: bool = False,
    ) -> str:
        """Create an event, in the default calendar unless one is named."""
        target_calendar = calendar_name or self.settings.default_calendar
        where = f"in calendar {quote(target_calendar)}" if target_calendar else "in default calendar"
        location_prop = f", location:{quote(location)}" if location else ""

        await self.runner.execute(
            f'tell application "Calendar"\n'
            f"{applescript_date(start_date, 'startD')}\n"
            f"{applescript_date(end_date, 'endD')}\n"
            f"  make new event {where} with properties "
            f"{{summary:{quote(summary)}, start date:startD, end date:endD{location_prop}}}\n"
            f"end tell",
            self.APP_NAME,
        )

        if not skip_log:
            await self.store.append(
                OperationKind.CREATE,
                Application.CALENDAR,
                {"summary": summary},
                {"after": {
                    "startDate": start_date,
                    "endDate": end_date,
                    "calendar": target_calendar,
                    "location": location,
                }},
                {"folder": target_calendar},
            )

        return f'Event "{summary}" created successfully for {start_date}'

    async def delete_event(self, summary: str, start_date: str, confirm_summary: str) -> str:
        """
        Delete events matching a summary and start date.

        Args:
            summary: Event summary
            start_date: Exact start date of the event
            confirm_summary: Must repeat ``summary`` exactly

        Raises:
            OperationDisabledError: Deletes are disabled in the configuration
            ConfirmationMismatchError: ``confirm_summary`` differs from ``summary``
        """
        if not self.settings.allow_delete:
            raise OperationDisabledError("Delete operations are disabled. Set MCP_ALLOW_DELETE=true to enable.")

        if summary != confirm_summary:
            raise ConfirmationMismatchError(
                f'Deletion cancelled: Confirmation summary "{confirm_summary}" does not match "{summary}". '
                "To delete, you must provide the exact event summary as confirmation."
            )

        date_setup = applescript_date(start_date, "targetDate")
        matching = (
            f"(every event of theCalendar whose summary is {quote(summary)} and start date is targetDate)"
        )

        details = await self.runner.execute(
            f'tell application "Calendar"\n'
            f"{date_setup}\n"
            f"  repeat with theCalendar in calendars\n"
            f"    set matchingEvents to {matching}\n"
            f"    if (count of matchingEvents) > 0 then\n"
            f"      set theEvent to first item of matchingEvents\n"
            f"      set theLocation to location of theEvent\n"
            f'      if theLocation is missing value then set theLocation to ""\n'
            f"      return summary of theEvent & linefeed & (start date of theEvent as string) & linefeed & "
            f"(end date of theEvent as string) & linefeed & name of theCalendar & linefeed & theLocation\n"
            f"    end if\n"
            f"  end repeat\n"
            f'  return ""\n'
            f"end tell",
            self.APP_NAME,
        )

        await self.runner.execute(
            f'tell application "Calendar"\n'
            f"{date_setup}\n"
            f"  repeat with theCalendar in calendars\n"
            f"    set matchingEvents to {matching}\n"
            f"    repeat with theEvent in matchingEvents\n"
            f"      delete theEvent\n"
            f"    end repeat\n"
            f"  end repeat\n"
            f"end tell",
            self.APP_NAME,
        )

        if details:
            # Localized dates contain commas, so fields come back one per line
            fields = [f.strip() for f in details.split("\n")] + [""] * 5
            _, start, end, calendar, location = fields[:5]
            await self.store.append(
                OperationKind.DELETE,
                Application.CALENDAR,
                {"summary": summary},
                {
                    "before": {
                        "startDate": start,
                        "endDate": end,
                        "calendar": calendar or None,
                        "location": None if location in ("", "missing value") else location,
                    },
                    "after": None,
                },
                {"confirmed": True, "folder": calendar or None},
            )

        return f'Event "{summary}" on {start_date} deleted successfully'

    async def list_calendars(self) -> list[str]:
        result = await self.runner.execute('tell application "Calendar" to get name of every calendar', self.APP_NAME)
        return self.runner.parse_list(result)
