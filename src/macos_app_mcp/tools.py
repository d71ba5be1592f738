"""MCP tool definitions exposed by the server."""

from mcp.types import Tool

APP_NAMES = ["notes", "reminders", "calendar", "contacts"]
RECOVERABLE_APPS = ["notes", "reminders", "calendar"]


def _schema(properties: dict, required: list[str] | None = None) -> dict:
    schema = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _string(description: str) -> dict:
    return {"type": "string", "description": description}


def _integer(description: str, default: int | None = None) -> dict:
    prop = {"type": "integer", "description": description}
    if default is not None:
        prop["default"] = default
    return prop


NOTES_TOOLS = [
    Tool(
        name="notes_query",
        description="Search or list notes from the macOS Notes app. Returns matching note titles.",
        inputSchema=_schema({
            "search": _string("Only return notes whose title contains this text"),
            "folder": _string("Folder path to search in, nested folders separated by '/' (e.g. 'Work/Projects')"),
        }),
    ),
    Tool(
        name="notes_get",
        description="Read note content as plain text (HTML stripped). Use maxLength to limit output for large notes.",
        inputSchema=_schema({
            "title": _string("Exact note title"),
            "maxLength": _integer("Truncate the content to this many characters"),
            "folder": _string("Folder path containing the note"),
        }, ["title"]),
    ),
    Tool(
        name="notes_create",
        description="Create a new note with title and content. Defaults to the configured notes folder.",
        inputSchema=_schema({
            "title": _string("Note title"),
            "content": _string("Note body"),
            "folder": _string("Folder path to create the note in"),
        }, ["title", "content"]),
    ),
    Tool(
        name="notes_update",
        description="Replace an existing note's content. The previous content is logged for recovery.",
        inputSchema=_schema({
            "title": _string("Exact note title"),
            "newContent": _string("New note body"),
            "folder": _string("Folder path containing the note"),
        }, ["title", "newContent"]),
    ),
    Tool(
        name="notes_delete",
        description="Delete a note (requires exact title confirmation for safety). The content is logged for recovery.",
        inputSchema=_schema({
            "title": _string("Exact note title"),
            "confirmTitle": _string("Repeat the exact title to confirm deletion"),
            "folder": _string("Folder path containing the note"),
        }, ["title", "confirmTitle"]),
    ),
    Tool(
        name="notes_list_folders",
        description="List all note folders as a tree.",
        inputSchema=_schema({}),
    ),
]

REMINDERS_TOOLS = [
    Tool(
        name="reminders_list",
        description="List incomplete reminders. Without a list name, shows every list as a tree.",
        inputSchema=_schema({
            "listName": _string("Only show reminders in this list"),
        }),
    ),
    Tool(
        name="reminders_add",
        description="Add a new reminder. Defaults to the configured reminders list, which is created if missing.",
        inputSchema=_schema({
            "text": _string("Reminder text"),
            "due": _string("Due date, e.g. '2026-01-31 09:00' or 'today'"),
            "listName": _string("List to add the reminder to"),
        }, ["text"]),
    ),
    Tool(
        name="reminders_complete",
        description="Mark a reminder as completed.",
        inputSchema=_schema({
            "text": _string("Exact reminder text"),
            "listName": _string("List containing the reminder"),
        }, ["text"]),
    ),
    Tool(
        name="reminders_update",
        description="Update a reminder's text or due date.",
        inputSchema=_schema({
            "oldText": _string("Current reminder text"),
            "newText": _string("New reminder text"),
            "newDue": _string("New due date"),
            "listName": _string("List containing the reminder"),
        }, ["oldText"]),
    ),
    Tool(
        name="reminders_delete",
        description="Delete a reminder (requires exact text confirmation for safety).",
        inputSchema=_schema({
            "text": _string("Exact reminder text"),
            "confirmText": _string("Repeat the exact text to confirm deletion"),
            "listName": _string("List containing the reminder"),
        }, ["text", "confirmText"]),
    ),
    Tool(
        name="reminders_list_lists",
        description="List all reminder lists.",
        inputSchema=_schema({}),
    ),
]

CALENDAR_TOOLS = [
    Tool(
        name="calendar_list",
        description="List calendar events for a specific date (e.g. 'today' or '2026-01-31').",
        inputSchema=_schema({
            "date": {"type": "string", "description": "Day to list", "default": "today"},
        }),
    ),
    Tool(
        name="calendar_create_event",
        description="Create a new calendar event.",
        inputSchema=_schema({
            "summary": _string("Event title"),
            "startDate": _string("Start, e.g. '2026-01-31 14:00'"),
            "endDate": _string("End, e.g. '2026-01-31 15:00'"),
            "calendarName": _string("Calendar to create the event in"),
            "location": _string("Event location"),
        }, ["summary", "startDate", "endDate"]),
    ),
    Tool(
        name="calendar_delete_event",
        description="Delete a calendar event (requires exact summary confirmation for safety).",
        inputSchema=_schema({
            "summary": _string("Exact event title"),
            "startDate": _string("Exact start date of the event"),
            "confirmSummary": _string("Repeat the exact title to confirm deletion"),
        }, ["summary", "startDate", "confirmSummary"]),
    ),
    Tool(
        name="calendar_list_calendars",
        description="List all available calendars.",
        inputSchema=_schema({}),
    ),
]

CONTACTS_TOOLS = [
    Tool(
        name="contacts_search",
        description="Search for a contact's phone numbers and emails by name.",
        inputSchema=_schema({"name": _string("Part of the contact's name")}, ["name"]),
    ),
    Tool(
        name="contacts_list",
        description="List contact names (limited to prevent overwhelming output).",
        inputSchema=_schema({"limit": _integer("Maximum number of contacts", 50)}),
    ),
    Tool(
        name="contacts_get_details",
        description="Get detailed contact information by exact name.",
        inputSchema=_schema({"exactName": _string("Exact contact name")}, ["exactName"]),
    ),
    Tool(
        name="contacts_search_by_phone",
        description="Search for a contact by phone number.",
        inputSchema=_schema({"phoneNumber": _string("Phone number or part of it")}, ["phoneNumber"]),
    ),
    Tool(
        name="contacts_search_by_email",
        description="Search for a contact by email address.",
        inputSchema=_schema({"email": _string("Email address or part of it")}, ["email"]),
    ),
]

MESSAGES_TOOLS = [
    Tool(
        name="call_number",
        description="Start a phone call via FaceTime or a paired iPhone.",
        inputSchema=_schema({"number": _string("Phone number to call")}, ["number"]),
    ),
    Tool(
        name="message_send",
        description="Send an iMessage to a contact, phone number or email.",
        inputSchema=_schema({
            "target": _string("Recipient"),
            "text": _string("Message text"),
        }, ["target", "text"]),
    ),
]

RECOVERY_TOOLS = [
    Tool(
        name="recovery_list",
        description="List recoverable operations (deleted or modified items), newest first.",
        inputSchema=_schema({
            "app": {"type": "string", "enum": RECOVERABLE_APPS, "description": "Only this app"},
            "operation": {"type": "string", "enum": ["delete", "update"], "description": "Only this operation"},
            "limit": _integer("Maximum number of operations", 50),
        }),
    ),
    Tool(
        name="recovery_details",
        description="Get details about a logged operation and whether it can be recovered.",
        inputSchema=_schema({
            "operationId": _string("Operation id, or a unique prefix of at least 8 characters"),
        }, ["operationId"]),
    ),
    Tool(
        name="recovery_recover",
        description="Recover a deleted or modified item (requires exact operation ID confirmation).",
        inputSchema=_schema({
            "operationId": _string("Operation id to recover"),
            "confirmId": _string("Repeat the exact operation id to confirm"),
        }, ["operationId", "confirmId"]),
    ),
    Tool(
        name="recovery_stats",
        description="Get recovery statistics (total operations, recoverable items by app and operation).",
        inputSchema=_schema({}),
    ),
]

LOG_TOOLS = [
    Tool(
        name="logs_recent",
        description="Show the most recent operations from the operation log.",
        inputSchema=_schema({"limit": _integer("Maximum number of entries", 10)}),
    ),
    Tool(
        name="logs_by_app",
        description="Show operations from the operation log for a specific app.",
        inputSchema=_schema({
            "app": {"type": "string", "enum": APP_NAMES, "description": "Application"},
            "limit": _integer("Maximum number of entries"),
        }, ["app"]),
    ),
]

TOOL_DEFINITIONS: list[Tool] = (
    NOTES_TOOLS
    + REMINDERS_TOOLS
    + CALENDAR_TOOLS
    + CONTACTS_TOOLS
    + MESSAGES_TOOLS
    + RECOVERY_TOOLS
    + LOG_TOOLS
)
