#!/usr/bin/env python3
"""
macOS App MCP Server

A Model Context Protocol (MCP) server for native macOS applications.
Provides access to Notes, Reminders, Calendar, Contacts and Messages through
AppleScript. Every change is written to an operation log so deleted or
modified items can be listed and recovered.

Usage with uvx:
    uvx --from git+https://github.com/USER/macos-app-mcp macos-app-mcp

Add to Claude Code MCP settings (~/.claude/settings.json):
    {
        "mcpServers": {
            "macos-apps": {
                "command": "uvx",
                "args": ["--from", "git+https://github.com/USER/macos-app-mcp", "macos-app-mcp"],
                "env": {
                    "MCP_ALLOW_DELETE": "true",
                    "MCP_ALLOW_UPDATE": "true"
                }
            }
        }
    }

See :mod:`macos_app_mcp.config` for the environment variables.
"""

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from macos_app_mcp.applescript import AppleScriptRunner
from macos_app_mcp.calendars import CalendarBackend
from macos_app_mcp.config import Settings
from macos_app_mcp.contacts import ContactsBackend
from macos_app_mcp.errors import (
    AppleScriptError,
    AutomationPermissionError,
    ConfirmationMismatchError,
    OperationDisabledError,
)
from macos_app_mcp.formatters import format_log_table
from macos_app_mcp.messages import MessagesBackend
from macos_app_mcp.notes import NotesBackend
from macos_app_mcp.oplog import OperationLogStore
from macos_app_mcp.recovery import RecoveryManager
from macos_app_mcp.reminders import RemindersBackend
from macos_app_mcp.tools import TOOL_DEFINITIONS

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class AppContext:
    """Everything a tool call needs, built once per process."""
    settings: Settings
    store: OperationLogStore
    runner: AppleScriptRunner
    notes: NotesBackend
    reminders: RemindersBackend
    calendar: CalendarBackend
    contacts: ContactsBackend
    messages: MessagesBackend
    recovery: RecoveryManager

    @classmethod
    def build(cls, settings: Settings) -> "AppContext":
        store = OperationLogStore(settings)
        runner = AppleScriptRunner(silent_expected_errors=settings.silent_expected_errors)
        notes = NotesBackend(runner, store, settings)
        reminders = RemindersBackend(runner, store, settings)
        calendar = CalendarBackend(runner, store, settings)
        return cls(
            settings=settings,
            store=store,
            runner=runner,
            notes=notes,
            reminders=reminders,
            calendar=calendar,
            contacts=ContactsBackend(runner),
            messages=MessagesBackend(runner),
            recovery=RecoveryManager(store, runner, notes, reminders, calendar),
        )


def configure_logging(level: str = "INFO") -> None:
    """Send diagnostics to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _json(result: Any) -> list[TextContent]:
    return _text(json.dumps(result, indent=2, ensure_ascii=False))


def _lines(items: list[str], empty: str) -> list[TextContent]:
    return _text("\n".join(items) or empty)


# Notes

async def handle_notes_query(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    titles = await ctx.notes.query(arguments.get("search"), arguments.get("folder"))
    return _lines(titles, "No notes found.")


async def handle_notes_get(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    content = await ctx.notes.get(
        arguments["title"],
        include_images=True,
        max_length=arguments.get("maxLength"),
        folder=arguments.get("folder"),
    )
    return _text(content)


async def handle_notes_create(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.notes.create(arguments["title"], arguments["content"], arguments.get("folder")))


async def handle_notes_update(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.notes.update(arguments["title"], arguments["newContent"], arguments.get("folder")))


async def handle_notes_delete(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.notes.delete(arguments["title"], arguments["confirmTitle"], arguments.get("folder")))


async def handle_notes_list_folders(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.notes.list_folders())


# Reminders

async def handle_reminders_list(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    """Without a list name, show every list as a tree."""
    list_name = arguments.get("listName") or arguments.get("list")
    if not list_name:
        return _text(await ctx.reminders.list_tree())
    return _lines(await ctx.reminders.list_reminders(list_name), "No reminders found.")


async def handle_reminders_add(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.reminders.add(arguments["text"], arguments.get("due"), arguments.get("listName")))


async def handle_reminders_complete(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.reminders.complete(arguments["text"], arguments.get("listName")))


async def handle_reminders_update(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    result = await ctx.reminders.update(
        arguments["oldText"],
        arguments.get("newText"),
        arguments.get("newDue"),
        arguments.get("listName"),
    )
    return _text(result)


async def handle_reminders_delete(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.reminders.delete(arguments["text"], arguments["confirmText"], arguments.get("listName")))


async def handle_reminders_list_lists(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _lines(await ctx.reminders.list_lists(), "No reminder lists found.")


# Calendar

async def handle_calendar_list(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    events = await ctx.calendar.list_events(arguments.get("date") or "today")
    return _lines(events, "No events found.")


async def handle_calendar_create_event(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    result = await ctx.calendar.create_event(
        arguments["summary"],
        arguments["startDate"],
        arguments["endDate"],
        arguments.get("calendarName"),
        arguments.get("location"),
    )
    return _text(result)


async def handle_calendar_delete_event(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    result = await ctx.calendar.delete_event(
        arguments["summary"], arguments["startDate"], arguments["confirmSummary"]
    )
    return _text(result)


async def handle_calendar_list_calendars(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _lines(await ctx.calendar.list_calendars(), "No calendars found.")


# Contacts

async def handle_contacts_search(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.contacts.search(arguments["name"]) or "Contact not found.")


async def handle_contacts_list(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    names = await ctx.contacts.list_contacts(arguments.get("limit") or 50)
    return _lines(names, "No contacts found.")


async def handle_contacts_get_details(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.contacts.get_details(arguments["exactName"]))


async def handle_contacts_search_by_phone(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.contacts.search_by_phone(arguments["phoneNumber"]))


async def handle_contacts_search_by_email(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _text(await ctx.contacts.search_by_email(arguments["email"]))


# Messages

async def handle_call_number(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    await ctx.messages.call(arguments["number"])
    return _text(f"Calling {arguments['number']}...")


async def handle_message_send(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    await ctx.messages.send(arguments["target"], arguments["text"])
    return _text(f"Message sent to {arguments['target']}.")


# Recovery and operation log

async def handle_recovery_list(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    entries = await ctx.recovery.list_recoverable(
        app=arguments.get("app"),
        kind=arguments.get("operation"),
        limit=arguments.get("limit"),
    )
    return _json([e.to_dict() for e in entries])


async def handle_recovery_details(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    operation_id = arguments["operationId"]
    details = await ctx.recovery.describe(operation_id)
    if details is None:
        return _text(f"Operation {operation_id} not found")
    return _json(details.to_dict())


async def handle_recovery_recover(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    outcome = await ctx.recovery.recover(arguments["operationId"], arguments["confirmId"])
    return _json(outcome.to_dict())


async def handle_recovery_stats(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    return _json(await ctx.recovery.stats())


async def handle_logs_recent(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    entries = await ctx.store.recent(arguments.get("limit") or 10)
    return _text(format_log_table(entries))


async def handle_logs_by_app(ctx: AppContext, arguments: dict[str, Any]) -> list[TextContent]:
    entries = await ctx.store.by_application(arguments["app"], arguments.get("limit"))
    return _text(format_log_table(entries))


Handler = Callable[[AppContext, dict[str, Any]], Awaitable[list[TextContent]]]

HANDLERS: dict[str, Handler] = {
    "notes_query": handle_notes_query,
    "notes_get": handle_notes_get,
    "notes_create": handle_notes_create,
    "notes_update": handle_notes_update,
    "notes_delete": handle_notes_delete,
    "notes_list_folders": handle_notes_list_folders,
    "reminders_list": handle_reminders_list,
    "reminders_add": handle_reminders_add,
    "reminders_complete": handle_reminders_complete,
    "reminders_update": handle_reminders_update,
    "reminders_delete": handle_reminders_delete,
    "reminders_list_lists": handle_reminders_list_lists,
    "calendar_list": handle_calendar_list,
    "calendar_create_event": handle_calendar_create_event,
    "calendar_delete_event": handle_calendar_delete_event,
    "calendar_list_calendars": handle_calendar_list_calendars,
    "contacts_search": handle_contacts_search,
    "contacts_list": handle_contacts_list,
    "contacts_get_details": handle_contacts_get_details,
    "contacts_search_by_phone": handle_contacts_search_by_phone,
    "contacts_search_by_email": handle_contacts_search_by_email,
    "call_number": handle_call_number,
    "message_send": handle_message_send,
    "recovery_list": handle_recovery_list,
    "recovery_details": handle_recovery_details,
    "recovery_recover": handle_recovery_recover,
    "recovery_stats": handle_recovery_stats,
    "logs_recent": handle_logs_recent,
    "logs_by_app": handle_logs_by_app,
}


async def dispatch(ctx: AppContext, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
    """Route a tool call and render any failure as text."""
    handler = HANDLERS.get(name)
    if handler is None:
        return _text(f"Unknown tool: {name}")

    try:
        return await handler(ctx, arguments or {})

    except KeyError as e:
        return _text(f"Error: missing required argument {e}")
    except (OperationDisabledError, ConfirmationMismatchError) as e:
        return _text(f"Error: {e}")
    except AutomationPermissionError as e:
        return _text(
            "Permission Error: Cannot control the application.\n\n"
            "Please grant Automation access to your terminal:\n"
            "System Settings → Privacy & Security → Automation\n\n"
            f"Details: {e}"
        )
    except AppleScriptError as e:
        return _text(f"Error: {e}")
    except PermissionError as e:
        return _text(
            "Permission Error: Access was denied.\n\n"
            "Check System Settings → Privacy & Security for this terminal.\n\n"
            f"Details: {e}"
        )
    except Exception as e:
        logger.exception("Tool %s failed", name)
        return _text(f"Error: {type(e).__name__}: {e}")


def create_server(ctx: AppContext) -> Server:
    """Build an MCP server whose tools are backed by ``ctx``."""
    server = Server("macos-app-mcp")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return TOOL_DEFINITIONS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool calls."""
        return await dispatch(ctx, name, arguments)

    return server


async def _main():
    """Run the MCP server (async implementation)."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    ctx = AppContext.build(settings)

    if settings.logging_enabled:
        await ctx.store.prune_older_than()

    server = create_server(ctx)
    logger.info("macOS MCP server running on stdio (operation log: %s)", settings.log_path)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def main():
    """Entry point for uvx macos-app-mcp."""
    asyncio.run(_main())


if __name__ == "__main__":
    main()
