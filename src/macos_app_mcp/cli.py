#!/usr/bin/env python3
"""
Operation Log Tool

Inspects the operation log written by the macOS app MCP server and recovers
deleted or modified items from it.

Usage:
    macos-app-mcp-log                          # Show recent operations
    macos-app-mcp-log --app notes --limit 20   # Recent Notes operations
    macos-app-mcp-log --format json            # Output as JSON
    macos-app-mcp-log --recoverable            # Operations that can be recovered
    macos-app-mcp-log --details 1a2b3c4d       # Show one operation
    macos-app-mcp-log --recover ID --confirm ID
    macos-app-mcp-log --stats                  # Recovery statistics
    macos-app-mcp-log --prune --days 7         # Drop entries older than 7 days
    macos-app-mcp-log --show-config            # Print effective configuration
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

from macos_app_mcp.config import Settings
from macos_app_mcp.formatters import format_datetime, format_log_table, truncate
from macos_app_mcp.oplog import Application
from macos_app_mcp.server import AppContext, configure_logging


def print_entries(entries, args: argparse.Namespace) -> None:
    """Print log entries as a table or JSON."""
    if args.format == 'json':
        print(json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False))
    else:
        print(format_log_table(entries))


def show_recent(ctx: AppContext, args: argparse.Namespace) -> None:
    """Show recent operations, optionally for one app."""
    if args.app:
        entries = asyncio.run(ctx.store.by_application(args.app, args.limit))
    else:
        entries = asyncio.run(ctx.store.recent(args.limit))
    print_entries(entries, args)


def show_recoverable(ctx: AppContext, args: argparse.Namespace) -> None:
    """Show operations that carry a snapshot to recover from."""
    entries = asyncio.run(ctx.recovery.list_recoverable(app=args.app, limit=args.limit))
    print_entries(entries, args)


def show_details(ctx: AppContext, args: argparse.Namespace) -> None:
    """Show a single operation."""
    details = asyncio.run(ctx.recovery.describe(args.details))

    if details is None:
        print(f"Operation {args.details} not found", file=sys.stderr)
        sys.exit(1)

    if args.format == 'json':
        print(json.dumps(details.to_dict(), indent=2, ensure_ascii=False))
        return

    entry = details.entry
    print(f"=== {entry.target_label} ===")
    print(f"ID: {entry.id}")
    print(f"Time: {format_datetime(entry.moment.astimezone())}")
    print(f"App: {entry.app}")
    print(f"Operation: {entry.operation}")
    if entry.folder:
        print(f"Folder: {entry.folder}")
    if entry.user:
        print(f"User: {entry.user}")
    if details.can_recover:
        print("Recoverable: yes")
    else:
        print(f"Recoverable: no ({details.reason})")
    if entry.before is not None:
        before = entry.before if isinstance(entry.before, str) else json.dumps(entry.before, ensure_ascii=False)
        print(f"\nBefore:\n{truncate(before, 500)}")


def run_recovery(ctx: AppContext, args: argparse.Namespace) -> None:
    """Recover an operation. Requires --confirm with the same id."""
    outcome = asyncio.run(ctx.recovery.recover(args.recover, args.confirm or ""))

    if args.format == 'json':
        print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(outcome.message)
        if outcome.new_operation_id:
            print(f"New operation: {outcome.new_operation_id}")

    if not outcome.success:
        sys.exit(1)


def show_stats(ctx: AppContext, args: argparse.Namespace) -> None:
    stats = asyncio.run(ctx.recovery.stats())

    if args.format == 'json':
        print(json.dumps(stats, indent=2))
        return

    print(f"Total operations: {stats['totalOperations']}")
    print(f"Recoverable operations: {stats['recoverableOperations']}")
    if stats['byApp']:
        print("\nBy app:")
        for app, count in sorted(stats['byApp'].items()):
            print(f"  {app}: {count}")
    if stats['byOperation']:
        print("\nBy operation:")
        for op, count in sorted(stats['byOperation'].items()):
            print(f"  {op}: {count}")


def prune(ctx: AppContext, args: argparse.Namespace) -> None:
    days = args.days if args.days is not None else ctx.settings.log_retention_days
    removed = asyncio.run(ctx.store.prune_older_than(days))
    print(f"Removed {removed} entries older than {days} days from {ctx.store.path}")


def show_config(settings: Settings, args: argparse.Namespace) -> None:
    summary = settings.summary()
    if args.format == 'json':
        print(json.dumps(summary, indent=2))
    else:
        for key, value in summary.items():
            print(f"{key}: {value}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Inspect and recover from the macOS app MCP operation log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--format', '-f',
        choices=['text', 'json'],
        default='text',
        help='Output format (default: text)'
    )

    parser.add_argument(
        '--app', '-a',
        choices=[a.value for a in Application],
        help='Only show operations for this app'
    )

    parser.add_argument(
        '--limit', '-n',
        type=int,
        default=10,
        help='Maximum number of entries to show (default: 10)'
    )

    parser.add_argument(
        '--recoverable', '-r',
        action='store_true',
        help='Only show operations that can be recovered'
    )

    parser.add_argument(
        '--details', '-d',
        metavar='ID',
        help='Show a single operation by id or id prefix'
    )

    parser.add_argument(
        '--recover',
        metavar='ID',
        help='Recover a deleted or modified item (requires --confirm)'
    )

    parser.add_argument(
        '--confirm',
        metavar='ID',
        help='Repeat the operation id to confirm --recover'
    )

    parser.add_argument(
        '--stats',
        action='store_true',
        help='Show recovery statistics'
    )

    parser.add_argument(
        '--prune',
        action='store_true',
        help='Remove entries older than the retention window'
    )

    parser.add_argument(
        '--days',
        type=float,
        help='Retention window in days for --prune (default: MCP_LOG_RETENTION_DAYS)'
    )

    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Print the effective configuration'
    )

    parser.add_argument(
        '--log-path',
        type=str,
        help='Custom path to the operation log'
    )

    args = parser.parse_args(argv)

    if args.recover and not args.confirm:
        parser.error("--recover requires --confirm with the same operation id")

    settings = Settings.from_env()
    if args.log_path:
        settings = replace(settings, log_path=Path(args.log_path).expanduser())
    configure_logging(settings.log_level)

    if args.show_config:
        show_config(settings, args)
        return

    if not settings.logging_enabled:
        print("Warning: operation logging is disabled (MCP_LOGGING_ENABLED=false)", file=sys.stderr)

    ctx = AppContext.build(settings)

    # Route to appropriate handler
    if args.recover:
        run_recovery(ctx, args)
    elif args.details:
        show_details(ctx, args)
    elif args.stats:
        show_stats(ctx, args)
    elif args.prune:
        prune(ctx, args)
    elif args.recoverable:
        show_recoverable(ctx, args)
    else:
        show_recent(ctx, args)


if __name__ == '__main__':
    main()
