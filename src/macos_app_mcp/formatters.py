"""Text rendering for tool and CLI output."""

from datetime import datetime
from typing import Iterable, Optional

from .oplog import OperationLogEntry, parse_timestamp

TABLE_HEADERS = ("ID", "Time", "App", "Op", "Target", "Folder")


def format_datetime(dt: Optional[datetime]) -> str:
    """Format a datetime for display."""
    if dt is None:
        return "Unknown"
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def truncate(text: Optional[str], length: int) -> str:
    if not text:
        return "-"
    return text[: length - 3] + "..." if len(text) > length else text


def format_folder_tree(paths: Iterable[str]) -> str:
    """
    Render slash-separated paths as a tree.

    Example:
        ["a", "a/b", "c"] ->
        ├── a
        │   └── b
        └── c
    """
    tree: dict = {}
    for path in sorted(paths):
        node = tree
        for part in (p for p in path.split("/") if p):
            node = node.setdefault(part, {})

    if not tree:
        return "No folders found."

    lines: list[str] = []

    def render(node: dict, prefix: str) -> None:
        keys = sorted(node)
        for i, key in enumerate(keys):
            last = i == len(keys) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{key}")
            render(node[key], prefix + ("    " if last else "│   "))

    render(tree, "")
    return "\n".join(lines)


def format_log_table(entries: Iterable[OperationLogEntry]) -> str:
    """Render log entries as an ASCII table with short ids and local times."""
    rows = []
    for entry in entries:
        moment = parse_timestamp(entry.timestamp)
        time_text = moment.astimezone().strftime("%H:%M:%S") if moment else "-"
        rows.append((
            entry.id[:8],
            time_text,
            entry.app,
            entry.operation,
            truncate(entry.target_label, 20),
            truncate(entry.folder or entry.metadata.get("list"), 15),
        ))

    if not rows:
        return "No logs found."

    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(TABLE_HEADERS)]
    sep = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def line(values) -> str:
        return "| " + " | ".join(v.ljust(w) for v, w in zip(values, widths)) + " |"

    return "\n".join([sep, line(TABLE_HEADERS), sep, *(line(r) for r in rows), sep])
