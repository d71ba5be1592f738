"""
Operation log for audit and recovery.

Every mutating call against Notes, Reminders, Calendar or Contacts is
appended as one JSON object per line to the log file. The log is rotated to a
single ``.old`` sibling when it grows past the configured size, and entries
past the retention window can be pruned (which rewrites the file and loses
those entries permanently).

Audit logging must never break the operation being logged: write and read
failures are reported through :mod:`logging` and degrade to an empty id or
an empty result.
"""

import asyncio
import getpass
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from .config import Settings

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Application(str, Enum):
    NOTES = "notes"
    REMINDERS = "reminders"
    CALENDAR = "calendar"
    CONTACTS = "contacts"


def current_user() -> Optional[str]:
    """Name of the user running this process."""
    user = os.environ.get("USER")
    if user:
        return user
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a logged timestamp. Values without an offset are taken as UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _value(member: Union[Enum, str, None]) -> Optional[str]:
    if member is None:
        return None
    return member.value if isinstance(member, Enum) else str(member)


@dataclass
class OperationLogEntry:
    """One line of the operation log."""
    id: str
    timestamp: str
    operation: str
    app: str
    target: dict = field(default_factory=dict)
    data: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    @property
    def moment(self) -> datetime:
        parsed = parse_timestamp(self.timestamp)
        if parsed is None:
            raise ValueError(f"Invalid timestamp: {self.timestamp!r}")
        return parsed

    @property
    def before(self) -> Any:
        return self.data.get("before")

    @property
    def has_before(self) -> bool:
        return "before" in self.data

    @property
    def is_recoverable(self) -> bool:
        return bool(self.before) and self.operation != OperationKind.CREATE.value

    @property
    def folder(self) -> Optional[str]:
        return self.metadata.get("folder")

    @property
    def user(self) -> Optional[str]:
        return self.metadata.get("user")

    @property
    def target_label(self) -> str:
        """Human-readable target (title, text, summary or name)."""
        for key in ("title", "text", "summary", "name"):
            if self.target.get(key):
                return str(self.target[key])
        return json.dumps(self.target, ensure_ascii=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "operation": self.operation,
            "app": self.app,
            "target": self.target,
            "data": self.data,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["OperationLogEntry"]:
        """Build an entry from a decoded line, or None if it is malformed."""
        if not isinstance(raw, dict):
            return None
        for key in ("id", "timestamp", "operation", "app"):
            if not isinstance(raw.get(key), str):
                return None
        if parse_timestamp(raw["timestamp"]) is None:
            return None
        target = raw.get("target")
        data = raw.get("data")
        metadata = raw.get("metadata")
        return cls(
            id=raw["id"],
            timestamp=raw["timestamp"],
            operation=raw["operation"],
            app=raw["app"],
            target=target if isinstance(target, dict) else {},
            data=data if isinstance(data, dict) else {},
            metadata=metadata if isinstance(metadata, dict) else {},
        )


class OperationLogStore:
    """
    Append-only NDJSON operation log.

    The store is the only reader and writer of the log file. Writes within
    one process are serialized; writes from other processes are not
    coordinated and rely on short appends being atomic per line.
    """

    ROTATED_SUFFIX = ".old"
    MIN_PREFIX_LENGTH = 8

    def __init__(self, settings: Settings):
        self.settings = settings
        self.path = Path(settings.log_path)
        self._lock = asyncio.Lock()

    @property
    def rotated_path(self) -> Path:
        return self.path.with_name(self.path.name + self.ROTATED_SUFFIX)

    async def append(
        self,
        kind: Union[OperationKind, str],
        app: Union[Application, str],
        target: dict,
        data: dict,
        metadata: Optional[dict] = None,
    ) -> str:
        """
        Append an operation to the log.

        Args:
            kind: create, update or delete
            app: Application the operation ran against
            target: Identifies the item ({"title": ...}, {"text": ...}, ...)
            data: {"before": ..., "after": ...} snapshots
            metadata: Optional folder, confirmed and user overrides

        Returns:
            The new entry id, or "" when logging is disabled or the write failed
        """
        if not self.settings.logging_enabled:
            return ""

        metadata = metadata or {}
        meta: dict[str, Any] = {"confirmed": bool(metadata.get("confirmed", False))}
        if metadata.get("folder") is not None:
            meta["folder"] = metadata["folder"]
        meta["user"] = metadata.get("user") or current_user()

        entry = OperationLogEntry(
            id=str(uuid.uuid4()),
            timestamp=format_timestamp(utc_now()),
            operation=_value(kind),
            app=_value(app),
            target=dict(target),
            data=dict(data),
            metadata=meta,
        )

        try:
            line = json.dumps(entry.to_dict(), ensure_ascii=False) + "\n"
            async with self._lock:
                await asyncio.to_thread(self._write_line, line)
                await self._rotate_locked()
        except (OSError, OverflowError, TypeError, ValueError) as e:
            logger.error("Failed to log operation: %s", e)
            return ""

        return entry.id

    def _write_line(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line)

    async def rotate_if_oversize(self) -> bool:
        """Rotate the active log to ``.old`` if it exceeds the size limit."""
        async with self._lock:
            return await self._rotate_locked()

    async def _rotate_locked(self) -> bool:
        return await asyncio.to_thread(self._rotate)

    def _rotate(self) -> bool:
        try:
            size = self.path.stat().st_size
        except FileNotFoundError:
            return False

        if size <= self.settings.log_max_size_bytes:
            return False

        # Path.replace overwrites any previous backup atomically
        self.path.replace(self.rotated_path)
        logger.info("Rotated operation log %s (size: %d bytes)", self.path, size)
        return True

    async def read_all(self) -> list[OperationLogEntry]:
        """Every well-formed entry in file order. Malformed lines are skipped."""
        try:
            lines = await asyncio.to_thread(self._read_lines)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read operation log: %s", e)
            return []

        entries = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError:
                continue
            entry = OperationLogEntry.from_dict(raw)
            if entry is not None:
                entries.append(entry)
        return entries

    def _read_lines(self) -> list[str]:
        try:
            return self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []

    async def query(
        self,
        kind: Union[OperationKind, str, None] = None,
        app: Union[Application, str, None] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[OperationLogEntry]:
        """
        Filter the log, newest first.

        Args:
            kind: Only this operation kind
            app: Only this application
            since: Only entries at or after this moment
            limit: Maximum number of entries to return
        """
        entries = await self.read_all()

        kind_value = _value(kind)
        app_value = _value(app)
        if kind_value:
            entries = [e for e in entries if e.operation == kind_value]
        if app_value:
            entries = [e for e in entries if e.app == app_value]
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            entries = [e for e in entries if e.moment >= since]

        entries.sort(key=lambda e: e.moment, reverse=True)

        if limit:
            entries = entries[:limit]
        return entries

    async def get_by_id(self, operation_id: str) -> Optional[OperationLogEntry]:
        """
        Look up an entry by exact id, then by id prefix.

        Prefixes shorter than MIN_PREFIX_LENGTH never match. An ambiguous
        prefix resolves to the first match in file order.
        """
        if not operation_id:
            return None

        entries = await self.read_all()
        for entry in entries:
            if entry.id == operation_id:
                return entry

        if len(operation_id) < self.MIN_PREFIX_LENGTH:
            return None

        matches = [e for e in entries if e.id.startswith(operation_id)]
        if len(matches) > 1:
            logger.warning(
                "Operation id prefix %r matches %d entries, using %s",
                operation_id, len(matches), matches[0].id,
            )
        return matches[0] if matches else None

    async def recent(self, limit: int = 10) -> list[OperationLogEntry]:
        return await self.query(limit=limit)

    async def by_application(
        self, app: Union[Application, str], limit: Optional[int] = None
    ) -> list[OperationLogEntry]:
        return await self.query(app=app, limit=limit)

    async def prune_older_than(self, retention_days: Optional[float] = None) -> int:
        """
        Drop entries older than the retention window by rewriting the log.

        Removed entries cannot be recovered. Surviving entries keep their
        file order.

        Returns:
            Number of entries removed
        """
        days = self.settings.log_retention_days if retention_days is None else retention_days
        try:
            cutoff = utc_now() - timedelta(days=days)
        except (OverflowError, ValueError):
            logger.warning("Retention of %r days reaches past the earliest date, keeping every entry", days)
            return 0

        async with self._lock:
            entries = await self.read_all()
            keep = [e for e in entries if e.moment >= cutoff]
            removed = len(entries) - len(keep)
            if removed == 0:
                return 0

            content = "".join(json.dumps(e.to_dict(), ensure_ascii=False) + "\n" for e in keep)
            try:
                await asyncio.to_thread(self.path.write_text, content, encoding="utf-8")
            except OSError as e:
                logger.error("Failed to prune operation log: %s", e)
                return 0

        logger.info("Cleaned up %d old operation log entries", removed)
        return removed
