"""
Configuration for the macOS app MCP server.

All settings are read from environment variables once per process and are
immutable for the lifetime of a run.

Environment variables:
    MCP_NOTES_FOLDER: Default Notes folder for new notes (default: "ai")
    MCP_REMINDERS_LIST: Default Reminders list for new reminders (default: "ai")
    MCP_CALENDAR: Default calendar for new events (default: system default)
    MCP_ALLOW_DELETE: "true" to enable delete tools (default: disabled)
    MCP_ALLOW_UPDATE: "true" to enable update tools (default: disabled)
    MCP_LOGGING_ENABLED: "false" to disable the operation log (default: enabled)
    MCP_LOG_PATH: Operation log location (default: ~/.macos-mcp/operations.log)
    MCP_LOG_MAX_SIZE: Rotate the operation log above this size in MB (default: 10)
    MCP_LOG_RETENTION_DAYS: Prune operation log entries older than this (default: 30)
    MCP_LOG_LEVEL: Diagnostic log level written to stderr (default: INFO)
    MCP_SILENT_EXPECTED_ERRORS: Any value suppresses ERROR logs for ordinary script failures

Examples:
    export MCP_ALLOW_DELETE=true
    export MCP_LOG_PATH="$HOME/Library/Logs/macos-mcp/operations.log"
"""

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = Path.home() / ".macos-mcp" / "operations.log"
DEFAULT_MAX_LOG_SIZE_MB = 10
DEFAULT_RETENTION_DAYS = 30
MAX_LOG_SIZE_MB = 1024 * 1024
MAX_RETENTION_DAYS = 36500


def _parse_str(environ: Mapping[str, str], name: str, default: Optional[str]) -> Optional[str]:
    """Return a stripped string value, or the default when unset or blank."""
    value = environ.get(name, "").strip()
    return value or default


def _parse_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    """
    Parse a boolean flag.

    Flags that default to off are only enabled by the literal "true", and
    flags that default to on are only disabled by the literal "false".
    """
    value = environ.get(name, "").strip().lower()
    if default:
        return value != "false"
    return value == "true"


def _parse_number(environ: Mapping[str, str], name: str, default: float, maximum: float) -> float:
    """Parse a finite non-negative number, falling back to the default on bad input."""
    value = environ.get(name, "").strip()
    if not value:
        return default
    try:
        number = float(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, value, default)
        return default
    if not math.isfinite(number):
        logger.warning("Ignoring non-finite %s=%r, using %s", name, value, default)
        return default
    if number < 0:
        logger.warning("Ignoring negative %s=%r, using %s", name, value, default)
        return default
    if number > maximum:
        logger.warning("Clamping %s=%r to %s", name, value, maximum)
        number = float(maximum)
    return int(number) if number.is_integer() else number


@dataclass(frozen=True)
class Settings:
    """Process-wide settings. Build once with :meth:`from_env` and pass around."""

    default_notes_folder: str = "ai"
    default_reminders_list: str = "ai"
    default_calendar: Optional[str] = None
    allow_delete: bool = False
    allow_update: bool = False
    logging_enabled: bool = True
    log_path: Path = field(default_factory=lambda: DEFAULT_LOG_PATH)
    log_max_size_mb: float = DEFAULT_MAX_LOG_SIZE_MB
    log_retention_days: float = DEFAULT_RETENTION_DAYS
    log_level: str = "INFO"
    silent_expected_errors: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from the environment (``os.environ`` by default)."""
        env = os.environ if environ is None else environ

        log_path = _parse_str(env, "MCP_LOG_PATH", None)
        log_level = _parse_str(env, "MCP_LOG_LEVEL", None) or _parse_str(env, "LOG_LEVEL", "INFO")

        return cls(
            default_notes_folder=_parse_str(env, "MCP_NOTES_FOLDER", "ai"),
            default_reminders_list=_parse_str(env, "MCP_REMINDERS_LIST", "ai"),
            default_calendar=_parse_str(env, "MCP_CALENDAR", None),
            allow_delete=_parse_flag(env, "MCP_ALLOW_DELETE", False),
            allow_update=_parse_flag(env, "MCP_ALLOW_UPDATE", False),
            logging_enabled=_parse_flag(env, "MCP_LOGGING_ENABLED", True),
            log_path=Path(log_path).expanduser() if log_path else DEFAULT_LOG_PATH,
            log_max_size_mb=_parse_number(env, "MCP_LOG_MAX_SIZE", DEFAULT_MAX_LOG_SIZE_MB, MAX_LOG_SIZE_MB),
            log_retention_days=_parse_number(env, "MCP_LOG_RETENTION_DAYS", DEFAULT_RETENTION_DAYS, MAX_RETENTION_DAYS),
            log_level=log_level.upper(),
            silent_expected_errors=bool(_parse_str(env, "MCP_SILENT_EXPECTED_ERRORS", None)),
        )

    @property
    def log_max_size_bytes(self) -> int:
        """Rotation threshold in bytes."""
        if not math.isfinite(self.log_max_size_mb):
            return MAX_LOG_SIZE_MB * 1024 * 1024
        return int(min(self.log_max_size_mb, MAX_LOG_SIZE_MB) * 1024 * 1024)

    def summary(self) -> dict:
        """Get a summary of the current configuration."""
        return {
            "default_notes_folder": self.default_notes_folder,
            "default_reminders_list": self.default_reminders_list,
            "default_calendar": self.default_calendar,
            "allow_delete": self.allow_delete,
            "allow_update": self.allow_update,
            "logging_enabled": self.logging_enabled,
            "log_path": str(self.log_path),
            "log_max_size_mb": self.log_max_size_mb,
            "log_retention_days": self.log_retention_days,
            "log_level": self.log_level,
            "silent_expected_errors": self.silent_expected_errors,
        }
