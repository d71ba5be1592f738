"""macOS App MCP - Notes, Reminders, Calendar, Contacts and Messages over MCP, with an operation log and recovery."""

from .config import Settings
from .oplog import Application, OperationKind, OperationLogEntry, OperationLogStore
from .recovery import RecoveryManager

__all__ = [
    'Settings',
    'Application',
    'OperationKind',
    'OperationLogEntry',
    'OperationLogStore',
    'RecoveryManager',
]
__version__ = '0.1.0'
