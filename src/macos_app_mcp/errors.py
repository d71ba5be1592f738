"""Exceptions raised by the AppleScript runner and the app backends."""


class AppleScriptError(RuntimeError):
    """An AppleScript command failed."""

    def __init__(self, message: str, app_name: str | None = None):
        super().__init__(message)
        self.app_name = app_name


class ConnectionInvalidError(AppleScriptError):
    """The Apple Event connection was invalid (-609) on every attempt."""


class AutomationPermissionError(AppleScriptError):
    """Automation access to the target app was denied (-1743)."""


class ApplicationNotRunningError(AppleScriptError):
    """The target app is not running or failed to launch (-600)."""


class OutputTooLargeError(AppleScriptError):
    """The script produced more output than the runner accepts."""


class ConfirmationMismatchError(ValueError):
    """A destructive call was not confirmed with the exact identifying text."""


class OperationDisabledError(PermissionError):
    """A mutating operation is switched off in the configuration."""
