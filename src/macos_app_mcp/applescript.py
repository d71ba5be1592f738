"""
AppleScript execution for the macOS app backends.

Every backend talks to its application through :class:`AppleScriptRunner`,
which shells out to ``osascript``, classifies failures into the exceptions in
:mod:`macos_app_mcp.errors`, and retries the transient -609 "Connection is
invalid" error with a linearly increasing delay.
"""

import asyncio
import logging
import re
from typing import Optional

from .errors import (
    AppleScriptError,
    ApplicationNotRunningError,
    AutomationPermissionError,
    ConnectionInvalidError,
    OutputTooLargeError,
)

logger = logging.getLogger(__name__)

_TELL_APP_RE = re.compile(r'tell\s+application\s+"([^"]+)"', re.IGNORECASE)


def quote(value: str) -> str:
    """Render a Python string as a double-quoted AppleScript string literal."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class AppleScriptRunner:
    """Runs AppleScript source through ``osascript``."""

    MAX_RETRIES = 3
    RETRY_DELAY = 0.5  # seconds, multiplied by the attempt number
    MAX_OUTPUT_BYTES = 50 * 1024 * 1024

    def __init__(self, osascript: str = "osascript", silent_expected_errors: bool = False):
        self.osascript = osascript
        self.silent_expected_errors = silent_expected_errors

    async def execute(self, script: str, app_name: Optional[str] = None) -> str:
        """
        Execute an AppleScript and return its trimmed stdout.

        Args:
            script: AppleScript source
            app_name: Target application. Extracted from the first
                ``tell application "..."`` when not given.

        Raises:
            ConnectionInvalidError: -609 persisted after MAX_RETRIES attempts
            AutomationPermissionError: Automation access denied (-1743)
            ApplicationNotRunningError: App not running (-600)
            OutputTooLargeError: Output exceeded MAX_OUTPUT_BYTES
            AppleScriptError: Any other failure
        """
        target_app = app_name or self.extract_app_name(script)
        final_script = script
        if target_app:
            # Launching through a tell block first avoids -609 on cold apps
            final_script = (
                f"tell application {quote(target_app)}\n"
                "  run\n"
                "  delay 0.5\n"
                "end tell\n"
                f"{script}"
            )

        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                return await self._run(final_script, target_app)
            except ConnectionInvalidError:
                logger.warning(
                    "Connection invalid (-609) for %s, attempt %d/%d",
                    target_app or "application", attempt, self.MAX_RETRIES,
                )
                if attempt < self.MAX_RETRIES:
                    await asyncio.sleep(self.RETRY_DELAY * attempt)

        raise ConnectionInvalidError(
            f"macOS Connection Error: Failed to connect to {target_app or 'application'} "
            f"after {self.MAX_RETRIES} attempts. Please ensure the app can be accessed and try again.",
            target_app,
        )

    async def _run(self, script: str, app_name: Optional[str]) -> str:
        """Run osascript once and classify any failure."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.osascript, "-e", script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise AppleScriptError(
                "osascript not found. This server requires macOS with AppleScript support.",
                app_name,
            ) from e

        stdout, stderr = await proc.communicate()

        if len(stdout) > self.MAX_OUTPUT_BYTES:
            logger.error("AppleScript output exceeded %d bytes", self.MAX_OUTPUT_BYTES)
            raise OutputTooLargeError(
                "Output exceeds 50MB limit. Try using maxLength parameter to limit output size.",
                app_name,
            )

        err_text = stderr.decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            raise self.classify_error(
                err_text or f"osascript exited with {proc.returncode}",
                app_name,
                silent=self.silent_expected_errors,
            )

        if err_text:
            logger.warning("AppleScript warning: %s", err_text)
        return stdout.decode("utf-8", errors="replace").strip()

    @staticmethod
    def classify_error(
        message: str, app_name: Optional[str] = None, silent: bool = False
    ) -> AppleScriptError:
        """
        Map osascript error text to the matching exception.

        ``silent`` skips the ERROR log for generic script failures.
        """
        if "-609" in message:
            return ConnectionInvalidError(message, app_name)
        if "-1743" in message:
            logger.error("Permission denied for AppleScript execution")
            return AutomationPermissionError(
                "macOS Permission Denied: Please grant this terminal/app 'Automation' access "
                "in System Settings > Privacy & Security.",
                app_name,
            )
        if "-600" in message:
            return ApplicationNotRunningError(
                f"macOS Application Error: {app_name or 'Target Application'} "
                "is not running or failed to launch.",
                app_name,
            )
        if not silent:
            logger.error("AppleScript failed: %s", message)
        return AppleScriptError(f"AppleScript Execution Failed: {message}", app_name)

    @staticmethod
    def extract_app_name(script: str) -> Optional[str]:
        """Return the first ``tell application "..."`` target, if any."""
        match = _TELL_APP_RE.search(script)
        return match.group(1) if match else None

    @staticmethod
    def parse_list(output: str) -> list[str]:
        """Split an AppleScript list result ("a, b, c") into items."""
        if not output:
            return []
        return [item.strip() for item in output.split(",")]
