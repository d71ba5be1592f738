"""Messages.app integration: iMessage sending and phone calls."""

import asyncio
import logging
import re

from .applescript import AppleScriptRunner, quote

logger = logging.getLogger(__name__)


class MessagesBackend:
    """Send iMessages and start calls through Continuity."""

    APP_NAME = "Messages"

    def __init__(self, runner: AppleScriptRunner, opener: str = "open"):
        self.runner = runner
        self.opener = opener

    async def send(self, target: str, text: str) -> None:
        """Send ``text`` to a contact, phone number or email over iMessage."""
        await self.runner.execute(
            f'tell application "Messages"\n'
            f"  set targetService to 1st service whose service type is iMessage\n"
            f"  set targetBuddy to buddy {quote(target)} of targetService\n"
            f"  send {quote(text)} to targetBuddy\n"
            f"end tell",
            self.APP_NAME,
        )

    async def call(self, number: str) -> None:
        """Open a ``tel://`` URL so FaceTime or a paired iPhone places the call."""
        clean_number = re.sub(r"\s", "", number)
        proc = await asyncio.create_subprocess_exec(
            self.opener, f"tel://{clean_number}",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            logger.error("Failed to start call to %s: %s", clean_number, message)
            raise RuntimeError(f"Could not start call to {clean_number}: {message or 'open failed'}")
