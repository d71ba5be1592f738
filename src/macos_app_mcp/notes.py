"""
Notes.app integration.

Folder paths are slash separated ("Work/Projects") and map onto nested
AppleScript folder references. Mutations are written to the operation log
with the note body captured before the change.
"""

import html
import logging
import re
from typing import Optional

from .applescript import AppleScriptRunner, quote
from .config import Settings
from .errors import ConfirmationMismatchError, OperationDisabledError
from .formatters import format_folder_tree
from .oplog import Application, OperationKind, OperationLogStore

logger = logging.getLogger(__name__)

_BLOCK_TAG_RE = re.compile(r"<(h[1-6]|p|div|br)[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_DATA_IMAGE_RE = re.compile(r"data:image/[^;]*;base64,\S*")


def folder_reference(folder_path: Optional[str]) -> str:
    """Convert "a/b/c" to 'folder "c" of folder "b" of folder "a"'."""
    parts = [p for p in (folder_path or "").split("/") if p]
    return " of ".join(f"folder {quote(p)}" for p in reversed(parts))


def note_reference(title: str, folder: Optional[str] = None) -> str:
    folder_ref = folder_reference(folder)
    if folder_ref:
        return f"note {quote(title)} of {folder_ref}"
    return f"note {quote(title)}"


def html_to_text(body: str) -> str:
    """Convert a Notes HTML body to plain text, collapsing blank lines."""
    text = _BLOCK_TAG_RE.sub("\n", body)
    text = _TAG_RE.sub("", text)
    text = _DATA_IMAGE_RE.sub("[IMAGE]", text)
    text = html.unescape(text).replace("\xa0", " ")

    lines = []
    for line in (l.strip() for l in text.split("\n")):
        if line or (lines and lines[-1] != ""):
            lines.append(line)
    return "\n".join(lines).strip()


class NotesBackend:
    """Query and mutate notes in Notes.app."""

    APP_NAME = "Notes"

    def __init__(self, runner: AppleScriptRunner, store: OperationLogStore, settings: Settings):
        self.runner = runner
        self.store = store
        self.settings = settings

    async def query(self, search: Optional[str] = None, folder: Optional[str] = None) -> list[str]:
        """
        List note titles, optionally filtered.

        Args:
            search: Only notes whose name contains this text
            folder: Folder path to search in

        Returns:
            Matching note titles
        """
        where = f" whose name contains {quote(search)}" if search else ""
        folder_ref = folder_reference(folder)
        if folder_ref:
            script = f'tell application "Notes" to tell {folder_ref} to get name of every note{where}'
        else:
            script = f'tell application "Notes" to get name of every note{where}'

        result = await self.runner.execute(script, self.APP_NAME)
        return self.runner.parse_list(result)

    async def get(
        self,
        title: str,
        include_images: bool = True,
        max_length: Optional[int] = None,
        folder: Optional[str] = None,
    ) -> str:
        """Get a note's content as plain text."""
        body = await self.runner.execute(
            f'tell application "Notes"\n'
            f"  set theNote to {note_reference(title, folder)}\n"
            f"  return body of theNote\n"
            f"end tell",
            self.APP_NAME,
        )

        text = html_to_text(body)

        if include_images:
            image_count = body.count("data:image")
            if image_count:
                text += f"\n\n[Note: This note contains {image_count} embedded image(s)]"

        if max_length and len(text) > max_length:
            text = text[:max_length] + "\n\n[Content truncated...]"

        return text

    async def create(
        self,
        title: str,
        content: str,
        folder: Optional[str] = None,
        *,
        skip_log: bool = False,
    ) -> str:
        """
        Create a note.

        Args:
            title: Note title
            content: Note body. A leading copy of the title is stripped.
            folder: Folder path (defaults to the configured notes folder)
            skip_log: Don't write an operation log entry (used by recovery,
                which logs the restoration itself)
        """
        target_folder = folder or self.settings.default_notes_folder
        folder_ref = folder_reference(target_folder)

        body = content
        title_prefix = re.compile(rf"^{re.escape(title)}\s*\n?", re.IGNORECASE)
        if title_prefix.match(body):
            body = title_prefix.sub("", body, count=1).strip()

        location = f"in {folder_ref}" if folder_ref else "in default account"
        await self.runner.execute(
            f'tell application "Notes"\n'
            f"  make new note {location} with properties {{name:{quote(title)}, body:{quote(body)}}}\n"
            f"end tell",
            self.APP_NAME,
        )

        if not skip_log:
            await self.store.append(
                OperationKind.CREATE,
                Application.NOTES,
                {"title": title},
                {"after": content},
                {"folder": target_folder},
            )

        return f'Note "{title}" created successfully in folder "{target_folder}"'

    async def update(self, title: str, new_content: str, folder: Optional[str] = None) -> str:
        """Replace a note's body, logging the previous content."""
        if not self.settings.allow_update:
            raise OperationDisabledError("Update operations are disabled. Set MCP_ALLOW_UPDATE=true to enable.")

        old_content = await self.get(title, folder=folder)

        await self.runner.execute(
            f'tell application "Notes"\n'
            f"  set body of {note_reference(title, folder)} to {quote(new_content)}\n"
            f"end tell",
            self.APP_NAME,
        )

        await self.store.append(
            OperationKind.UPDATE,
            Application.NOTES,
            {"title": title},
            {"before": old_content, "after": new_content},
            {"folder": folder},
        )

        return f'Note "{title}" updated successfully'

    async def delete(self, title: str, confirm_title: str, folder: Optional[str] = None) -> str:
        """
        Delete a note. ``confirm_title`` must repeat the title exactly.

        The note's content and folder are logged so it can be recovered.
        """
        if not self.settings.allow_delete:
            raise OperationDisabledError("Delete operations are disabled. Set MCP_ALLOW_DELETE=true to enable.")

        if title != confirm_title:
            raise ConfirmationMismatchError(
                f'Deletion cancelled: Confirmation title "{confirm_title}" does not match "{title}".'
            )

        note_ref = note_reference(title, folder)
        content = await self.get(title, folder=folder)

        final_folder = folder
        if not final_folder:
            # Best effort: the folder is only needed to restore into the same place
            try:
                final_folder = (await self.runner.execute(
                    f'tell application "Notes"\n'
                    f"  set theNote to {note_ref}\n"
                    f"  return name of container of theNote\n"
                    f"end tell",
                    self.APP_NAME,
                )).strip() or None
            except Exception as e:
                logger.debug("Could not resolve folder of note %r: %s", title, e)
                final_folder = None

        await self.runner.execute(f'tell application "Notes" to delete {note_ref}', self.APP_NAME)

        await self.store.append(
            OperationKind.DELETE,
            Application.NOTES,
            {"title": title},
            {"before": content, "after": None},
            {"confirmed": True, "folder": final_folder},
        )

        return f'Note "{title}" deleted successfully.'

    async def list_folders(self) -> str:
        """All folders as a tree, with nested folders shown under their parents."""
        script = """
tell application "Notes"
  set folderList to {}
  repeat with aFolder in every folder
    set folderPath to name of aFolder
    set currentF to aFolder
    repeat
      try
        set parentF to container of currentF
        if class of parentF is folder then
          set folderPath to name of parentF & "/" & folderPath
          set currentF to parentF
        else
          exit repeat
        end if
      on error
        exit repeat
      end try
    end repeat
    copy folderPath to end of folderList
  end repeat
  return folderList
end tell
"""
        result = await self.runner.execute(script, self.APP_NAME)
        return format_folder_tree(self.runner.parse_list(result))
