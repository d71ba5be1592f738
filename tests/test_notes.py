from dataclasses import replace

import pytest

from macos_app_mcp.errors import ConfirmationMismatchError, OperationDisabledError
from macos_app_mcp.notes import NotesBackend, folder_reference, html_to_text, note_reference


@pytest.fixture
def notes(runner, store, settings):
    return NotesBackend(runner, store, settings)


class TestReferences:
    def test_nested_folder_reference(self):
        assert folder_reference("a/b/c") == 'folder "c" of folder "b" of folder "a"'

    def test_empty_folder_reference(self):
        assert folder_reference(None) == ""
        assert folder_reference("/") == ""

    def test_note_reference(self):
        assert note_reference("Todo") == 'note "Todo"'
        assert note_reference("Todo", "Work") == 'note "Todo" of folder "Work"'


class TestHtmlToText:
    def test_strips_tags_and_collapses_blank_lines(self):
        body = "<div><h1>Title</h1></div><div>Line &amp; more</div><br><br><br><p>End</p>"
        assert html_to_text(body) == "Title\nLine & more\n\nEnd"

    def test_replaces_inline_images(self):
        assert html_to_text("see data:image/png;base64,AAAA here") == "see [IMAGE] here"


class TestQueryAndGet:
    @pytest.mark.asyncio
    async def test_query_in_folder(self, notes, runner):
        runner.execute.return_value = "One, Two"

        assert await notes.query("o", "Work") == ["One", "Two"]
        script = runner.execute.call_args.args[0]
        assert 'tell folder "Work"' in script
        assert 'whose name contains "o"' in script

    @pytest.mark.asyncio
    async def test_get_counts_images_and_truncates(self, notes, runner):
        runner.execute.return_value = '<div>Hello world</div><img src="data:image/png;base64,AAA">'

        text = await notes.get("Hello", max_length=5)

        assert text == "Hello\n\n[Content truncated...]"

    @pytest.mark.asyncio
    async def test_get_reports_images(self, notes, runner):
        runner.execute.return_value = '<div>Hi</div><img src="data:image/png;base64,AAA">'

        text = await notes.get("Hi")

        assert text.endswith("[Note: This note contains 1 embedded image(s)]")


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_logs_entry_in_default_folder(self, notes, runner, store):
        result = await notes.create("Groceries", "Groceries\nmilk")

        assert result == 'Note "Groceries" created successfully in folder "ai"'
        script = runner.execute.call_args.args[0]
        assert 'make new note in folder "ai"' in script
        assert 'body:"milk"' in script

        [entry] = await store.query()
        assert entry.operation == "create"
        assert entry.target == {"title": "Groceries"}
        assert entry.data == {"after": "Groceries\nmilk"}
        assert entry.folder == "ai"

    @pytest.mark.asyncio
    async def test_skip_log(self, notes, store):
        await notes.create("x", "y", "Work", skip_log=True)
        assert await store.query() == []


class TestUpdate:
    @pytest.mark.asyncio
    async def test_disabled(self, runner, store, settings):
        notes = NotesBackend(runner, store, replace(settings, allow_update=False))

        with pytest.raises(OperationDisabledError):
            await notes.update("x", "y")
        runner.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_logs_before_and_after(self, notes, runner, store):
        runner.execute.side_effect = ["<div>old</div>", ""]

        await notes.update("Plan", "new", "Work")

        [entry] = await store.query()
        assert entry.operation == "update"
        assert entry.data == {"before": "old", "after": "new"}
        assert entry.folder == "Work"


class TestDelete:
    @pytest.mark.asyncio
    async def test_disabled(self, runner, store, settings):
        notes = NotesBackend(runner, store, replace(settings, allow_delete=False))

        with pytest.raises(OperationDisabledError):
            await notes.delete("x", "x")

    @pytest.mark.asyncio
    async def test_confirmation_mismatch(self, notes, runner, store):
        with pytest.raises(ConfirmationMismatchError):
            await notes.delete("Groceries", "groceries")
        runner.execute.assert_not_called()
        assert await store.query() == []

    @pytest.mark.asyncio
    async def test_resolves_folder_and_logs_snapshot(self, notes, runner, store):
        runner.execute.side_effect = ["<div>milk</div>", "Shopping", ""]

        result = await notes.delete("Groceries", "Groceries")

        assert result == 'Note "Groceries" deleted successfully.'
        assert runner.execute.call_args.args[0] == 'tell application "Notes" to delete note "Groceries"'
        [entry] = await store.query()
        assert entry.operation == "delete"
        assert entry.data == {"before": "milk", "after": None}
        assert entry.metadata["confirmed"] is True
        assert entry.folder == "Shopping"

    @pytest.mark.asyncio
    async def test_folder_lookup_failure_is_tolerated(self, notes, runner, store):
        runner.execute.side_effect = ["<div>milk</div>", RuntimeError("no container"), ""]

        await notes.delete("Groceries", "Groceries")

        [entry] = await store.query()
        assert entry.folder is None


class TestListFolders:
    @pytest.mark.asyncio
    async def test_renders_tree(self, notes, runner):
        runner.execute.return_value = "Work, Work/Projects, ai"

        assert await notes.list_folders() == "├── Work\n│   └── Projects\n└── ai"
