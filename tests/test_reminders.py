from dataclasses import replace

import pytest

from macos_app_mcp.errors import ConfirmationMismatchError, OperationDisabledError
from macos_app_mcp.reminders import RemindersBackend, normalize_due


@pytest.fixture
def reminders(runner, store, settings):
    return RemindersBackend(runner, store, settings)


def test_normalize_due():
    assert normalize_due(None) is None
    assert normalize_due("  ") is None
    assert normalize_due("missing value") is None
    assert normalize_due("Monday, 15 January 2024 at 10:00:00") == "Monday, 15 January 2024 at 10:00:00"


class TestList:
    @pytest.mark.asyncio
    async def test_list_in_named_list(self, reminders, runner):
        runner.execute.return_value = "Milk, Eggs"

        assert await reminders.list_reminders("Shopping") == ["Milk", "Eggs"]
        assert 'of list "Shopping" whose completed is false' in runner.execute.call_args.args[0]

    @pytest.mark.asyncio
    async def test_list_tree(self, reminders, runner):
        runner.execute.return_value = "Home/Laundry, Work/"

        assert await reminders.list_tree() == "├── Home\n│   └── Laundry\n└── Work"


class TestAdd:
    @pytest.mark.asyncio
    async def test_creates_missing_list_and_logs(self, reminders, runner, store):
        runner.execute.side_effect = ["not found", "", ""]

        result = await reminders.add("Call mom", "2024-01-15 10:00")

        assert result == 'Reminder "Call mom" added successfully to list "ai"'
        scripts = [c.args[0] for c in runner.execute.call_args_list]
        assert 'make new list with properties {name:"ai"}' in scripts[1]
        assert "set year of dueDate to 2024" in scripts[2]
        assert 'at end of list "ai"' in scripts[2]
        assert "due date:dueDate" in scripts[2]

        [entry] = await store.query()
        assert entry.operation == "create"
        assert entry.target == {"text": "Call mom"}
        assert entry.data == {"after": {"text": "Call mom", "due": "2024-01-15 10:00"}}
        assert entry.folder == "ai"

    @pytest.mark.asyncio
    async def test_existing_list_is_not_recreated(self, reminders, runner, store):
        runner.execute.side_effect = ["exists", ""]

        await reminders.add("Milk", list_name="Shopping", skip_log=True)

        assert runner.execute.await_count == 2
        assert "due date" not in runner.execute.call_args.args[0]
        assert await store.query() == []


class TestComplete:
    @pytest.mark.asyncio
    async def test_logs_update(self, reminders, runner, store):
        await reminders.complete("Milk", "Shopping")

        [entry] = await store.query()
        assert entry.operation == "update"
        assert entry.data == {"before": {"completed": False}, "after": {"completed": True}}
        assert entry.folder == "Shopping"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_disabled(self, runner, store, settings):
        reminders = RemindersBackend(runner, store, replace(settings, allow_update=False))

        with pytest.raises(OperationDisabledError):
            await reminders.update("Milk", "Oat milk")

    @pytest.mark.asyncio
    async def test_logs_old_and_new_values(self, reminders, runner, store):
        runner.execute.side_effect = ["missing value", ""]

        await reminders.update("Milk", new_text="Oat milk")

        assert 'set name of theReminder to "Oat milk"' in runner.execute.call_args.args[0]
        [entry] = await store.query()
        assert entry.data == {
            "before": {"text": "Milk", "due": None},
            "after": {"text": "Oat milk", "due": None},
        }


class TestDelete:
    @pytest.mark.asyncio
    async def test_confirmation_mismatch(self, reminders, runner):
        with pytest.raises(ConfirmationMismatchError):
            await reminders.delete("Milk", "milk")
        runner.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_logs_list_and_due_date(self, reminders, runner, store):
        runner.execute.side_effect = ["Shopping", "Monday, 15 January 2024 at 10:00:00", ""]

        result = await reminders.delete("Milk", "Milk")

        assert result == 'Reminder "Milk" deleted successfully.'
        [entry] = await store.query()
        assert entry.operation == "delete"
        assert entry.data == {
            "before": {"text": "Milk", "due": "Monday, 15 January 2024 at 10:00:00"},
            "after": None,
        }
        assert entry.folder == "Shopping"
        assert entry.metadata["confirmed"] is True
