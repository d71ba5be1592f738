from datetime import datetime

from macos_app_mcp.dates import applescript_date, parse_date
from macos_app_mcp.formatters import format_datetime, format_folder_tree, format_log_table, truncate
from macos_app_mcp.oplog import OperationLogEntry


class TestDates:
    def test_parse_formats(self):
        assert parse_date("2024-01-15") == datetime(2024, 1, 15)
        assert parse_date("2024-01-15 10:30") == datetime(2024, 1, 15, 10, 30)
        assert parse_date("January 15, 2024") == datetime(2024, 1, 15)
        assert parse_date("someday") is None
        assert parse_date("") is None

    def test_today(self):
        assert applescript_date("Today", "d") == "set d to (current date)"

    def test_components_set_day_first(self):
        script = applescript_date("2024-02-29 08:05", "startD")
        lines = script.splitlines()

        assert lines[0] == "set startD to (current date)"
        assert lines[1] == "set day of startD to 1"
        assert "set year of startD to 2024" in lines
        assert "set month of startD to 2" in lines
        assert "set day of startD to 29" in lines
        assert "set hours of startD to 8" in lines
        assert "set minutes of startD to 5" in lines

    def test_unparseable_falls_back_to_literal(self):
        assert applescript_date('next "Tuesday"') == 'set theDate to date "next \\"Tuesday\\""'


class TestFormatters:
    def test_format_datetime(self):
        assert format_datetime(None) == "Unknown"
        assert format_datetime(datetime(2024, 1, 15, 9, 5, 3)) == "2024-01-15 09:05:03"

    def test_truncate(self):
        assert truncate(None, 5) == "-"
        assert truncate("short", 10) == "short"
        assert truncate("a long target name", 10) == "a long ..."

    def test_empty_tree(self):
        assert format_folder_tree([]) == "No folders found."

    def test_nested_tree(self):
        tree = format_folder_tree(["a/b/c", "a/d", "e"])
        assert tree == "\n".join([
            "├── a",
            "│   ├── b",
            "│   │   └── c",
            "│   └── d",
            "└── e",
        ])

    def test_log_table(self):
        entry = OperationLogEntry(
            id="0123456789abcdef",
            timestamp="2024-01-15T10:30:00.000Z",
            operation="delete",
            app="notes",
            target={"title": "A very long note title indeed"},
            metadata={"folder": "Work"},
        )

        table = format_log_table([entry])
        lines = table.splitlines()

        assert len(lines) == 5
        assert lines[0] == lines[2] == lines[4]
        assert lines[1].split("|")[1].strip() == "ID"
        row = [cell.strip() for cell in lines[3].split("|")[1:-1]]
        assert row[0] == "01234567"
        assert row[2:] == ["notes", "delete", "A very long note ...", "Work"]

    def test_empty_log_table(self):
        assert format_log_table([]) == "No logs found."
