from pathlib import Path

from macos_app_mcp.config import DEFAULT_LOG_PATH, MAX_LOG_SIZE_MB, MAX_RETENTION_DAYS, Settings


class TestSettingsFromEnv:
    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.default_notes_folder == "ai"
        assert settings.default_reminders_list == "ai"
        assert settings.default_calendar is None
        assert settings.allow_delete is False
        assert settings.allow_update is False
        assert settings.logging_enabled is True
        assert settings.log_path == DEFAULT_LOG_PATH
        assert settings.log_max_size_mb == 10
        assert settings.log_retention_days == 30
        assert settings.log_level == "INFO"

    def test_custom_values(self):
        settings = Settings.from_env({
            "MCP_NOTES_FOLDER": "Work",
            "MCP_REMINDERS_LIST": "Inbox",
            "MCP_CALENDAR": "Home",
            "MCP_ALLOW_DELETE": "true",
            "MCP_ALLOW_UPDATE": "true",
            "MCP_LOG_PATH": "/tmp/ops.log",
            "MCP_LOG_MAX_SIZE": "2.5",
            "MCP_LOG_RETENTION_DAYS": "7",
            "MCP_LOG_LEVEL": "debug",
        })

        assert settings.default_notes_folder == "Work"
        assert settings.default_reminders_list == "Inbox"
        assert settings.default_calendar == "Home"
        assert settings.allow_delete is True
        assert settings.allow_update is True
        assert settings.log_path == Path("/tmp/ops.log")
        assert settings.log_max_size_mb == 2.5
        assert settings.log_retention_days == 7
        assert settings.log_level == "DEBUG"

    def test_flags_that_default_off_need_literal_true(self):
        settings = Settings.from_env({"MCP_ALLOW_DELETE": "yes", "MCP_ALLOW_UPDATE": "1"})

        assert settings.allow_delete is False
        assert settings.allow_update is False

    def test_logging_only_disabled_by_literal_false(self):
        assert Settings.from_env({"MCP_LOGGING_ENABLED": "no"}).logging_enabled is True
        assert Settings.from_env({"MCP_LOGGING_ENABLED": "FALSE"}).logging_enabled is False

    def test_invalid_numbers_fall_back_to_defaults(self):
        settings = Settings.from_env({
            "MCP_LOG_MAX_SIZE": "huge",
            "MCP_LOG_RETENTION_DAYS": "-3",
        })

        assert settings.log_max_size_mb == 10
        assert settings.log_retention_days == 30

    def test_non_finite_numbers_fall_back_to_defaults(self):
        settings = Settings.from_env({
            "MCP_LOG_MAX_SIZE": "inf",
            "MCP_LOG_RETENTION_DAYS": "nan",
        })

        assert settings.log_max_size_mb == 10
        assert settings.log_retention_days == 30

    def test_huge_numbers_are_clamped(self):
        settings = Settings.from_env({
            "MCP_LOG_MAX_SIZE": "1e300",
            "MCP_LOG_RETENTION_DAYS": "1000000",
        })

        assert settings.log_max_size_mb == MAX_LOG_SIZE_MB
        assert settings.log_retention_days == MAX_RETENTION_DAYS

    def test_silent_expected_errors(self):
        assert Settings.from_env({}).silent_expected_errors is False
        assert Settings.from_env({"MCP_SILENT_EXPECTED_ERRORS": "1"}).silent_expected_errors is True

    def test_log_level_falls_back_to_generic_variable(self):
        assert Settings.from_env({"LOG_LEVEL": "warning"}).log_level == "WARNING"
        assert Settings.from_env({"LOG_LEVEL": "warning", "MCP_LOG_LEVEL": "error"}).log_level == "ERROR"

    def test_blank_values_use_defaults(self):
        settings = Settings.from_env({"MCP_NOTES_FOLDER": "  ", "MCP_LOG_PATH": ""})

        assert settings.default_notes_folder == "ai"
        assert settings.log_path == DEFAULT_LOG_PATH


class TestSettingsHelpers:
    def test_log_max_size_bytes(self):
        assert Settings(log_max_size_mb=1).log_max_size_bytes == 1024 * 1024
        assert Settings(log_max_size_mb=float("inf")).log_max_size_bytes == MAX_LOG_SIZE_MB * 1024 * 1024

    def test_summary_is_json_friendly(self, tmp_path):
        summary = Settings(log_path=tmp_path / "ops.log").summary()

        assert summary["log_path"] == str(tmp_path / "ops.log")
        assert summary["allow_delete"] is False
        assert set(summary) >= {"default_notes_folder", "log_retention_days", "log_level"}
