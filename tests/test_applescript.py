from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from macos_app_mcp.applescript import AppleScriptRunner, quote
from macos_app_mcp.errors import (
    AppleScriptError,
    ApplicationNotRunningError,
    AutomationPermissionError,
    ConnectionInvalidError,
    OutputTooLargeError,
)


def fake_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    return proc


class TestHelpers:
    def test_quote_escapes_quotes_and_backslashes(self):
        assert quote('say "hi"') == '"say \\"hi\\""'
        assert quote("C:\\path") == '"C:\\\\path"'

    def test_extract_app_name(self):
        assert AppleScriptRunner.extract_app_name('tell application "Notes" to get name') == "Notes"
        assert AppleScriptRunner.extract_app_name("return 1") is None

    def test_parse_list(self):
        assert AppleScriptRunner.parse_list("a, b ,c") == ["a", "b", "c"]
        assert AppleScriptRunner.parse_list("") == []


class TestClassifyError:
    def test_connection_invalid(self):
        error = AppleScriptRunner.classify_error("execution error: Connection is invalid. (-609)", "Notes")
        assert isinstance(error, ConnectionInvalidError)

    def test_permission_denied(self):
        error = AppleScriptRunner.classify_error("Not authorized to send Apple events (-1743)", "Notes")
        assert isinstance(error, AutomationPermissionError)
        assert "Privacy & Security" in str(error)

    def test_not_running(self):
        error = AppleScriptRunner.classify_error("Application isn't running. (-600)", "Calendar")
        assert isinstance(error, ApplicationNotRunningError)
        assert "Calendar" in str(error)

    def test_generic(self):
        error = AppleScriptRunner.classify_error("Can't get note \"x\". (-1728)", "Notes")
        assert type(error) is AppleScriptError
        assert str(error).startswith("AppleScript Execution Failed: ")
        assert error.app_name == "Notes"

    def test_generic_failure_logs_error(self, caplog):
        with caplog.at_level("ERROR", logger="macos_app_mcp.applescript"):
            AppleScriptRunner.classify_error("boom", "Notes")
        assert "AppleScript failed: boom" in caplog.text

    def test_silent_skips_error_log(self, caplog):
        with caplog.at_level("ERROR", logger="macos_app_mcp.applescript"):
            error = AppleScriptRunner.classify_error("boom", "Notes", silent=True)
        assert type(error) is AppleScriptError
        assert caplog.records == []


class TestRun:
    @pytest.mark.asyncio
    async def test_returns_trimmed_stdout(self):
        proc = fake_process(stdout=b"  hello\n")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            result = await AppleScriptRunner().execute('tell application "Notes" to get name of every note')

        assert result == "hello"
        args = spawn.call_args.args
        assert args[0] == "osascript"
        assert args[1] == "-e"
        assert args[2].startswith('tell application "Notes"\n  run\n  delay 0.5\nend tell\n')

    @pytest.mark.asyncio
    async def test_no_warmup_without_app(self):
        proc = fake_process(stdout=b"1")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            await AppleScriptRunner().execute("return 1")

        assert spawn.call_args.args[2] == "return 1"

    @pytest.mark.asyncio
    async def test_failure_is_classified(self):
        proc = fake_process(stderr=b"Not authorized (-1743)", returncode=1)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(AutomationPermissionError):
                await AppleScriptRunner().execute("return 1", "Notes")

    @pytest.mark.asyncio
    async def test_output_too_large(self):
        runner = AppleScriptRunner()
        runner.MAX_OUTPUT_BYTES = 4
        proc = fake_process(stdout=b"too much output")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(OutputTooLargeError):
                await runner.execute("return 1")

    @pytest.mark.asyncio
    async def test_missing_osascript(self):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError())):
            with pytest.raises(AppleScriptError, match="osascript not found"):
                await AppleScriptRunner().execute("return 1")


class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_connection_errors_with_linear_backoff(self):
        runner = AppleScriptRunner()
        runner._run = AsyncMock(side_effect=[
            ConnectionInvalidError("-609"),
            ConnectionInvalidError("-609"),
            "ok",
        ])

        with patch("macos_app_mcp.applescript.asyncio.sleep", AsyncMock()) as sleep:
            result = await runner.execute("return 1", "Notes")

        assert result == "ok"
        assert runner._run.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_three_attempts(self):
        runner = AppleScriptRunner()
        runner._run = AsyncMock(side_effect=ConnectionInvalidError("-609"))

        with patch("macos_app_mcp.applescript.asyncio.sleep", AsyncMock()):
            with pytest.raises(ConnectionInvalidError, match="after 3 attempts"):
                await runner.execute("return 1", "Reminders")

        assert runner._run.await_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        runner = AppleScriptRunner()
        runner._run = AsyncMock(side_effect=ApplicationNotRunningError("-600"))

        with pytest.raises(ApplicationNotRunningError):
            await runner.execute("return 1", "Calendar")

        assert runner._run.await_count == 1


class TestSilentRunner:
    @pytest.mark.asyncio
    async def test_silent_runner_raises_without_error_log(self, caplog):
        runner = AppleScriptRunner(silent_expected_errors=True)
        proc = fake_process(stderr=b"Can't get note \"x\". (-1728)", returncode=1)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with caplog.at_level("ERROR", logger="macos_app_mcp.applescript"):
                with pytest.raises(AppleScriptError, match="-1728"):
                    await runner.execute("return 1")

        assert caplog.records == []

    def test_default_runner_is_not_silent(self):
        assert AppleScriptRunner().silent_expected_errors is False
