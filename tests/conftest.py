"""Shared fixtures. Nothing here talks to a real osascript."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from macos_app_mcp.applescript import AppleScriptRunner
from macos_app_mcp.config import Settings
from macos_app_mcp.oplog import OperationLogStore


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        log_path=tmp_path / "logs" / "operations.log",
        allow_delete=True,
        allow_update=True,
    )


@pytest.fixture
def store(settings: Settings) -> OperationLogStore:
    return OperationLogStore(settings)


@pytest.fixture
def runner() -> MagicMock:
    """A runner whose execute() is scripted per test."""
    mock = MagicMock(spec=AppleScriptRunner)
    mock.execute = AsyncMock(return_value="")
    mock.parse_list = AppleScriptRunner.parse_list
    return mock
