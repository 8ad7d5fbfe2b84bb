"""Tests for the osascript subprocess executor."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.apple.applescript_executor import LINE_SEPARATOR, AppleScriptExecutionError, AppleScriptExecutor


def _process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.returncode = returncode
    proc.wait = AsyncMock(return_value=returncode)
    return proc


@pytest.fixture
def executor(mock_console_logger, mock_error_logger) -> AppleScriptExecutor:
    return AppleScriptExecutor(mock_console_logger, mock_error_logger)


@pytest.mark.unit
class TestAppleScriptExecutor:
    """Tests for AppleScriptExecutor.run_osascript."""

    def test_rejects_non_positive_concurrency(self, mock_console_logger, mock_error_logger) -> None:
        with pytest.raises(ValueError, match="max_concurrent"):
            AppleScriptExecutor(mock_console_logger, mock_error_logger, max_concurrent=0)

    @pytest.mark.asyncio
    async def test_returns_unstripped_stdout(self, executor: AppleScriptExecutor) -> None:
        output = f"a\x1eb{LINE_SEPARATOR}c\x1ed{LINE_SEPARATOR}"
        proc = _process(stdout=output.encode())

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as create:
            result = await executor.run_osascript(["osascript", "fetch.applescript"], "fetch", 5.0)

        assert result == output
        assert create.await_args.args == ("osascript", "fetch.applescript")
        executor.console_logger.info.assert_called_once()

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, executor: AppleScriptExecutor) -> None:
        proc = _process(stderr=b"execution error: Music got an error (-1728)", returncode=1)

        with (
            patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)),
            pytest.raises(AppleScriptExecutionError, match="-1728") as exc_info,
        ):
            await executor.run_osascript(["osascript", "x.applescript"], "x", 5.0)

        assert exc_info.value.label == "x"
        executor.error_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_non_zero_exit_without_stderr(self, executor: AppleScriptExecutor) -> None:
        proc = _process(returncode=2)

        with (
            patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)),
            pytest.raises(AppleScriptExecutionError, match="return code 2"),
        ):
            await executor.run_osascript(["osascript", "x.applescript"], "x", 5.0)

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, executor: AppleScriptExecutor) -> None:
        async def hang() -> tuple[bytes, bytes]:
            await asyncio.sleep(10)
            return b"", b""

        proc = _process()
        proc.returncode = None
        proc.communicate = hang

        with (
            patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)),
            pytest.raises(AppleScriptExecutionError, match="timeout") as exc_info,
        ):
            await executor.run_osascript(["osascript", "slow.applescript"], "slow", 0.01)

        assert exc_info.value.errno == 110
        proc.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_stderr_on_success_is_a_warning(self, executor: AppleScriptExecutor) -> None:
        proc = _process(stdout=b"ok\n", stderr=b"deprecated call")

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            assert await executor.run_osascript(["osascript", "x.applescript"], "x", 5.0) == "ok\n"

        executor.console_logger.warning.assert_called_once()
