"""AppleScript subprocess execution module.

This module handles the low-level subprocess execution for AppleScript
commands: timeout handling, stderr reporting and process cleanup.
"""

from __future__ import annotations

import asyncio
import asyncio.subprocess
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import logging


LOG_PREVIEW_LENGTH = 200  # characters shown when previewing long outputs/stderr
RESULT_PREVIEW_LENGTH = 50  # characters shown when previewing small script results

# Separators used by the fetch script output
FIELD_SEPARATOR = "\x1e"  # ASCII 30
LINE_SEPARATOR = "\x1d"  # ASCII 29


class AppleScriptExecutionError(OSError):
    """Raised when an osascript process fails or times out."""

    def __init__(self, message: str, label: str, errno_code: int | None = None) -> None:
        """Initialize the execution error.

        Args:
            message: Error description
            label: Script label for context
            errno_code: Optional errno code (110 for timeouts)

        """
        super().__init__(errno_code, message)
        self.label = label


class AppleScriptExecutor:
    """Runs osascript subprocesses.

    Music.app handles one scripting request at a time reliably, so calls are
    serialized through a semaphore (``max_concurrent`` defaults to 1).
    """

    def __init__(
        self,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        max_concurrent: int = 1,
    ) -> None:
        if max_concurrent <= 0:
            msg = "max_concurrent must be a positive integer"
            raise ValueError(msg)
        self.console_logger = console_logger
        self.error_logger = error_logger
        self.semaphore = asyncio.Semaphore(max_concurrent)

    def log_script_success(self, label: str, script_result: str, elapsed: float) -> None:
        """Log a finished script with a size summary or a short preview."""
        if LINE_SEPARATOR in script_result:
            record_count = script_result.count(LINE_SEPARATOR)
            size_kb = len(script_result.encode()) / 1024
            self.console_logger.info("◁ %s: %d records (%.1fKB, %.1fs)", label, record_count, size_kb, elapsed)
            return

        preview_text = script_result.strip()
        preview = f"{preview_text[:RESULT_PREVIEW_LENGTH]}..." if len(preview_text) > RESULT_PREVIEW_LENGTH else preview_text
        self.console_logger.debug("◁ %s (%dB, %.1fs) %s", label, len(script_result.encode()), elapsed, preview)

    async def cleanup_process(self, proc: asyncio.subprocess.Process, label: str) -> None:
        """Make sure the process is gone, killing it if it is still running."""
        if proc.returncode is not None:
            return
        try:
            proc.kill()
            async with asyncio.timeout(5):
                await proc.wait()
            self.console_logger.debug("Process for %s killed and cleaned up", label)
        except (TimeoutError, ProcessLookupError) as e:
            self.console_logger.warning("Could not kill or wait for process %s during cleanup: %s", label, e)

    async def run_osascript(self, cmd: list[str], label: str, timeout_seconds: float) -> str:
        """Run an osascript command and return its stdout.

        Args:
            cmd: Command to execute as a list of strings
            label: Label for logging
            timeout_seconds: Timeout in seconds

        Returns:
            Raw stdout; separator characters are preserved

        Raises:
            AppleScriptExecutionError: On non-zero exit or timeout
            OSError: If the process cannot be started

        """
        async with self.semaphore:
            start_time = time.monotonic()
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                async with asyncio.timeout(timeout_seconds):
                    stdout, stderr = await proc.communicate()
            except TimeoutError as e:
                self.error_logger.error("⊗ %s timeout: %ss exceeded", label, timeout_seconds)
                msg = f"timeout after {timeout_seconds}s"
                raise AppleScriptExecutionError(msg, label, errno_code=110) from e
            except asyncio.CancelledError:
                self.console_logger.info("⊗ %s cancelled", label)
                raise
            finally:
                await self.cleanup_process(proc, label)

        elapsed = time.monotonic() - start_time
        stderr_text = stderr.decode(errors="replace").strip() if stderr else ""

        if proc.returncode != 0:
            error_msg = stderr_text or f"return code {proc.returncode}"
            self.error_logger.error("◁ %s failed with return code %s: %s", label, proc.returncode, error_msg[:LOG_PREVIEW_LENGTH])
            raise AppleScriptExecutionError(error_msg, label)

        if stderr_text:
            self.console_logger.warning("◁ %s stderr: %s", label, stderr_text[:LOG_PREVIEW_LENGTH])

        # Don't strip() here as it removes separator characters
        script_result = stdout.decode(errors="replace")
        self.log_script_success(label, script_result, elapsed)
        return script_result
