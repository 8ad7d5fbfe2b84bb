# core/logger.py
"""Logger module using QueueHandler for non-blocking file IO and RichHandler for console output.

Features:

1.  **Run Tracking:** Adds headers/footers with timestamps and duration for each run (`RunHandler`).
2.  **Log Rotation by Runs:** Keeps only the most recent N runs in the log file (`RunHandler.trim_log_to_max_runs`).
3.  **Rich Console Output:** `rich.logging.RichHandler` with markup for colorized, compact terminal output.
4.  **Path Aliases:** Shortens file paths in log records to `$SCRIPTS`, `$LOGS`, `~` (`shorten_path`).
5.  **Non-Blocking File Logging:** `QueueHandler` + `QueueListener` keep file I/O off the event loop.
6.  **Configuration Driven:** Paths and levels come from the typed `AppConfig`.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Golden Rule of Logging
# ---------------------------------------------------------------------------
# All runtime and debugging information goes through a configured
# ``logging.Logger``. ``print()`` is reserved for the final end-user result and
# for failures of the logging setup itself.
# ---------------------------------------------------------------------------
import logging
import os
import queue
import re
import sys
import time
import traceback
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from rich.status import Status

    from core.models.track_models import AppConfig

__all__ = [
    "LEVEL_ABBREV",
    "CompactFormatter",
    "LogFormat",
    "LoggerFilter",
    "RunHandler",
    "RunTrackingHandler",
    "SafeQueueListener",
    "create_console_logger",
    "create_fallback_loggers",
    "ensure_directory",
    "get_full_log_path",
    "get_log_levels_from_config",
    "get_loggers",
    "get_shared_console",
    "setup_queue_logging",
    "shorten_path",
    "spinner",
]

CONSOLE_LOGGER_NAME = "console_logger"
MAIN_LOGGER_NAME = "main_logger"
ERROR_LOGGER_NAME = "error_logger"
CONFIG_LOGGER_NAME = "config"

# Module-level shared console container (avoids global statement)
_console_holder: dict[str, Console] = {}


def get_shared_console() -> Console:
    """Get or create the shared Rich console instance.

    Logging, spinners and progress bars all render through this console so
    their output does not interleave.
    """
    if "console" not in _console_holder:
        _console_holder["console"] = Console()
    return _console_holder["console"]


class SafeQueueListener(QueueListener):
    """A QueueListener wrapper that tolerates repeated stop() calls."""

    def stop(self) -> None:
        """Stop the listener thread if it is still running."""
        try:
            if getattr(self, "_thread", None) is not None:
                super().stop()
        except (AttributeError, RuntimeError, TypeError) as e:
            print(f"Warning: Error stopping QueueListener: {e}", file=sys.stderr)


# ANSI codes for run separators in file logs; RichHandler colors the console
RESET = "\033[0m"
BLUE = "\033[34m"

LEVEL_ABBREV = {
    "DEBUG": "D",
    "INFO": "I",
    "WARNING": "W",
    "ERROR": "E",
    "CRITICAL": "C",
}


class LogFormat:
    """Rich markup helpers for consistent log formatting.

    Example:
        from core.logger import LogFormat as LF
        logger.info("Fetched %s tracks from %s", LF.number(12), LF.entity("Music.app"))
    """

    @staticmethod
    def entity(name: str) -> str:
        """Format entity/class/track name (yellow)."""
        return f"[yellow]{name}[/yellow]"

    @staticmethod
    def number(value: float) -> str:
        """Format numbers (bright white)."""
        return f"[bright_white]{value}[/bright_white]"


@asynccontextmanager
async def spinner(message: str, console: Console | None = None) -> AsyncGenerator[Status]:
    """Async context manager for an indeterminate spinner.

    Use this around calls where progress cannot be tracked, such as the
    AppleScript call that returns the whole library at once.

    Example:
        async with spinner("Fetching library from Music.app..."):
            output = await executor.run_osascript(cmd, label, timeout)
    """
    _console = console or get_shared_console()
    with _console.status(f"[cyan]{message}[/cyan]") as status:
        yield status


class LoggerFilter:
    """Filter that only allows records from specific logger names (and their children)."""

    def __init__(self, allowed_loggers: list[str]) -> None:
        self.allowed_loggers = set(allowed_loggers)

    def filter(self, record: logging.LogRecord) -> bool:
        return any(record.name == name or record.name.startswith(f"{name}.") for name in self.allowed_loggers)


class RunHandler:
    """Tracks runs, writes separators between them and trims logs to the last N runs."""

    def __init__(self, max_runs: int = 5) -> None:
        self.max_runs = max_runs
        self.current_run_id = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        self.run_start_time = time.monotonic()

    @staticmethod
    def format_run_header(logger_name: str) -> str:
        """Create a formatted header for a new run."""
        now_str = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        return f"\n\n{BLUE}{'=' * 80}{RESET}\n NEW RUN: {logger_name} - {now_str}\n{BLUE}{'=' * 80}{RESET}\n\n"

    def format_run_footer(self, logger_name: str) -> str:
        """Create a formatted footer with the elapsed run time."""
        elapsed = time.monotonic() - self.run_start_time
        return f"\n\n{BLUE}{'=' * 80}{RESET}\n END RUN: {logger_name} - Total time: {elapsed:.2f}s\n{BLUE}{'=' * 80}{RESET}\n\n"

    def trim_log_to_max_runs(self, log_file: str) -> None:
        """Trim a log file to the most recent ``max_runs`` runs, identified by run headers."""
        path = Path(log_file)
        if not path.exists() or self.max_runs <= 0:
            return

        try:
            with path.open(encoding="utf-8", errors="ignore") as f:
                lines = f.readlines()

            header_indices = [
                i
                for i, line in enumerate(lines)
                if re.match(r"^(\x1b\[\d+m)?={80}(\x1b\[0m)?$", line.strip())
                and i + 1 < len(lines)
                and lines[i + 1].strip().startswith("NEW RUN:")
            ]
            if len(header_indices) <= self.max_runs:
                return

            start_line_index = header_indices[-self.max_runs]
            temp_log_file = path.with_name(f"{path.name}.tmp")
            with temp_log_file.open("w", encoding="utf-8") as f:
                f.writelines(lines[start_line_index:])
            temp_log_file.replace(path)

        except OSError as e:
            print(f"Error trimming log file {log_file}: {e}", file=sys.stderr)


def ensure_directory(path: str, error_logger: logging.Logger | None = None) -> None:
    """Ensure that the given directory exists, creating it if necessary."""
    try:
        if path and not Path(path).exists():
            Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if error_logger:
            error_logger.exception("Error creating directory %s", path)
        else:
            print(f"ERROR: Error creating directory {path}: {e}", file=sys.stderr)


def get_full_log_path(config: AppConfig | None, relative_path: str, error_logger: logging.Logger | None = None) -> str:
    """Join the logs base directory with a relative path and make sure its directory exists."""
    logs_base_dir = config.logs_base_dir if config is not None else ""
    full_path = Path(logs_base_dir) / relative_path
    ensure_directory(str(full_path.parent), error_logger)
    return str(full_path)


def shorten_path(path: str, config: AppConfig | None = None) -> str:
    """Return a shortened, human-friendly representation of *path*.

    Priority of replacements (first match wins):
    1. Configured directories → ``$SCRIPTS``, ``$LOGS``.
    2. Current user's home directory → ``~``.
    3. Any other absolute path collapses to its file name.

    Never raises; falls back to the normalized path.
    """
    if not path:
        return path or ""

    norm_path = os.path.normpath(path)

    if config is not None:
        aliases = (
            (str(Path(config.apple_scripts_dir).resolve()), "$SCRIPTS"),
            (str(Path(config.logs_base_dir).resolve()), "$LOGS"),
        )
        for base_dir, alias in aliases:
            if base_dir and norm_path.startswith(base_dir):
                relative = os.path.relpath(norm_path, base_dir)
                return alias if relative == "." else f"{alias}{os.sep}{relative}"

    try:
        home_dir = str(Path.home())
    except (OSError, RuntimeError, KeyError):
        home_dir = ""
    if home_dir and norm_path.startswith(home_dir):
        return "~" if norm_path == home_dir else norm_path.replace(home_dir, "~", 1)

    if Path(norm_path).is_absolute() and Path(norm_path).parent.name:
        return Path(norm_path).name
    return norm_path


class CompactFormatter(logging.Formatter):
    """Compact file log formatter: abbreviated levels and shortened source paths."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str = "%H:%M:%S",
        style: Literal["%", "{", "$"] = "%",
        *,
        config: AppConfig | None = None,
    ) -> None:
        default_fmt = "%(asctime)s %(levelname)s [%(name)s] %(short_pathname)s:%(lineno)d - %(message)s"
        super().__init__(fmt if fmt is not None else default_fmt, datefmt, style)
        self.config = config

    def format(self, record: logging.LogRecord) -> str:
        """Format the record with an abbreviated level and a shortened path."""
        original_levelname = record.levelname
        record.short_pathname = shorten_path(record.pathname, self.config)
        record.levelname = LEVEL_ABBREV.get(original_levelname, original_levelname[:1])
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname
            del record.short_pathname


class RunTrackingHandler(logging.FileHandler):
    """File handler that writes run headers/footers and trims the file to ``max_runs`` runs on close."""

    def __init__(self, filename: str, *, run_handler: RunHandler | None = None, encoding: str = "utf-8") -> None:
        ensure_directory(str(Path(filename).parent))
        super().__init__(filename, mode="a", encoding=encoding)
        self.run_handler = run_handler
        self._header_written = False
        self._closed = False

    def emit(self, record: logging.LogRecord) -> None:
        """Write the run header before the first record, then the record itself."""
        if self.run_handler and not self._header_written and self.stream:
            try:
                self.stream.write(self.run_handler.format_run_header(record.name))
                self.flush()
            except OSError as header_error:
                print(f"Failed to write log header: {header_error}", file=sys.stderr)
                self.handleError(record)
            # one attempt per run
            self._header_written = True
        super().emit(record)

    def close(self) -> None:
        """Write the footer, close the stream, then trim old runs."""
        if self._closed:
            return
        self._closed = True

        try:
            if self.run_handler and self.stream:
                self.stream.write(self.run_handler.format_run_footer("Logger"))
                self.flush()
        except (OSError, ValueError) as e:
            print(f"ERROR: Failed to write log footer for {self.baseFilename}: {e}", file=sys.stderr)
        finally:
            super().close()
            if self.run_handler and self.run_handler.max_runs > 0:
                self.run_handler.trim_log_to_max_runs(self.baseFilename)


def get_log_levels_from_config(config: AppConfig) -> dict[str, int]:
    """Map configured level names to ``logging`` constants."""
    levels = config.logging.levels
    return {
        "console": logging.getLevelNamesMapping().get(levels.console.value, logging.INFO),
        "main_file": logging.getLevelNamesMapping().get(levels.main_file.value, logging.DEBUG),
    }


def create_console_logger(level: int) -> logging.Logger:
    """Create the console logger with a RichHandler (only once per process)."""
    console_logger = logging.getLogger(CONSOLE_LOGGER_NAME)
    if not console_logger.handlers:
        handler = RichHandler(
            level=level,
            console=get_shared_console(),
            show_path=False,
            enable_link_path=False,
            log_time_format="%H:%M:%S",
            markup=True,
        )
        console_logger.addHandler(handler)
        console_logger.setLevel(level)
        console_logger.propagate = False
    return console_logger


def setup_queue_logging(
    config: AppConfig,
    level: int,
    log_file: str,
    console_logger: logging.Logger,
) -> tuple[logging.Logger, SafeQueueListener]:
    """Set up queue-based file logging.

    Console records are mirrored to the main log file through the same queue,
    so the file has the full picture while the terminal stays readable.

    Returns:
        Tuple of (error_logger, listener)

    """
    file_formatter = CompactFormatter(
        "%(asctime)s %(levelname)s [%(name)s] %(short_pathname)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        config=config,
    )

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(-1)

    main_handler = RunTrackingHandler(log_file, run_handler=RunHandler(config.logging.max_runs))
    main_handler.setFormatter(file_formatter)
    main_handler.setLevel(level)
    main_handler.addFilter(LoggerFilter([CONSOLE_LOGGER_NAME, MAIN_LOGGER_NAME, ERROR_LOGGER_NAME, CONFIG_LOGGER_NAME]))

    listener = SafeQueueListener(log_queue, main_handler, respect_handler_level=True)
    listener.start()

    queue_handler = QueueHandler(log_queue)
    console_logger.addHandler(queue_handler)
    console_logger.setLevel(min(console_logger.level, level))

    def setup_logger(logger_name: str) -> logging.Logger:
        logger = logging.getLogger(logger_name)
        if not logger.handlers:
            logger.addHandler(queue_handler)
            logger.setLevel(level)
            logger.propagate = False
        return logger

    setup_logger(MAIN_LOGGER_NAME)
    setup_logger(CONFIG_LOGGER_NAME)
    error_logger = setup_logger(ERROR_LOGGER_NAME)
    return error_logger, listener


def get_loggers(config: AppConfig) -> tuple[logging.Logger, logging.Logger, SafeQueueListener | None]:
    """Create the console and error loggers plus the file logging listener.

    Note:
        Never raises. On setup failure, returns fallback loggers with a basic
        StreamHandler configuration and no listener.

    Returns:
        Tuple of (console_logger, error_logger, listener)

    """
    try:
        levels = get_log_levels_from_config(config)
        log_file = get_full_log_path(config, config.logging.main_log_file)
        console_logger = create_console_logger(levels["console"])
        error_logger, listener = setup_queue_logging(config, levels["main_file"], log_file, console_logger)
    except (ImportError, OSError, ValueError, AttributeError, TypeError) as e:
        return create_fallback_loggers(e)

    console_logger.debug("Logging setup with QueueListener and RichHandler complete.")
    return console_logger, error_logger, listener


def create_fallback_loggers(e: Exception) -> tuple[logging.Logger, logging.Logger, None]:
    """Create plain StreamHandler loggers when the main setup fails."""
    print(f"FATAL ERROR: Failed to configure logging with QueueListener and RichHandler: {e}", file=sys.stderr)
    traceback.print_exc(file=sys.stderr)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    logging.critical("Fallback basic logging configured due to error: %s", e)

    console_fallback = logging.getLogger("console_fallback")
    error_fallback = logging.getLogger("error_fallback")
    if not console_fallback.handlers:
        console_fallback.addHandler(logging.StreamHandler(sys.stdout))
    if not error_fallback.handlers:
        error_fallback.addHandler(logging.StreamHandler(sys.stderr))
    return console_fallback, error_fallback, None
