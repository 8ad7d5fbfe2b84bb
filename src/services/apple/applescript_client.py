"""AppleScript Client Module.

Thin layer over :class:`AppleScriptExecutor` that turns a script name and
arguments into a validated ``osascript`` command line.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.logger import LogFormat
from services.apple.applescript_executor import AppleScriptExecutor
from services.apple.file_validator import SCRIPT_SUFFIXES, AppleScriptFileValidator

if TYPE_CHECKING:
    from pathlib import Path

# Control characters would corrupt the separator-based output protocol
DANGEROUS_ARGUMENT_CHARACTERS = ("\x00", "\x1d", "\x1e", "\n", "\r")

REQUIRED_SCRIPTS = (
    "fetch_tracks.applescript",
    "play_track.applescript",
    "player_status.applescript",
    "stop_playback.applescript",
)


class AppleScriptClient:
    """Runs the bundled AppleScripts against Music.app.

    Attributes:
        apple_scripts_dir: Directory containing the AppleScript files
        default_timeout: Timeout applied when a call does not pass one

    """

    def __init__(
        self,
        apple_scripts_dir: str,
        default_timeout: float = 60.0,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
        executor: AppleScriptExecutor | None = None,
    ) -> None:
        """Initialize the AppleScript client."""
        self.console_logger = console_logger if console_logger is not None else logging.getLogger(__name__)
        self.error_logger = error_logger if error_logger is not None else self.console_logger
        self.apple_scripts_dir = apple_scripts_dir
        self.default_timeout = default_timeout
        self.file_validator = AppleScriptFileValidator(apple_scripts_dir, self.error_logger)
        self.executor = executor if executor is not None else AppleScriptExecutor(self.console_logger, self.error_logger)

    def check_scripts(self) -> list[str]:
        """Return the names of required scripts missing from the scripts directory."""
        scripts_path = self.file_validator.apple_scripts_directory
        if not scripts_path.is_dir():
            self.error_logger.critical("AppleScript directory not accessible: %s", scripts_path)
            return list(REQUIRED_SCRIPTS)

        present = {f.name for f in scripts_path.iterdir() if f.name.endswith(SCRIPT_SUFFIXES)}
        if missing := [name for name in REQUIRED_SCRIPTS if name not in present]:
            self.error_logger.warning("Missing required AppleScripts: %s", ", ".join(missing))
        else:
            self.console_logger.debug("%s ready (%d scripts)", LogFormat.entity("AppleScriptClient"), len(present))
        return missing

    def _build_command(self, script_path: Path, arguments: list[str] | None) -> list[str]:
        cmd = ["osascript", str(script_path)]
        for arg in arguments or []:
            if any(c in arg for c in DANGEROUS_ARGUMENT_CHARACTERS):
                msg = f"Potentially dangerous characters in argument: {arg!r}"
                self.error_logger.error(msg)
                raise ValueError(msg)
            cmd.append(arg)
        return cmd

    async def run_script(
        self,
        script_name: str,
        arguments: list[str] | None = None,
        timeout: float | None = None,
        label: str | None = None,
    ) -> str:
        """Execute an AppleScript and return its raw output.

        :param script_name: The name of the AppleScript file to execute.
        :param arguments: List of arguments to pass to the script.
        :param timeout: Timeout in seconds, defaults to ``default_timeout``
        :param label: Custom label for logging (defaults to script_name)
        :return: Script stdout
        :raises ValueError: For invalid script names or arguments
        :raises FileNotFoundError: If the script is missing
        :raises OSError: If osascript fails or times out
        """
        script_path = self.file_validator.resolve_script(script_name)
        cmd = self._build_command(script_path, arguments)
        timeout_float = float(timeout if timeout is not None else self.default_timeout)

        self.console_logger.debug("Executing AppleScript: %s [timeout: %ss]", script_name, timeout_float)
        return await self.executor.run_osascript(cmd, label or script_name, timeout_float)
