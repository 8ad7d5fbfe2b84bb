"""AppleScript file validation.

Script names come from code, never from the user, but the scripts directory
comes from config; both are checked before anything is handed to osascript.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import logging

SCRIPT_SUFFIXES = (".applescript", ".scpt")


class AppleScriptFileValidator:
    """Validates script paths against the configured scripts directory."""

    def __init__(self, apple_scripts_directory: str, error_logger: logging.Logger) -> None:
        self.apple_scripts_directory = Path(apple_scripts_directory)
        self.error_logger = error_logger

    def resolve_script(self, script_name: str) -> Path:
        """Resolve a script name to a readable file inside the scripts directory.

        Args:
            script_name: File name of the script, e.g. ``fetch_tracks.applescript``

        Returns:
            The resolved script path

        Raises:
            ValueError: If the name escapes the directory or has an unknown suffix
            FileNotFoundError: If the script does not exist or is a symlink

        """
        if not script_name or Path(script_name).name != script_name or script_name.startswith("."):
            msg = f"Invalid script name: {script_name!r}"
            self.error_logger.error(msg)
            raise ValueError(msg)

        if not script_name.endswith(SCRIPT_SUFFIXES):
            msg = f"Unsupported script type: {script_name}"
            self.error_logger.error(msg)
            raise ValueError(msg)

        script_path = self.apple_scripts_directory / script_name

        # Reject symlinks to prevent path traversal
        if script_path.is_symlink():
            msg = f"Symlinks not allowed: {script_path}"
            self.error_logger.error(msg)
            raise FileNotFoundError(msg)

        if not script_path.is_file():
            msg = f"AppleScript file does not exist: {script_path}"
            self.error_logger.error(msg)
            raise FileNotFoundError(msg)

        resolved = script_path.resolve()
        if not resolved.is_relative_to(self.apple_scripts_directory.resolve()):
            msg = f"Resolved path escapes allowed directory: {script_path} -> {resolved}"
            self.error_logger.error(msg)
            raise ValueError(msg)

        return resolved
