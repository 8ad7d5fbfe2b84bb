"""AppleScript integration module.

This module provides the Music.app side of the application: running the
bundled AppleScripts, reading the library and driving the player.

Public API:
    - AppleScriptClient: Runs the bundled scripts with validated arguments
    - AppleScriptExecutor: Low-level osascript subprocess runner
    - AppleScriptExecutionError: Exception for execution failures
    - MusicAppCatalog: Catalog provider backed by the Music.app library
    - MusicAppPlaybackDevice: Playback device backed by the Music.app player
"""

from services.apple.applescript_client import AppleScriptClient
from services.apple.applescript_executor import AppleScriptExecutionError, AppleScriptExecutor
from services.apple.music_library import MusicAppCatalog
from services.apple.music_player import MusicAppPlaybackDevice

__all__ = [
    "AppleScriptClient",
    "AppleScriptExecutionError",
    "AppleScriptExecutor",
    "MusicAppCatalog",
    "MusicAppPlaybackDevice",
]
