"""Dry Run Module.

Playback device used with ``--dry-run``: the catalog is still read from
Music.app, but plays are logged and recorded instead of performed, so no
play counts change.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import logging


class DryRunPlaybackDevice:
    """Playback device that logs plays instead of performing them."""

    def __init__(
        self,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        simulated_play_seconds: float = 0.0,
    ) -> None:
        """Initialize the DryRunPlaybackDevice.

        Args:
            console_logger: Logger for console output
            error_logger: Logger for error output
            simulated_play_seconds: Delay per simulated play, so progress output stays readable

        """
        self.console_logger = console_logger
        self.error_logger = error_logger
        self.simulated_play_seconds = simulated_play_seconds
        self.actions: list[dict[str, Any]] = []

    async def play_track_once(self, track_id: str) -> None:
        """Record a play of ``track_id`` without touching Music.app."""
        self.console_logger.info("DRY-RUN: Would play track %s once", track_id)
        self.actions.append({"action": "play", "track_id": track_id})
        await asyncio.sleep(self.simulated_play_seconds)

    async def stop(self) -> None:
        self.console_logger.debug("DRY-RUN: Would stop playback")
        self.actions.append({"action": "stop"})

    def get_actions(self) -> list[dict[str, Any]]:
        """Get the list of dry run actions recorded."""
        return self.actions

    @property
    def play_count(self) -> int:
        """Number of plays that would have been made."""
        return sum(1 for action in self.actions if action["action"] == "play")
