"""Music.app playback device.

Plays one track through its tail end and waits until Music.app reports the
play-through finished, which is what makes Music.app count the play. Only the
last ``play_tail_seconds`` (at most the last 20%) of the track is played.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.exceptions import PlaybackFailedError
from core.logger import LogFormat
from core.models.track_models import MusicAppConfig
from services.apple.applescript_executor import FIELD_SEPARATOR

if TYPE_CHECKING:
    from services.apple.applescript_client import AppleScriptClient

PLAY_TRACK_SCRIPT = "play_track.applescript"
PLAYER_STATUS_SCRIPT = "player_status.applescript"
STOP_PLAYBACK_SCRIPT = "stop_playback.applescript"
ERROR_PREFIX = "ERROR:"

STATE_PLAYING = "playing"
STATE_PAUSED = "paused"
STATE_STOPPED = "stopped"


def tail_start_position(duration: float, play_tail_seconds: float) -> float:
    """Position to seek to before playing: the later of ``duration - tail`` and 80%."""
    return max(duration - play_tail_seconds, duration * 0.8, 0.0)


@dataclass(frozen=True, slots=True)
class PlayerStatus:
    """One reading of the Music.app player."""

    state: str
    track_id: str | None
    position: float
    duration: float

    @classmethod
    def parse(cls, raw_output: str) -> PlayerStatus:
        """Parse ``state, track id, position, duration`` separated by ASCII 30.

        Raises:
            ValueError: If the output does not have four fields
        """
        fields = raw_output.strip().split(FIELD_SEPARATOR)
        if len(fields) != 4:
            msg = f"Unexpected player status output: {raw_output[:100]!r}"
            raise ValueError(msg)
        state, track_id, position, duration = fields
        return cls(
            state=state.strip().lower(),
            track_id=track_id.strip() or None,
            position=_to_seconds(position),
            duration=_to_seconds(duration),
        )

    def is_playing(self, track_id: str) -> bool:
        return self.state == STATE_PLAYING and self.track_id == track_id

    def has_finished(self, track_id: str, near_end_threshold: float) -> bool:
        """Whether the play-through of ``track_id`` is over.

        Music.app either stops, moves on to another track, or (with repeat
        off at the end of a playlist) pauses at the very end. Only meaningful
        once ``track_id`` has been seen playing.
        """
        if self.state == STATE_STOPPED or self.track_id != track_id:
            return True
        return self.state == STATE_PAUSED and self.duration - self.position <= near_end_threshold


def _to_seconds(value: str) -> float:
    text = value.strip().replace(",", ".")
    if not text or text == "missing value":
        return 0.0
    return float(text)


class MusicAppPlaybackDevice:
    """Playback device that drives the Music.app player over AppleScript."""

    def __init__(
        self,
        client: AppleScriptClient,
        settings: MusicAppConfig | None = None,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.settings = settings if settings is not None else MusicAppConfig()
        self.console_logger = console_logger if console_logger is not None else logging.getLogger(__name__)
        self.error_logger = error_logger if error_logger is not None else self.console_logger

    async def _run(self, script_name: str, arguments: list[str] | None = None) -> str:
        try:
            output = await self.client.run_script(
                script_name,
                arguments,
                timeout=self.settings.applescript_timeout_seconds,
            )
        except (OSError, ValueError) as e:
            msg = f"{script_name} failed: {e}"
            raise PlaybackFailedError(msg) from e

        stripped = output.strip()
        if stripped.startswith(ERROR_PREFIX):
            msg = f"Music.app: {stripped[len(ERROR_PREFIX):].strip()}"
            raise PlaybackFailedError(msg)
        return stripped

    async def play_track_once(self, track_id: str) -> None:
        """Play the tail of a track and return once Music.app has finished it.

        Raises:
            PlaybackFailedError: If a script fails, the track cannot be found,
                or the play-through does not finish within ``max_play_seconds``

        """
        output = await self._run(PLAY_TRACK_SCRIPT, [track_id, str(self.settings.play_tail_seconds)])
        try:
            duration = _to_seconds(output)
        except ValueError:
            duration = 0.0
        self.console_logger.debug(
            "Playing %s from %.1fs of %.1fs",
            LogFormat.entity(track_id),
            tail_start_position(duration, self.settings.play_tail_seconds),
            duration,
        )

        await self._wait_until_finished(track_id)
        # give Music.app time to register the play before the next one starts
        await asyncio.sleep(self.settings.settle_delay_seconds)

    async def _wait_until_finished(self, track_id: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.max_play_seconds
        # a stop or another track only ends the play once the target has started
        started = False

        while True:
            await asyncio.sleep(self.settings.poll_interval_seconds)
            output = await self._run(PLAYER_STATUS_SCRIPT)
            try:
                status = PlayerStatus.parse(output)
            except ValueError as e:
                raise PlaybackFailedError(str(e)) from e

            if not started and status.is_playing(track_id):
                started = True
                self.console_logger.debug("Track %s started playing", track_id)
            if started and status.has_finished(track_id, self.settings.near_end_threshold_seconds):
                return
            if loop.time() >= deadline:
                if not started:
                    msg = f"Track {track_id} never started playing within {self.settings.max_play_seconds}s"
                else:
                    msg = f"Track {track_id} did not finish within {self.settings.max_play_seconds}s"
                raise PlaybackFailedError(msg)

    async def stop(self) -> None:
        """Stop the Music.app player. Failures are logged, not raised."""
        try:
            await self._run(STOP_PLAYBACK_SCRIPT)
        except PlaybackFailedError as e:
            self.error_logger.warning("Could not stop Music.app playback: %s", e)
