"""Music.app catalog provider.

Reads the whole library with one AppleScript call. The script emits one
record per track, fields separated by ASCII 30 and records by ASCII 29:

    id, name, artist, album, played count, duration, date added
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from core.logger import LogFormat, spinner
from core.models.track_models import TrackRecord
from services.apple.applescript_executor import FIELD_SEPARATOR, LINE_SEPARATOR

if TYPE_CHECKING:
    from services.apple.applescript_client import AppleScriptClient

FETCH_TRACKS_SCRIPT = "fetch_tracks.applescript"
EXPECTED_FIELD_COUNT = 7
DATE_ADDED_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_TRACKS_FOUND = "NO_TRACKS_FOUND"
ERROR_PREFIX = "ERROR:"


def _optional_text(value: str) -> str | None:
    # AppleScript returns "" for missing values and "missing value" for unset properties
    if value == "" or value == "missing value":
        return None
    return value


def _parse_int(value: str) -> int:
    try:
        return max(int(value.strip() or 0), 0)
    except ValueError:
        return 0


def _parse_duration(value: str) -> float:
    # Duration is a real; some locales format it with a decimal comma
    try:
        return max(float(value.strip().replace(",", ".") or 0), 0.0)
    except ValueError:
        return 0.0


def _parse_date(value: str) -> datetime | None:
    text = value.strip()
    if not text or text == "missing value":
        return None
    try:
        return datetime.strptime(text, DATE_ADDED_FORMAT)
    except ValueError:
        return None


def parse_track_line(line: str) -> TrackRecord | None:
    """Parse one record of script output, or return None if it is unusable."""
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) < EXPECTED_FIELD_COUNT:
        return None

    track_id, name, artist, album, played_count, duration, date_added = fields[:EXPECTED_FIELD_COUNT]
    try:
        return TrackRecord(
            id=track_id.strip(),
            title=_optional_text(name),
            artist=_optional_text(artist),
            album=_optional_text(album),
            play_count=_parse_int(played_count),
            duration=_parse_duration(duration),
            date_added=_parse_date(date_added),
        )
    except ValidationError:
        return None


def parse_track_output(raw_output: str, error_logger: logging.Logger | None = None) -> list[TrackRecord]:
    """Parse the fetch script output into track records in library order.

    Records with too few fields or an empty ID are skipped and logged.
    """
    log = error_logger if error_logger is not None else logging.getLogger(__name__)
    tracks: list[TrackRecord] = []

    for line in raw_output.split(LINE_SEPARATOR):
        if not line.strip():
            continue
        track = parse_track_line(line.lstrip("\n"))
        if track is None:
            log.warning("Skipping malformed track record: %s", line[:100])
            continue
        tracks.append(track)

    return tracks


class MusicAppCatalog:
    """Catalog provider backed by the local Music.app library."""

    def __init__(
        self,
        client: AppleScriptClient,
        fetch_timeout: float = 900.0,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.fetch_timeout = fetch_timeout
        self.console_logger = console_logger if console_logger is not None else logging.getLogger(__name__)
        self.error_logger = error_logger if error_logger is not None else self.console_logger

    async def fetch_all_tracks(self) -> list[TrackRecord]:
        """Fetch every track from Music.app.

        Returns:
            Track records in library order

        Raises:
            OSError: If osascript fails or times out
            RuntimeError: If the script reports an error

        """
        async with spinner("Fetching library from Music.app..."):
            raw_output = await self.client.run_script(FETCH_TRACKS_SCRIPT, timeout=self.fetch_timeout)

        stripped = raw_output.strip()
        if not stripped or stripped == NO_TRACKS_FOUND:
            self.console_logger.info("Music.app library is empty")
            return []
        if stripped.startswith(ERROR_PREFIX):
            msg = f"Music.app reported an error: {stripped[len(ERROR_PREFIX):].strip()}"
            raise RuntimeError(msg)

        tracks = parse_track_output(raw_output, self.error_logger)
        self.console_logger.info("Fetched %s tracks from %s", LogFormat.number(len(tracks)), LogFormat.entity("Music.app"))
        return tracks
