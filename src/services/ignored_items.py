"""Ignored songs and groups, persisted as a JSON file.

The file keeps full track details and the time each item was ignored, so the
``ignored`` listing never has to look anything up in Music.app. Every change
is written immediately through a temporary file and an atomic rename.
"""

from __future__ import annotations

import logging
import tempfile
from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from core.logger import LogFormat, ensure_directory, shorten_path
from core.models.ignored_models import IgnoredGroup, IgnoredItemsData, IgnoredSong

if TYPE_CHECKING:
    from core.models.track_models import DuplicateGroup, TrackRecord


class IgnoredItemsStore:
    """User's ignored songs (by track id) and groups (by group key)."""

    def __init__(
        self,
        file_path: str | Path,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        self.file_path = Path(file_path)
        self.console_logger = console_logger if console_logger is not None else logging.getLogger(__name__)
        self.error_logger = error_logger if error_logger is not None else self.console_logger
        self._songs: dict[str, IgnoredSong] = {}
        self._groups: dict[str, IgnoredGroup] = {}

    # Persistence

    def load(self) -> None:
        """Load ignored items from disk.

        A missing file means nothing is ignored. An unreadable or invalid file
        is logged and treated the same way; it is overwritten on the next change.
        """
        self._songs.clear()
        self._groups.clear()

        if not self.file_path.exists():
            self.console_logger.debug("Ignored items file %s not found; starting fresh", shorten_path(str(self.file_path)))
            return

        try:
            data = IgnoredItemsData.model_validate_json(self.file_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            self.error_logger.warning("Failed to load ignored items from %s: %s", self.file_path, e)
            return

        self._songs = {song.track_id: song for song in data.songs}
        self._groups = {group.key: group for group in data.groups}
        self.console_logger.info(
            "Loaded %s ignored songs and %s ignored groups",
            LogFormat.number(len(self._songs)),
            LogFormat.number(len(self._groups)),
        )

    def _save(self) -> None:
        data = IgnoredItemsData(songs=list(self._songs.values()), groups=list(self._groups.values()))
        ensure_directory(str(self.file_path.parent), self.error_logger)
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=str(self.file_path.parent), delete=False) as tmp_file:
            temp_path = Path(tmp_file.name)
            try:
                tmp_file.write(data.model_dump_json(indent=2))
            except OSError:
                tmp_file.close()
                temp_path.unlink(missing_ok=True)
                raise
        try:
            temp_path.replace(self.file_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            self.error_logger.error("Failed to save ignored items to %s: %s", self.file_path, e)
            raise
        self.console_logger.debug(
            "Saved %d ignored songs and %d ignored groups to %s",
            len(self._songs),
            len(self._groups),
            shorten_path(str(self.file_path)),
        )

    # Predicates

    def is_song_ignored(self, track_id: str) -> bool:
        return track_id in self._songs

    def is_group_ignored(self, group_key: str) -> bool:
        return group_key in self._groups

    # Mutations

    def ignore_song(self, track: TrackRecord, group_key: str) -> None:
        """Ignore one track; it is dropped from every group it belongs to."""
        self._songs[track.id] = IgnoredSong(track=track, group_key=group_key)
        self._save()
        self.console_logger.info("Ignored song %s", LogFormat.entity(track.describe()))

    def ignore_group(self, group: DuplicateGroup) -> None:
        """Ignore a whole group, replacing an earlier entry with the same key."""
        self._groups[group.key] = IgnoredGroup.from_group(group)
        self._save()
        self.console_logger.info(
            "Ignored group %s by %s (%d songs)",
            LogFormat.entity(group.title),
            group.artist,
            group.song_count,
        )

    def restore_song(self, track_id: str) -> bool:
        """Stop ignoring a track. Returns False if it was not ignored."""
        if self._songs.pop(track_id, None) is None:
            return False
        self._save()
        self.console_logger.info("Restored song %s", track_id)
        return True

    def restore_group(self, group_key: str) -> bool:
        """Stop ignoring a group. Returns False if it was not ignored."""
        group = self._groups.pop(group_key, None)
        if group is None:
            return False
        self._save()
        self.console_logger.info("Restored group %s by %s", LogFormat.entity(group.title), group.artist)
        return True

    def clear_songs(self) -> int:
        """Forget all ignored songs and return how many there were."""
        count = len(self._songs)
        self._songs.clear()
        self._save()
        self.console_logger.info("Cleared %d ignored songs", count)
        return count

    def clear_groups(self) -> int:
        """Forget all ignored groups and return how many there were."""
        count = len(self._groups)
        self._groups.clear()
        self._save()
        self.console_logger.info("Cleared %d ignored groups", count)
        return count

    def clear_all(self) -> int:
        return self.clear_songs() + self.clear_groups()

    # Views

    @property
    def songs(self) -> list[IgnoredSong]:
        """Ignored songs, oldest first."""
        return sorted(self._songs.values(), key=lambda song: song.ignored_at)

    @property
    def groups(self) -> list[IgnoredGroup]:
        """Ignored groups, oldest first."""
        return sorted(self._groups.values(), key=lambda group: group.ignored_at)

    def ignored_songs_by_group(self) -> dict[str, list[IgnoredSong]]:
        """Ignored songs keyed by the group they were ignored from."""
        grouped: dict[str, list[IgnoredSong]] = defaultdict(list)
        for song in self.songs:
            grouped[song.group_key].append(song)
        return dict(grouped)

    @property
    def total_ignored(self) -> int:
        return len(self._songs) + len(self._groups)

    @property
    def has_ignored_items(self) -> bool:
        return self.total_ignored > 0
