"""Pydantic models for configuration and library data."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models.normalization import normalize_for_matching

UNKNOWN_LABEL = "Unknown"
MIN_GROUP_MEMBERS = 2
MIN_GROUP_ALBUMS = 2


class LogLevel(StrEnum):
    """Log level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    NOTSET = "NOTSET"


class MusicAppConfig(BaseModel):
    """Music.app scripting and playback settings."""

    applescript_timeout_seconds: float = Field(default=60.0, gt=0)
    fetch_timeout_seconds: float = Field(default=900.0, gt=0)
    poll_interval_seconds: float = Field(default=0.5, gt=0)
    play_tail_seconds: float = Field(default=32.0, gt=0)
    near_end_threshold_seconds: float = Field(default=2.0, ge=0)
    settle_delay_seconds: float = Field(default=1.0, ge=0)
    max_play_seconds: float = Field(default=600.0, gt=0)


class ScanConfig(BaseModel):
    """Duplicate scan settings."""

    progress_step: int = Field(default=50, ge=1)


class LogLevelsConfig(BaseModel):
    """Log levels configuration."""

    console: LogLevel = LogLevel.INFO
    main_file: LogLevel = LogLevel.DEBUG


class LoggingConfig(BaseModel):
    """Logging configuration."""

    max_runs: int = Field(default=5, ge=0)
    main_log_file: str = "main/main.log"
    levels: LogLevelsConfig = Field(default_factory=LogLevelsConfig)


class AppConfig(BaseModel):
    """Main application configuration model."""

    apple_scripts_dir: str
    logs_base_dir: str
    ignored_items_file: str = "data/ignored_items.json"
    dry_run: bool = False

    music_app: MusicAppConfig = Field(default_factory=MusicAppConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Library data models


class TrackRecord(BaseModel):
    """Immutable snapshot of a single Music.app library entry."""

    id: str = Field(min_length=1)  # Persistent ID from Music.app
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    play_count: int = Field(default=0, ge=0)
    duration: float = Field(default=0.0, ge=0)
    date_added: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def display_title(self) -> str:
        """Title for display, ``Unknown`` when missing."""
        return self.title if self.title is not None else UNKNOWN_LABEL

    @property
    def display_artist(self) -> str:
        """Artist for display, ``Unknown`` when missing."""
        return self.artist if self.artist is not None else UNKNOWN_LABEL

    @property
    def display_album(self) -> str:
        """Album for display and album comparison, ``Unknown`` when missing."""
        return self.album if self.album is not None else UNKNOWN_LABEL

    @property
    def is_matchable(self) -> bool:
        """Whether the track has a usable title and artist for grouping."""
        return bool(normalize_for_matching(self.title)) and bool(normalize_for_matching(self.artist))

    def describe(self) -> str:
        """Short human label, e.g. ``'Song' - Artist [Album]``."""
        return f"'{self.display_title}' - {self.display_artist} [{self.display_album}]"


class CatalogSnapshot(BaseModel):
    """Tracks fetched from the catalog provider in a single read."""

    tracks: tuple[TrackRecord, ...] = ()
    fetched_at: datetime

    model_config = ConfigDict(frozen=True)

    def __len__(self) -> int:
        """Return the number of tracks in the snapshot."""
        return len(self.tracks)

    def find(self, track_id: str) -> TrackRecord | None:
        """Return the track with the given persistent ID, if present."""
        return next((track for track in self.tracks if track.id == track_id), None)


class DuplicateGroup(BaseModel):
    """Copies of the same song (same normalized title and artist) across albums.

    Members are ordered by descending play count. All derived values are
    computed from ``members`` on access.
    """

    key: str
    title: str
    artist: str
    members: tuple[TrackRecord, ...]

    model_config = ConfigDict(frozen=True)

    @field_validator("members")
    @classmethod
    def _require_two_members(cls, v: tuple[TrackRecord, ...]) -> tuple[TrackRecord, ...]:
        if len(v) < MIN_GROUP_MEMBERS:
            msg = f"a duplicate group needs at least {MIN_GROUP_MEMBERS} members, got {len(v)}"
            raise ValueError(msg)
        return v

    @property
    def source_candidate(self) -> TrackRecord:
        """Member with the highest play count (first one on ties)."""
        return max(self.members, key=lambda track: track.play_count)

    @property
    def target_candidates(self) -> list[TrackRecord]:
        """Members with strictly fewer plays than the source candidate."""
        top = self.source_candidate.play_count
        return [track for track in self.members if track.play_count < top]

    @property
    def max_play_count(self) -> int:
        return max(track.play_count for track in self.members)

    @property
    def min_play_count(self) -> int:
        return min(track.play_count for track in self.members)

    @property
    def has_play_count_spread(self) -> bool:
        """True when members disagree on play count."""
        return self.max_play_count != self.min_play_count

    @property
    def impact(self) -> int:
        """Play count spread used for ranking groups."""
        return self.max_play_count - self.min_play_count

    @property
    def album_count(self) -> int:
        """Number of distinct albums among members."""
        return len({track.display_album for track in self.members})

    @property
    def song_count(self) -> int:
        return len(self.members)

    def member_ids(self) -> list[str]:
        return [track.id for track in self.members]
