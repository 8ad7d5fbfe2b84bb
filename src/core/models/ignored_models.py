"""Persisted records of songs and groups the user chose to ignore."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from core.models.track_models import DuplicateGroup, TrackRecord

IGNORED_ITEMS_SCHEMA_VERSION = 1


def _utc_now() -> datetime:
    return datetime.now(UTC)


class IgnoredSong(BaseModel):
    """A single track hidden from every duplicate group it appears in."""

    track: TrackRecord
    group_key: str  # key of the group the song was ignored from
    ignored_at: datetime = Field(default_factory=_utc_now)

    model_config = ConfigDict(frozen=True)

    @property
    def track_id(self) -> str:
        return self.track.id


class IgnoredGroup(BaseModel):
    """A whole duplicate group hidden from scan results.

    Stores the display forms and members as they were when ignored, so the
    list can be shown without re-reading the library.
    """

    key: str
    title: str
    artist: str
    members: tuple[TrackRecord, ...] = ()
    ignored_at: datetime = Field(default_factory=_utc_now)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_group(cls, group: DuplicateGroup) -> IgnoredGroup:
        return cls(key=group.key, title=group.title, artist=group.artist, members=group.members)


class IgnoredItemsData(BaseModel):
    """On-disk layout of the ignored items file."""

    version: int = IGNORED_ITEMS_SCHEMA_VERSION
    songs: list[IgnoredSong] = Field(default_factory=list)
    groups: list[IgnoredGroup] = Field(default_factory=list)
