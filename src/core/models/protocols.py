"""Service Protocol Definitions.

This module defines protocols (interfaces) for the external collaborators the
core talks to: the catalog provider, the playback device and the ignored
items store. By using protocols instead of concrete classes, the detection
engine and the sync controller stay independent of Music.app and can be
tested with in-memory fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from core.models.track_models import TrackRecord


# noinspection PyMissingOrEmptyDocstring
@runtime_checkable
class CatalogProviderProtocol(Protocol):
    """Source of library track metadata."""

    async def fetch_all_tracks(self) -> list[TrackRecord]:
        """Fetch every track in the library.

        May be slow; treated as blocking I/O by callers.

        Returns:
            Track records in library order

        """
        ...


# noinspection PyMissingOrEmptyDocstring
@runtime_checkable
class PlaybackDeviceProtocol(Protocol):
    """Device that can play a single track through to its end."""

    async def play_track_once(self, track_id: str) -> None:
        """Play the track once and return when the play-through has finished.

        Args:
            track_id: Persistent ID of the track to play

        Raises:
            PlaybackFailedError: If the device could not play the track

        """
        ...

    async def stop(self) -> None:
        """Stop any playback started by this device."""
        ...


# noinspection PyMissingOrEmptyDocstring
@runtime_checkable
class IgnoredItemsProtocol(Protocol):
    """Predicates over songs and groups the user dismissed."""

    def is_song_ignored(self, track_id: str) -> bool: ...

    def is_group_ignored(self, group_key: str) -> bool: ...
