"""Core exceptions for configuration, scanning and play count sync.

Each domain error carries the :class:`OutcomeKind` it maps to, so service
boundaries can turn any of them into an ``Outcome`` without a lookup table.
"""

from __future__ import annotations

from typing import ClassVar

from core.models.outcome import OutcomeKind


class ConfigurationError(Exception):
    """Raised when configuration loading or parsing fails."""

    def __init__(self, message: str, config_path: str | None = None) -> None:
        """Initialize the configuration error.

        Args:
            message: Error description
            config_path: Path to the config file that caused the error

        """
        super().__init__(message)
        self.config_path = config_path


class MusicMatcherError(Exception):
    """Base class for recoverable domain errors."""

    kind: ClassVar[OutcomeKind]


class SameTrackSelectedError(MusicMatcherError):
    """Source and target resolve to the same library track."""

    kind = OutcomeKind.SAME_TRACK_SELECTED

    def __init__(self, track_id: str) -> None:
        super().__init__(
            "You've selected the same song for both source and target. Please choose different versions of the song."
        )
        self.track_id = track_id


class NothingToReconcileError(MusicMatcherError):
    """The chosen mode requires zero plays."""

    kind = OutcomeKind.NOTHING_TO_RECONCILE


class ScanSupersededError(MusicMatcherError):
    """A newer scan request replaced this one."""

    kind = OutcomeKind.SCAN_SUPERSEDED

    def __init__(self, generation: int | None = None) -> None:
        super().__init__("Scan was superseded by a newer scan request.")
        self.generation = generation


class JobAlreadyRunningError(MusicMatcherError):
    """A sync job is already running."""

    kind = OutcomeKind.JOB_ALREADY_RUNNING

    def __init__(self, running_job_id: str) -> None:
        super().__init__(f"Another play count sync ({running_job_id}) is already running.")
        self.running_job_id = running_job_id


class JobNotStartableError(MusicMatcherError):
    """The job is not idle (already finished or started)."""

    kind = OutcomeKind.JOB_NOT_STARTABLE


class CatalogUnavailableError(MusicMatcherError):
    """The catalog provider failed to return a snapshot."""

    kind = OutcomeKind.CATALOG_UNAVAILABLE

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class PlaybackFailedError(MusicMatcherError):
    """The playback device could not complete a play-through."""

    kind = OutcomeKind.PLAYBACK_FAILED


class TrackNotFoundError(MusicMatcherError):
    """No library track has the requested persistent ID."""

    kind = OutcomeKind.TRACK_NOT_FOUND

    def __init__(self, track_id: str) -> None:
        super().__init__(f"No track with persistent ID {track_id} was found in the library.")
        self.track_id = track_id
