"""Library scan service.

Fetches a catalog snapshot, runs duplicate detection in a worker thread and
removes ignored items from the result. Only one scan is live at a time: a new
``scan()`` call supersedes the running one, whose worker stops at the next
track and whose caller gets a ``SCAN_SUPERSEDED`` outcome. Progress from a
superseded scan is never delivered.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from core.exceptions import CatalogUnavailableError, ScanSupersededError, TrackNotFoundError
from core.logger import LogFormat
from core.models.outcome import Outcome
from core.models.track_models import CatalogSnapshot
from core.tracks.duplicate_detection import detect_duplicates
from core.tracks.ignored_filter import apply_ignored_filter

if TYPE_CHECKING:
    from core.models.protocols import CatalogProviderProtocol, IgnoredItemsProtocol
    from core.models.track_models import DuplicateGroup, TrackRecord

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True, slots=True)
class ScanReport:
    """Result of one completed scan.

    Attributes:
        groups: Duplicate groups after ignored items were removed, highest impact first
        total_scanned: Number of tracks in the snapshot
        duplicate_song_count: Number of tracks across all reported groups
        ignored_count: Duplicate tracks hidden by the ignored songs and groups
        fetched_at: When the snapshot was read

    """

    groups: tuple[DuplicateGroup, ...]
    total_scanned: int
    duplicate_song_count: int
    ignored_count: int
    fetched_at: datetime

    @property
    def group_count(self) -> int:
        return len(self.groups)

    def find_group(self, group_key: str) -> DuplicateGroup | None:
        return next((group for group in self.groups if group.key == group_key), None)


class LibraryScanService:
    """Owns the latest catalog snapshot and runs duplicate scans over it."""

    def __init__(
        self,
        catalog: CatalogProviderProtocol,
        ignored: IgnoredItemsProtocol,
        progress_step: int = 50,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        self.catalog = catalog
        self.ignored = ignored
        self.progress_step = progress_step
        self.console_logger = console_logger if console_logger is not None else logging.getLogger(__name__)
        self.error_logger = error_logger if error_logger is not None else self.console_logger

        self._generation = 0
        self._cancel_token: threading.Event | None = None
        self.snapshot: CatalogSnapshot | None = None
        self.last_report: ScanReport | None = None

    @property
    def is_scanning(self) -> bool:
        return self._cancel_token is not None

    async def _fetch_snapshot(self) -> CatalogSnapshot:
        try:
            tracks = await self.catalog.fetch_all_tracks()
        except (OSError, RuntimeError, ValueError) as e:
            self.error_logger.error("Could not read the music library: %s", e)
            msg = f"Could not read the music library: {e}"
            raise CatalogUnavailableError(msg, cause=e) from e
        return CatalogSnapshot(tracks=tuple(tracks), fetched_at=datetime.now(UTC))

    async def scan(self, on_progress: ProgressCallback | None = None) -> Outcome[ScanReport]:
        """Scan the library for duplicate groups.

        Args:
            on_progress: Receives fractions in ``[0, 1]`` on the event loop
                thread, in non-decreasing order, ending with ``1.0``

        Returns:
            Success with the report, ``SCAN_SUPERSEDED`` if a newer scan
            replaced this one, or ``CATALOG_UNAVAILABLE``

        """
        if self._cancel_token is not None:
            self.console_logger.info("Superseding running scan")
            self._cancel_token.set()

        self._generation += 1
        generation = self._generation
        token = threading.Event()
        self._cancel_token = token

        def is_current() -> bool:
            return self._generation == generation and not token.is_set()

        try:
            try:
                snapshot = await self._fetch_snapshot()
            except CatalogUnavailableError as e:
                if not is_current():
                    return Outcome.from_error(ScanSupersededError(generation))
                return Outcome.from_error(e)

            if not is_current():
                return Outcome.from_error(ScanSupersededError(generation))

            loop = asyncio.get_running_loop()

            def deliver(fraction: float) -> None:
                if on_progress is not None and is_current():
                    on_progress(fraction)

            def relay(fraction: float) -> None:
                # called from the worker thread
                loop.call_soon_threadsafe(deliver, fraction)

            try:
                detected = await asyncio.to_thread(
                    detect_duplicates,
                    snapshot.tracks,
                    relay,
                    should_cancel=token.is_set,
                    progress_step=self.progress_step,
                )
            except ScanSupersededError:
                self.console_logger.debug("Scan %d stopped: superseded", generation)
                return Outcome.from_error(ScanSupersededError(generation))

            if not is_current():
                return Outcome.from_error(ScanSupersededError(generation))

            report = self._build_report(snapshot, detected)
        finally:
            if self._cancel_token is token:
                self._cancel_token = None

        self.snapshot = snapshot
        self.last_report = report
        self.console_logger.info(
            "Scanned %s tracks: %s duplicate groups (%s songs, %s hidden)",
            LogFormat.number(report.total_scanned),
            LogFormat.number(report.group_count),
            LogFormat.number(report.duplicate_song_count),
            LogFormat.number(report.ignored_count),
        )
        return Outcome.success(report)

    def _build_report(self, snapshot: CatalogSnapshot, detected: list[DuplicateGroup]) -> ScanReport:
        groups = apply_ignored_filter(detected, self.ignored)
        detected_songs = sum(group.song_count for group in detected)
        reported_songs = sum(group.song_count for group in groups)
        return ScanReport(
            groups=tuple(groups),
            total_scanned=len(snapshot),
            duplicate_song_count=reported_songs,
            ignored_count=detected_songs - reported_songs,
            fetched_at=snapshot.fetched_at,
        )

    async def find_track(self, track_id: str) -> Outcome[TrackRecord]:
        """Look up a track by persistent ID, reading the library if no snapshot exists yet."""
        if self.snapshot is None:
            try:
                self.snapshot = await self._fetch_snapshot()
            except CatalogUnavailableError as e:
                return Outcome.from_error(e)

        track = self.snapshot.find(track_id)
        if track is None:
            return Outcome.from_error(TrackNotFoundError(track_id))
        return Outcome.success(track)
