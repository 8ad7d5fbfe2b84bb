"""Tests for the library scan service."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import allure
import pytest

from core.models.outcome import OutcomeKind
from core.models.track_models import TrackRecord
from core.tracks.duplicate_detection import detect_duplicates
from services.ignored_items import IgnoredItemsStore
from services.scan_service import LibraryScanService
from tests.factories import make_track


class FakeCatalog:
    """Catalog provider returning a fixed track list.

    When ``gate`` is set, the first fetch waits for it before returning.
    """

    def __init__(self, tracks: list[TrackRecord], error: Exception | None = None) -> None:
        self.tracks = tracks
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls = 0

    async def fetch_all_tracks(self) -> list[TrackRecord]:
        self.calls += 1
        if self.calls == 1 and self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.tracks)


def _library() -> list[TrackRecord]:
    return [
        make_track("Yesterday", "The Beatles", "Help!", 40),
        make_track("Intro", "The xx", "xx", 3),
        make_track("yesterday", "the beatles", "1", 4),
        make_track("Intro", "The xx", "Coexist", 3),
        make_track("Solo", "Nobody", "Demo", 1),
    ]


@pytest.fixture
def ignored(tmp_path: Path) -> IgnoredItemsStore:
    store = IgnoredItemsStore(tmp_path / "ignored_items.json")
    store.load()
    return store


@allure.epic("Play Count Matcher")
@allure.feature("Library Scan")
@pytest.mark.unit
class TestLibraryScanService:
    """Tests for LibraryScanService."""

    @pytest.mark.asyncio
    async def test_scan_reports_groups(self, ignored: IgnoredItemsStore) -> None:
        service = LibraryScanService(FakeCatalog(_library()), ignored, progress_step=1)
        fractions: list[float] = []

        outcome = await service.scan(fractions.append)

        report = outcome.unwrap()
        assert report.total_scanned == 5
        assert report.group_count == 2
        assert report.groups[0].title == "Yesterday"
        assert report.groups[0].impact == 36
        assert report.duplicate_song_count == 4
        assert report.ignored_count == 0
        assert fractions[-1] == 1.0
        assert fractions == sorted(fractions)
        assert service.last_report is report
        assert service.snapshot is not None
        assert not service.is_scanning

    @pytest.mark.asyncio
    async def test_scan_applies_ignored_items(self, ignored: IgnoredItemsStore) -> None:
        library = _library()
        service = LibraryScanService(FakeCatalog(library), ignored)
        first = (await service.scan()).unwrap()
        ignored.ignore_group(first.groups[1])

        report = (await service.scan()).unwrap()

        assert report.group_count == 1
        assert report.ignored_count == 2
        assert report.find_group(first.groups[1].key) is None

        # dropping one of the two Beatles copies dissolves that group too
        ignored.ignore_song(library[2], report.groups[0].key)
        report = (await service.scan()).unwrap()

        assert report.group_count == 0
        assert report.ignored_count == 4

    @allure.story("Supersession")
    @pytest.mark.asyncio
    async def test_newer_scan_supersedes_running_scan(self, ignored: IgnoredItemsStore) -> None:
        catalog = FakeCatalog(_library())
        catalog.gate = asyncio.Event()
        service = LibraryScanService(catalog, ignored, progress_step=1)
        stale_progress: list[float] = []
        fresh_progress: list[float] = []

        stale = asyncio.create_task(service.scan(stale_progress.append))
        await asyncio.sleep(0)
        assert service.is_scanning

        fresh = await service.scan(fresh_progress.append)
        catalog.gate.set()
        superseded = await stale

        assert fresh.ok
        assert superseded.kind is OutcomeKind.SCAN_SUPERSEDED
        assert superseded.is_notice
        assert stale_progress == []
        assert fresh_progress[-1] == 1.0
        assert service.last_report is fresh.value
        assert not service.is_scanning

    @allure.story("Supersession")
    @pytest.mark.asyncio
    async def test_superseded_detection_stops_reporting(self, ignored: IgnoredItemsStore, monkeypatch: pytest.MonkeyPatch) -> None:
        released = threading.Event()

        def gated_detect(catalog, progress_callback=None, **kwargs):
            # hold each worker after its second report until the newer scan reports
            def report(fraction: float) -> None:
                progress_callback(fraction)
                if 0 < fraction < 1:
                    released.wait(timeout=5)

            return detect_duplicates(catalog, report, **kwargs)

        monkeypatch.setattr("services.scan_service.detect_duplicates", gated_detect)
        library = [make_track(f"Song {i}", "Band", f"Album {i % 3}", i) for i in range(60)]
        service = LibraryScanService(FakeCatalog(library), ignored, progress_step=1)
        events: list[tuple[str, float]] = []
        newer: list[asyncio.Task] = []

        def on_old(fraction: float) -> None:
            events.append(("old", fraction))
            if not newer:
                newer.append(asyncio.create_task(service.scan(on_new)))

        def on_new(fraction: float) -> None:
            events.append(("new", fraction))
            released.set()

        old_outcome = await service.scan(on_old)
        new_outcome = await newer[0]

        assert old_outcome.kind is OutcomeKind.SCAN_SUPERSEDED
        assert new_outcome.ok
        first_new = next(i for i, (source, _) in enumerate(events) if source == "new")
        assert all(source == "new" for source, _ in events[first_new:])
        new_fractions = [fraction for source, fraction in events if source == "new"]
        assert new_fractions == sorted(new_fractions)
        assert new_fractions[-1] == 1.0
        assert ("old", 1.0) not in events

    @pytest.mark.asyncio
    async def test_catalog_unavailable(self, ignored: IgnoredItemsStore, mock_console_logger, mock_error_logger) -> None:
        catalog = FakeCatalog([], error=OSError("osascript not found"))
        service = LibraryScanService(catalog, ignored, console_logger=mock_console_logger, error_logger=mock_error_logger)

        outcome = await service.scan()

        assert outcome.kind is OutcomeKind.CATALOG_UNAVAILABLE
        assert "osascript not found" in outcome.message
        assert service.last_report is None
        assert not service.is_scanning
        mock_error_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_library(self, ignored: IgnoredItemsStore) -> None:
        service = LibraryScanService(FakeCatalog([]), ignored)
        fractions: list[float] = []

        report = (await service.scan(fractions.append)).unwrap()

        assert report.total_scanned == 0
        assert report.groups == ()
        assert fractions == [1.0]


@pytest.mark.unit
class TestFindTrack:
    """Tests for LibraryScanService.find_track."""

    @pytest.mark.asyncio
    async def test_fetches_snapshot_when_missing(self, ignored: IgnoredItemsStore) -> None:
        library = _library()
        catalog = FakeCatalog(library)
        service = LibraryScanService(catalog, ignored)

        outcome = await service.find_track(library[1].id)

        assert outcome.unwrap() == library[1]
        assert catalog.calls == 1

        await service.find_track(library[0].id)
        assert catalog.calls == 1

    @pytest.mark.asyncio
    async def test_unknown_track(self, ignored: IgnoredItemsStore) -> None:
        service = LibraryScanService(FakeCatalog(_library()), ignored)

        outcome = await service.find_track("0000000000000000")

        assert outcome.kind is OutcomeKind.TRACK_NOT_FOUND
        assert "0000000000000000" in outcome.message

    @pytest.mark.asyncio
    async def test_catalog_failure(self, ignored: IgnoredItemsStore) -> None:
        service = LibraryScanService(FakeCatalog([], error=RuntimeError("Music.app is not running")), ignored)

        outcome = await service.find_track("ABC")

        assert outcome.kind is OutcomeKind.CATALOG_UNAVAILABLE
